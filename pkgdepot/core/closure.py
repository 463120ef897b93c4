"""有向图闭包

依赖图剪枝、锁文件正向可达标记、删除时的反向依赖传播都归结为同一件事：
从种子集合出发沿某个方向求不动点。
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable
from typing import TypeVar

T = TypeVar("T", bound=Hashable)


def closure(seeds: Iterable[T], successors: Callable[[T], Iterable[T]]) -> set[T]:
    """返回从 seeds 出发经 successors 可达的全部节点（含 seeds 本身）"""
    found: set[T] = set(seeds)
    queue = list(found)
    while queue:
        node = queue.pop()
        for nxt in successors(node):
            if nxt not in found:
                found.add(nxt)
                queue.append(nxt)
    return found
