"""本地内容寻址存储布局

    <depot>/packages/<uuid>/<hash>/   已安装的源码树
    <user-depot>/upstream/<uuid>/     该包所有镜像共享的 bare 仓库
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from uuid import UUID


def package_path(depot: Path, uuid: UUID, hash: str) -> Path:
    return (depot / "packages" / str(uuid) / hash).absolute()


def find_installed(uuid: UUID, hash: str, depots: Sequence[Path]) -> Path:
    """按 depot 顺序查找已安装路径；都不存在时返回用户 depot 下的目标路径"""
    for depot in depots:
        path = package_path(depot, uuid, hash)
        if path.exists():
            return path
    return package_path(depots[0], uuid, hash)


def upstream_path(user_depot: Path, uuid: UUID) -> Path:
    return (user_depot / "upstream" / str(uuid)).absolute()
