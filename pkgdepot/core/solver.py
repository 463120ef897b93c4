"""版本求解

VersionSolver 协议：给定 {uuid: 约束} 与可用性图，为每个需要的包选出
恰好一个版本，无解时抛 UnsatisfiableError。

默认实现 BacktrackingSolver 为确定性的回溯搜索：优先高版本，
每步选择候选最少的未赋值包。
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Protocol
from uuid import UUID

from semantic_version import SimpleSpec, Version

from pkgdepot.core.exceptions import UnsatisfiableError
from pkgdepot.core.graph import build_graph, prune_graph, restrict_graph
from pkgdepot.core.models import AvailabilityGraph, PackageSpec
from pkgdepot.core.registry import RegistryIndex

logger = logging.getLogger(__name__)


class VersionSolver(Protocol):
    """版本求解器协议"""

    def resolve(
        self,
        requirements: Mapping[UUID, SimpleSpec],
        graph: AvailabilityGraph,
    ) -> dict[UUID, Version]:
        ...


class BacktrackingSolver:
    """回溯求解器"""

    def resolve(
        self,
        requirements: Mapping[UUID, SimpleSpec],
        graph: AvailabilityGraph,
    ) -> dict[UUID, Version]:
        failed: list[UUID] = []
        result = self._search(requirements, graph, {}, failed)
        if result is None:
            culprit = failed[-1] if failed else None
            if culprit is None and requirements:
                culprit = next(iter(requirements))
            raise UnsatisfiableError(
                f"无法满足版本约束: {culprit} "
                f"(需求: {', '.join(f'{u}={s}' for u, s in requirements.items())})"
            )
        return result

    def _constraints(
        self,
        requirements: Mapping[UUID, SimpleSpec],
        graph: AvailabilityGraph,
        assignment: dict[UUID, Version],
    ) -> dict[UUID, list[SimpleSpec]]:
        cons: dict[UUID, list[SimpleSpec]] = {u: [s] for u, s in requirements.items()}
        for uuid, ver in assignment.items():
            for dep, spec in graph[uuid][ver].deps.items():
                cons.setdefault(dep, []).append(spec)
        return cons

    def _search(
        self,
        requirements: Mapping[UUID, SimpleSpec],
        graph: AvailabilityGraph,
        assignment: dict[UUID, Version],
        failed: list[UUID],
    ) -> dict[UUID, Version] | None:
        """深度优先搜索；失败的包依次记入 failed，最后一个作为报错对象"""
        cons = self._constraints(requirements, graph, assignment)

        for uuid, ver in assignment.items():
            if not all(ver in s for s in cons.get(uuid, ())):
                failed.append(uuid)
                return None

        pending: dict[UUID, list[Version]] = {}
        for uuid, specs in cons.items():
            if uuid in assignment:
                continue
            pending[uuid] = sorted(
                (v for v in graph.get(uuid, {}) if all(v in s for s in specs)),
                reverse=True,
            )
        if not pending:
            return dict(assignment)

        uuid = min(pending, key=lambda u: (len(pending[u]), str(u)))
        candidates = pending[uuid]
        if not candidates:
            failed.append(uuid)
            return None
        for ver in candidates:
            assignment[uuid] = ver
            result = self._search(requirements, graph, assignment, failed)
            if result is not None:
                return result
            del assignment[uuid]
        return None


def resolve_versions(
    index: RegistryIndex,
    pkgs: list[PackageSpec],
    host_version: str,
    solver: VersionSolver | None = None,
    limits: Mapping[UUID, SimpleSpec] | None = None,
) -> dict[UUID, Version]:
    """构建依赖图、裁剪并求解

    limits 只收窄对应包的可选版本，不把它们变成需求。
    """
    logger.info("解析包版本")
    reqs = {pkg.package.uuid: pkg.version for pkg in pkgs}
    graph = build_graph(index, reqs, host_version)
    if limits:
        graph = restrict_graph(graph, limits)
    graph = prune_graph(reqs, graph)
    return (solver or BacktrackingSolver()).resolve(reqs, graph)
