"""依赖图构建

从请求的 uuid 出发，逐轮遍历注册表，直到不再出现新的 uuid，
得到提交给版本求解器的完整可用性图。
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from uuid import UUID

from semantic_version import SimpleSpec, Version

from pkgdepot.core.closure import closure
from pkgdepot.core.models import (
    ANY_VERSION,
    AvailabilityGraph,
    Available,
    parse_spec,
    parse_uuid,
)
from pkgdepot.core.registry import (
    COMPATIBILITY_FILE,
    DEPENDENCIES_FILE,
    RegistryIndex,
    load_package_data,
    load_versions,
)

logger = logging.getLogger(__name__)

# 兼容性表中代表宿主运行时的保留键
HOST_KEY = "python"


def build_graph(
    index: RegistryIndex,
    uuids: Iterable[UUID],
    host_version: str | Version,
) -> AvailabilityGraph:
    """构建可用性图

    每个 uuid 只处理一次；每轮结束后让注册表索引针对已知的全部 uuid
    刷新登记信息，再计算新的待处理集合，直到不动点。
    兼容约束排除宿主版本的候选版本不进入图。
    """
    host = host_version if isinstance(host_version, Version) else Version.coerce(str(host_version))
    graph: AvailabilityGraph = {}
    known: list[UUID] = list(dict.fromkeys(uuids))
    known_set = set(known)
    seen: set[UUID] = set()

    while True:
        unseen = [u for u in known if u not in seen]
        if not unseen:
            break
        for uuid in unseen:
            seen.add(uuid)
            versions = graph.setdefault(uuid, {})
            for path in index.registered_paths(uuid):
                version_info = load_versions(path)
                vers = sorted(version_info)
                dependencies = load_package_data(parse_uuid, path / DEPENDENCIES_FILE, vers)
                compatibility = load_package_data(parse_spec, path / COMPATIBILITY_FILE, vers)
                for ver in vers:
                    deps = dependencies.get(ver, {})
                    compat = compatibility.get(ver, {})
                    if host not in compat.get(HOST_KEY, SimpleSpec(ANY_VERSION)):
                        logger.debug("跳过 %s@%s: 与宿主版本 %s 不兼容", uuid, ver, host)
                        continue
                    versions[ver] = Available(
                        hash=version_info[ver],
                        deps={
                            dep: compat.get(name, SimpleSpec(ANY_VERSION))
                            for name, dep in deps.items()
                        },
                    )
                    for dep in deps.values():
                        if dep not in known_set:
                            known_set.add(dep)
                            known.append(dep)
        index.refresh(known)

    logger.info("依赖图构建完成: %d 个包", len(graph))
    return graph


def prune_graph(
    requirements: Mapping[UUID, SimpleSpec],
    graph: AvailabilityGraph,
) -> AvailabilityGraph:
    """裁剪为从需求出发可达的子图

    被直接要求的包只保留满足需求约束的版本，其余包保留全部版本。
    """
    restricted: AvailabilityGraph = {}
    for uuid, versions in graph.items():
        spec = requirements.get(uuid)
        if spec is None:
            restricted[uuid] = dict(versions)
        else:
            restricted[uuid] = {v: a for v, a in versions.items() if v in spec}

    def successors(uuid: UUID) -> Iterable[UUID]:
        for available in restricted.get(uuid, {}).values():
            yield from available.deps

    reachable = closure(requirements, successors)
    return {u: restricted.get(u, {}) for u in reachable}


def restrict_graph(
    graph: AvailabilityGraph,
    limits: Mapping[UUID, SimpleSpec],
) -> AvailabilityGraph:
    """按 limits 过滤各包可选版本（不引入新的需求）"""
    return {
        uuid: (
            {v: a for v, a in versions.items() if v in limits[uuid]}
            if uuid in limits else versions
        )
        for uuid, versions in graph.items()
    }
