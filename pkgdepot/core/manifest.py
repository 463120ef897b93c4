"""项目文件与锁文件的修改和剪枝"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from uuid import UUID

from semantic_version import Version

from pkgdepot.core.closure import closure
from pkgdepot.core.environment import Environment
from pkgdepot.core.models import LockEntry, PackageSpec, parse_uuid
from pkgdepot.core.registry import DEPENDENCIES_FILE, RegistryIndex, load_package_data_for

logger = logging.getLogger(__name__)


def update_project(env: Environment, pkgs: Iterable[PackageSpec]) -> None:
    for pkg in pkgs:
        env.deps[pkg.package.name] = pkg.package.uuid


def update_lock_entry(
    env: Environment,
    index: RegistryIndex,
    uuid: UUID,
    name: str,
    hash: str,
    version: Version,
) -> LockEntry:
    """更新（或新建）name 下 uuid 对应的条目

    旧的 deps 无条件丢弃，从第一个对该版本有依赖条目的注册表重新读取。
    """
    entries = env.manifest.setdefault(name, [])
    entry = next((e for e in entries if e.uuid == uuid), None)
    if entry is None:
        entry = LockEntry(uuid=uuid)
        entries.append(entry)
    entry.version = str(version)
    entry.hash = hash
    entry.deps = {}
    for path in index.registered_paths(uuid):
        data = load_package_data_for(parse_uuid, path / DEPENDENCIES_FILE, version)
        if not data:
            continue
        entry.deps = dict(data)
        break
    return entry


def reverse_dependents(env: Environment, seeds: Iterable[UUID]) -> set[UUID]:
    """seeds 及所有（传递地）依赖它们的包"""
    dependents: dict[UUID, set[UUID]] = {}
    for _, entry in env.entries():
        for dep in entry.deps.values():
            dependents.setdefault(dep, set()).add(entry.uuid)
    return closure(seeds, lambda u: dependents.get(u, ()))


def reachable(env: Environment) -> set[UUID]:
    """从项目直接依赖出发沿锁文件 deps 可达的全部包"""
    forward: dict[UUID, set[UUID]] = {}
    for _, entry in env.entries():
        forward.setdefault(entry.uuid, set()).update(entry.deps.values())
    return closure(env.deps.values(), lambda u: forward.get(u, ()))


def prune_manifest(env: Environment) -> None:
    """标记-清除：删除不可达的条目，以及因此变空的名称分组"""
    keep = reachable(env)
    pruned: dict[str, list[LockEntry]] = {}
    for name, entries in env.manifest.items():
        kept = [e for e in entries if e.uuid in keep]
        if kept:
            pruned[name] = kept
        dropped = len(entries) - len(kept)
        if dropped:
            logger.info("剪除 %s 的 %d 个条目", name, dropped)
    env.manifest = pruned
