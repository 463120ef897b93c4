"""环境变更工作流: add / rm / up

流程:
  依赖图构建 → 版本求解 → 身份解析 → 安装 → 更新项目/锁文件 → 剪枝 → 写盘

环境只在全部步骤成功后写盘；安装中途失败时已落盘的内容寻址目录保留，
磁盘上的项目/锁文件仍为变更前状态。
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from uuid import UUID

from semantic_version import SimpleSpec, Version

from pkgdepot.core.config import Config
from pkgdepot.core.environment import Environment
from pkgdepot.core.exceptions import ManifestError, ValidationError
from pkgdepot.core.identity import version_data
from pkgdepot.core.installer import Installer, VcsBackend
from pkgdepot.core.manifest import (
    prune_manifest,
    reverse_dependents,
    update_lock_entry,
    update_project,
)
from pkgdepot.core.models import (
    PackageId,
    PackageSpec,
    UpgradeLevel,
    exact_spec,
    parse_spec,
    parse_uuid,
    parse_version,
)
from pkgdepot.core.registry import RegistryIndex
from pkgdepot.core.solver import BacktrackingSolver, VersionSolver, resolve_versions
from pkgdepot.core.store import find_installed

logger = logging.getLogger(__name__)


@dataclass
class Context:
    """一次工作流所需的全部协作者"""

    config: Config
    env: Environment
    index: RegistryIndex
    installer: Installer
    solver: VersionSolver = field(default_factory=BacktrackingSolver)

    @classmethod
    def from_config(cls, config: Config, backend: VcsBackend | None = None) -> Context:
        return cls(
            config=config,
            env=Environment.load(config.project_file, config.manifest_file),
            index=RegistryIndex(config.registries, config.depots),
            installer=Installer(config.depot_paths, backend, config.max_workers),
        )


def parse_request(ctx: Context, text: str) -> PackageSpec:
    """解析 name | name@约束 | name=uuid | name=uuid@约束"""
    head, _, constraint = text.partition("@")
    name, _, uuid_text = head.partition("=")
    name = name.strip()
    if not name:
        raise ValidationError(f"包描述缺少名称: {text!r}")
    if uuid_text:
        uuid = parse_uuid(uuid_text.strip())
    elif name in ctx.env.deps:
        uuid = ctx.env.deps[name]
    else:
        found = ctx.index.find_registered(name)
        if not found:
            raise ValidationError(f"未在任何注册表中找到包: {name}")
        if len(found) > 1:
            raise ValidationError(
                f"存在多个名为 {name} 的包，请用 name=uuid 指定: "
                + ", ".join(str(u) for u in found)
            )
        uuid = next(iter(found))
    return PackageSpec(PackageId(name, uuid), parse_spec(constraint))


def lookup_package(ctx: Context, text: str) -> PackageId:
    """rm 使用：按 name 或 name=uuid 在当前环境中定位包"""
    name, _, uuid_text = text.partition("=")
    name = name.strip()
    if uuid_text:
        return PackageId(name, parse_uuid(uuid_text.strip()))
    if name in ctx.env.deps:
        return PackageId(name, ctx.env.deps[name])
    entry = ctx.env.package_env_info(name, ctx.index)
    if entry is None:
        raise ValidationError(f"`{name}` 不在环境中")
    return PackageId(name, entry.uuid)


def _apply(
    ctx: Context,
    pkgs: list[PackageSpec],
    limits: Mapping[UUID, SimpleSpec] | None = None,
) -> dict[UUID, Version]:
    """求解、安装并更新锁文件（不写盘）"""
    versions = resolve_versions(
        ctx.index, pkgs, ctx.config.host_version, ctx.solver, limits=limits,
    )
    names, hashes, urls = version_data(ctx.index, versions)

    ctx.installer.install_all(
        (uuid, names[uuid], hashes[uuid], urls[uuid]) for uuid in hashes
    )

    for uuid, version in versions.items():
        update_lock_entry(ctx.env, ctx.index, uuid, names[uuid], hashes[uuid], version)
    return versions


def add(ctx: Context, pkgs: list[PackageSpec]) -> dict[UUID, Version]:
    env = ctx.env
    # 已在项目中且锁定版本满足新约束的包保持原版本
    for uuid in env.deps.values():
        info = env.manifest_info(uuid)
        if info is None or not info.version:
            continue
        version = parse_version(info.version)
        for pkg in pkgs:
            if pkg.package.uuid == uuid and version in pkg.version:
                pkg.version = exact_spec(version)

    versions = _apply(ctx, pkgs)
    update_project(env, pkgs)
    prune_manifest(env)
    env.write()
    return versions


def rm(ctx: Context, pkgs: list[PackageId]) -> set[UUID]:
    env = ctx.env
    drop: list[UUID] = []
    for pkg in pkgs:
        if env.manifest_info(pkg.uuid) is None:
            logger.warning("`%s` 不在环境中，已忽略", pkg.name or pkg.uuid)
        else:
            drop.append(pkg.uuid)

    dropped = reverse_dependents(env, drop)
    env.deps = {name: u for name, u in env.deps.items() if u not in dropped}
    prune_manifest(env)
    env.write()
    return dropped


def up(
    ctx: Context,
    names: list[str] | None = None,
    direct: UpgradeLevel = UpgradeLevel.PATCH,
    indirect: UpgradeLevel = UpgradeLevel.MAJOR,
) -> dict[UUID, Version]:
    """升级直接依赖（默认全部）到 direct 级别，间接依赖到 indirect 级别，然后清理孤儿

    未点名的直接依赖固定在当前锁定版本。
    """
    env = ctx.env
    targets = set(names or env.deps)
    unknown = targets - set(env.deps)
    if unknown:
        raise ManifestError(f"不是项目的直接依赖: {', '.join(sorted(unknown))}")

    pkgs: list[PackageSpec] = []
    for name, uuid in env.deps.items():
        info = env.manifest_info(uuid)
        if info is None or not info.version:
            spec = parse_spec(None)
        else:
            level = direct if name in targets else UpgradeLevel.FIXED
            spec = level.ceiling(parse_version(info.version))
        pkgs.append(PackageSpec(PackageId(name, uuid), spec))

    direct_uuids = set(env.deps.values())
    limits = {
        entry.uuid: indirect.ceiling(parse_version(entry.version))
        for _, entry in env.entries()
        if entry.uuid not in direct_uuids and entry.version
    }

    versions = _apply(ctx, pkgs, limits=limits)
    prune_manifest(env)
    env.write()
    return versions


def installed_path(ctx: Context, uuid: UUID) -> Path | None:
    """锁文件中某包的已安装路径，未安装时返回 None"""
    entry = ctx.env.manifest_info(uuid)
    if entry is None or not entry.hash:
        return None
    path = find_installed(uuid, entry.hash, ctx.config.depot_paths)
    return path if path.exists() else None
