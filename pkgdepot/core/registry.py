"""注册表索引

注册表根目录结构:

    <registry>/Registry.yml            {name, packages: {uuid: {name, path}}}
    <registry>/<path>/package.yml      {name, uuid, repo}
    <registry>/<path>/versions.yml     {version: {hash-sha1}}
    <registry>/<path>/dependencies.yml {range: {dep-name: dep-uuid}}
    <registry>/<path>/compatibility.yml {range: {dep-name|python: constraint}}

版本区间键与兼容约束都是 semantic_version.SimpleSpec 表达式。
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, TypeVar
from uuid import UUID

from semantic_version import SimpleSpec, Version

from pkgdepot.core.exceptions import DuplicateKeyError, RegistryError, ValidationError
from pkgdepot.core.models import parse_hash, parse_uuid, parse_version
from pkgdepot.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

REGISTRY_FILE = "Registry.yml"
PACKAGE_FILE = "package.yml"
VERSIONS_FILE = "versions.yml"
DEPENDENCIES_FILE = "dependencies.yml"
COMPATIBILITY_FILE = "compatibility.yml"

T = TypeVar("T")


def load_versions(path: Path) -> dict[Version, str]:
    """读取 versions.yml -> {版本: 内容哈希}"""
    data = load_yaml(path / VERSIONS_FILE)
    result: dict[Version, str] = {}
    for ver, info in data.items():
        if not isinstance(info, dict) or "hash-sha1" not in info:
            raise RegistryError(f"{path / VERSIONS_FILE}: 版本 {ver} 缺少 hash-sha1")
        result[parse_version(ver)] = parse_hash(info["hash-sha1"])
    return result


def load_package_info(path: Path) -> dict[str, Any]:
    """读取 package.yml"""
    info = load_yaml(path / PACKAGE_FILE)
    if "name" not in info:
        raise RegistryError(f"{path / PACKAGE_FILE}: 缺少 name")
    return info


def load_package_data(
    convert: Callable[[Any], T],
    file: Path,
    versions: Iterable[Version],
) -> dict[Version, dict[str, T]]:
    """把按版本区间组织的表展开为逐版本的字典

    同一版本通过两个重叠区间命中同一个键视为数据错误。
    文件不存在时返回空字典（缺省即无约束）。
    """
    table = load_yaml(file)
    ranges: list[tuple[SimpleSpec, dict]] = []
    for key, entries in table.items():
        try:
            ranges.append((SimpleSpec(str(key)), entries or {}))
        except ValueError as e:
            raise RegistryError(f"{file}: 无效的版本区间 {key!r}") from e

    data: dict[Version, dict[str, T]] = {}
    for ver in versions:
        for spec, entries in ranges:
            if ver not in spec:
                continue
            d = data.setdefault(ver, {})
            for key, value in entries.items():
                if key in d:
                    raise DuplicateKeyError(f"{ver}/{key} 在 {file} 中重复")
                d[key] = convert(value)
    return data


def load_package_data_for(
    convert: Callable[[Any], T], file: Path, version: Version,
) -> dict[str, T] | None:
    """单版本便捷形式，该版本没有任何条目时返回 None"""
    return load_package_data(convert, file, [version]).get(version)


class RegistryIndex:
    """注册表索引：uuid -> 注册该 uuid 的各个包目录

    registries 为显式注册表根目录；depots 下的 registries/* 子目录
    在每次 refresh 时重新扫描，以便发现新出现的注册表。
    """

    def __init__(
        self,
        registries: Iterable[str | Path] = (),
        depots: Iterable[str | Path] = (),
    ) -> None:
        self.registries = [Path(r) for r in registries]
        self.depots = [Path(d) for d in depots]
        self._paths: dict[UUID, list[Path]] = {}
        self._names: dict[str, set[UUID]] = {}
        self.refresh()

    def registry_roots(self) -> list[Path]:
        roots = list(self.registries)
        for depot in self.depots:
            reg_dir = depot / "registries"
            if reg_dir.is_dir():
                roots.extend(sorted(p for p in reg_dir.iterdir() if p.is_dir()))
        return [r for r in roots if (r / REGISTRY_FILE).exists()]

    def refresh(self, uuids: Iterable[UUID] = ()) -> None:
        """重新读取全部注册表，返回前确保 uuids 的登记信息为最新"""
        paths: dict[UUID, list[Path]] = {}
        names: dict[str, set[UUID]] = {}
        for root in self.registry_roots():
            data = load_yaml(root / REGISTRY_FILE)
            for key, info in (data.get("packages") or {}).items():
                try:
                    u = parse_uuid(key)
                except ValidationError:
                    logger.warning("注册表 %s 中存在无效 uuid: %s，已忽略", root, key)
                    continue
                info = info or {}
                pkg_path = root / info.get("path", str(u))
                paths.setdefault(u, []).append(pkg_path)
                if info.get("name"):
                    names.setdefault(info["name"], set()).add(u)
        self._paths = paths
        self._names = names
        missing = [u for u in uuids if u not in paths]
        if missing:
            logger.debug("未在任何注册表中登记: %s", ", ".join(map(str, missing)))

    def registered_paths(self, uuid: UUID) -> list[Path]:
        return list(self._paths.get(uuid, []))

    def find_registered(self, name: str) -> dict[UUID, list[Path]]:
        """按名称查找已登记的包 -> {uuid: [包目录]}"""
        return {u: self.registered_paths(u) for u in sorted(self._names.get(name, ()))}
