"""环境：项目文件（直接依赖）+ 锁文件（完整解析结果）

项目文件:  {deps: {name: uuid}, ...}，其余顶层键原样保留
锁文件:    {name: [{uuid, version, hash-sha1, deps: {name: uuid}}]}

工作流在内存中修改 Environment，最后一次性 write()。
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any
from uuid import UUID

from pkgdepot.core.exceptions import ManifestError
from pkgdepot.core.models import LockEntry, parse_uuid
from pkgdepot.core.registry import RegistryIndex, load_package_info
from pkgdepot.utils.yaml_io import load_yaml, save_yaml

logger = logging.getLogger(__name__)


class Environment:
    """项目 + 锁文件的内存表示"""

    def __init__(
        self,
        project_file: str | Path,
        manifest_file: str | Path,
        deps: dict[str, UUID] | None = None,
        manifest: dict[str, list[LockEntry]] | None = None,
        project_extra: dict[str, Any] | None = None,
    ) -> None:
        self.project_file = Path(project_file)
        self.manifest_file = Path(manifest_file)
        self.deps: dict[str, UUID] = deps or {}
        self.manifest: dict[str, list[LockEntry]] = manifest or {}
        self.project_extra: dict[str, Any] = project_extra or {}

    @classmethod
    def load(cls, project_file: str | Path, manifest_file: str | Path) -> Environment:
        project = load_yaml(project_file)
        deps = {name: parse_uuid(u) for name, u in (project.pop("deps", None) or {}).items()}
        manifest: dict[str, list[LockEntry]] = {}
        for name, stanzas in load_yaml(manifest_file).items():
            if isinstance(stanzas, dict):
                stanzas = [stanzas]
            manifest[name] = [LockEntry.from_dict(s) for s in stanzas or []]
        logger.debug("已加载环境: %d 个直接依赖, %d 个锁定包", len(deps), len(manifest))
        return cls(project_file, manifest_file, deps, manifest, project)

    def write(self) -> None:
        project = {**self.project_extra, "deps": {n: str(u) for n, u in self.deps.items()}}
        save_yaml(self.project_file, project)
        save_yaml(
            self.manifest_file,
            {name: [e.to_dict() for e in entries] for name, entries in sorted(self.manifest.items())},
        )
        logger.info("已写入 %s, %s", self.project_file, self.manifest_file)

    def entries(self) -> Iterator[tuple[str, LockEntry]]:
        for name, entries in self.manifest.items():
            for entry in entries:
                yield name, entry

    def manifest_info(self, uuid: UUID) -> LockEntry | None:
        for _, entry in self.entries():
            if entry.uuid == uuid:
                return entry
        return None

    def package_env_info(
        self, name: str, index: RegistryIndex | None = None,
    ) -> LockEntry | None:
        """按名称确定唯一的锁文件条目

        项目文件声明了该名称时，必须恰有一个同 uuid 的条目；
        未声明且存在多个同名条目时报错并列出候选。
        """
        infos = self.manifest.get(name) or []
        if not infos:
            return None
        if name in self.deps:
            uuid = self.deps[name]
            matched = [e for e in infos if e.uuid == uuid]
            if not matched:
                raise ManifestError(f"锁文件中没有 {name}/{uuid} 的条目")
            if len(matched) > 1:
                raise ManifestError(f"锁文件中有多个 {name}/{uuid} 的条目")
            return matched[0]
        if len(infos) == 1:
            return infos[0]
        options = []
        for entry in infos:
            paths = index.registered_paths(entry.uuid) if index else []
            repo = load_package_info(paths[0]).get("repo", "") if paths else "(未登记)"
            options.append(f"{entry.uuid} - {repo}")
        raise ManifestError(
            f"存在多个名为 {name} 的包，请用 name=uuid 指定: " + "; ".join(options)
        )
