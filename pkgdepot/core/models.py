"""核心数据模型

- PackageId: 包身份（name 仅作展示，uuid 为稳定标识）
- PackageSpec: 一次请求中的包 + 版本约束
- Available: 依赖图中某个版本的内容哈希与依赖约束
- LockEntry: 锁文件中的一个条目
- UpgradeLevel: up 工作流的升级级别
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from semantic_version import SimpleSpec, Version

from pkgdepot.core.exceptions import ValidationError

_SHA1_RE = re.compile(r"^[0-9a-f]{40}$")

ANY_VERSION = "*"


def parse_uuid(value: str | UUID) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as e:
        raise ValidationError(f"无效的 uuid: {value!r}") from e


def parse_hash(value: str) -> str:
    """校验 20 字节 SHA1 内容哈希（40 位小写十六进制）"""
    h = str(value).strip().lower()
    if not _SHA1_RE.match(h):
        raise ValidationError(f"无效的内容哈希: {value!r}")
    return h


def parse_version(value: str | Version) -> Version:
    if isinstance(value, Version):
        return value
    try:
        return Version(str(value))
    except ValueError as e:
        raise ValidationError(f"无效的版本号: {value!r}") from e


def parse_spec(value: str | SimpleSpec | None) -> SimpleSpec:
    if isinstance(value, SimpleSpec):
        return value
    text = str(value).strip() if value is not None else ""
    try:
        return SimpleSpec(text or ANY_VERSION)
    except ValueError as e:
        raise ValidationError(f"无效的版本约束: {value!r}") from e


def exact_spec(version: Version) -> SimpleSpec:
    return SimpleSpec(f"=={version}")


@dataclass(frozen=True)
class PackageId:
    """包身份"""

    name: str
    uuid: UUID

    def __str__(self) -> str:
        return f"{self.name} [{self.uuid}]"


@dataclass
class PackageSpec:
    """请求中的包及其版本约束"""

    package: PackageId
    version: SimpleSpec = field(default_factory=lambda: SimpleSpec(ANY_VERSION))


@dataclass(frozen=True)
class Available:
    """依赖图中一个版本的数据：内容哈希 + {依赖 uuid: 兼容约束}"""

    hash: str
    deps: dict[UUID, SimpleSpec] = field(default_factory=dict)


# uuid -> version -> Available
AvailabilityGraph = dict[UUID, dict[Version, Available]]


@dataclass
class LockEntry:
    """锁文件条目"""

    uuid: UUID
    version: str = ""
    hash: str = ""
    deps: dict[str, UUID] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> LockEntry:
        if "uuid" not in data:
            raise ValidationError(f"锁文件条目缺少 uuid: {data}")
        return cls(
            uuid=parse_uuid(data["uuid"]),
            version=str(data.get("version", "")),
            hash=str(data.get("hash-sha1", "")),
            deps={k: parse_uuid(v) for k, v in (data.get("deps") or {}).items()},
        )

    def to_dict(self) -> dict:
        d: dict = {"uuid": str(self.uuid)}
        if self.version:
            d["version"] = self.version
        if self.hash:
            d["hash-sha1"] = self.hash
        if self.deps:
            d["deps"] = {k: str(v) for k, v in self.deps.items()}
        return d


class UpgradeLevel(str, Enum):
    """升级级别：允许从当前版本向上浮动的范围"""

    FIXED = "fixed"
    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"

    def ceiling(self, current: Version) -> SimpleSpec:
        """由当前版本推导允许的版本范围"""
        if self is UpgradeLevel.FIXED:
            return exact_spec(current)
        if self is UpgradeLevel.PATCH:
            return SimpleSpec(f">={current},<{current.major}.{current.minor + 1}.0")
        if self is UpgradeLevel.MINOR:
            return SimpleSpec(f">={current},<{current.major + 1}.0.0")
        return SimpleSpec(f">={current}")
