"""集中配置管理

从 YAML 文件加载 + 编程式覆盖。配置对象显式传给注册表索引、
依赖图构建、存储查找与安装器，不使用进程级全局状态。
"""

from __future__ import annotations

import logging
import platform
from dataclasses import dataclass, field
from pathlib import Path

from pkgdepot.core.exceptions import ConfigError
from pkgdepot.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """包管理配置"""

    # 存储根目录（depot），按顺序查找，第一个为用户 depot，安装总是写入它
    depots: list[str] = field(default_factory=lambda: [str(Path.home() / ".pkgdepot")])
    # 显式注册表根目录；各 depot 下 registries/* 也会被扫描
    registries: list[str] = field(default_factory=list)

    # 环境文件
    project_file: str = "Project.yml"
    manifest_file: str = "Manifest.yml"

    # 并行安装数
    max_workers: int = 4

    # 宿主运行时版本，兼容性表中的 "python" 键据此过滤
    host_version: str = field(default_factory=platform.python_version)

    def __post_init__(self) -> None:
        if not self.depots:
            raise ConfigError("至少需要配置一个 depot")
        if self.max_workers < 1:
            raise ConfigError(f"max_workers 必须为正数: {self.max_workers}")

    @property
    def user_depot(self) -> Path:
        return Path(self.depots[0])

    @property
    def depot_paths(self) -> list[Path]:
        return [Path(d) for d in self.depots]

    @classmethod
    def from_file(cls, path: str = "pkgdepot.yml") -> Config:
        """从 YAML 文件加载配置，不存在则返回默认；未知配置项记录警告后忽略"""
        data = load_yaml(path)
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        unknown = sorted(k for k in data if k not in known)
        if unknown:
            logger.warning("忽略未知配置项 %s: %s", path, ", ".join(unknown))
        try:
            cfg = cls(**{k: v for k, v in data.items() if k in known})
        except TypeError as e:
            raise ConfigError(f"配置文件内容无效 {path}: {e}") from e
        logger.info("配置已加载: %s", path)
        return cfg
