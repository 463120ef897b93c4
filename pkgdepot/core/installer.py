"""安装器 - 从上游镜像按内容哈希获取源码树并落盘到 depot

策略: 本地优先
  1. 任一 depot 中已存在 packages/<uuid>/<hash>/ → 直接返回，不访问网络
  2. 否则使用（或从第一个镜像 bare clone）该 uuid 的上游缓存仓库
  3. 依次向其余镜像 fetch，直到缓存中出现目标对象
  4. 对象必须是 tree，检出到用户 depot
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Protocol
from uuid import UUID

from pkgdepot.core.exceptions import ObjectNotFoundError, ValidationError, WrongObjectKindError
from pkgdepot.core.git import GitBackend
from pkgdepot.core.models import parse_hash
from pkgdepot.core.store import find_installed, upstream_path
from pkgdepot.utils.logger import package_context

logger = logging.getLogger(__name__)


class VcsBackend(Protocol):
    """安装器所需的版本控制原语"""

    def clone_bare(self, url: str, repo: Path) -> None: ...

    def fetch(self, repo: Path, url: str, refspecs: list[str] | None = None) -> None: ...

    def object_type(self, repo: Path, obj: str) -> str | None: ...

    def checkout_tree(self, repo: Path, tree: str, dest: Path) -> None: ...


class Installer:
    """内容寻址安装器

    不同 uuid 的安装可并行；同一 uuid 共享上游缓存仓库，按 uuid 加锁串行。
    """

    def __init__(
        self,
        depots: list[Path],
        backend: VcsBackend | None = None,
        max_workers: int = 4,
    ) -> None:
        if not depots:
            raise ValidationError("至少需要一个 depot")
        self.depots = [Path(d) for d in depots]
        self.backend = backend or GitBackend()
        self.max_workers = max(1, max_workers)
        self._locks: dict[UUID, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def user_depot(self) -> Path:
        return self.depots[0]

    def _lock_for(self, uuid: UUID) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(uuid, threading.Lock())

    def install(self, uuid: UUID, name: str, hash: str, urls: list[str]) -> Path:
        """安装单个包，返回源码树路径；已安装时直接返回"""
        hash = parse_hash(hash)
        version_path = find_installed(uuid, hash, self.depots)
        if version_path.exists():
            logger.debug("已安装: %s -> %s", name, version_path,
                         extra=package_context(uuid, name, hash))
            return version_path
        if not urls:
            raise ObjectNotFoundError(f"{name}: 没有可用的上游镜像，无法获取 {hash}")

        with self._lock_for(uuid):
            repo = upstream_path(self.user_depot, uuid)
            if not repo.exists():
                logger.info("克隆 [%s] %s", uuid, name,
                            extra=package_context(uuid, name, url=urls[0]))
                self.backend.clone_bare(urls[0], repo)

            kind = self.backend.object_type(repo, hash)
            for url in urls[1:]:
                if kind is not None:
                    break
                logger.info("从镜像更新 %s: %s", name, url,
                            extra=package_context(uuid, name, hash, url))
                self.backend.fetch(repo, url)
                kind = self.backend.object_type(repo, hash)

            if kind is None:
                raise ObjectNotFoundError(f"{name}: 找不到 git 对象 {hash}")
            if kind != "tree":
                raise WrongObjectKindError(f"{name}: git 对象 {hash} 应为 tree，实际为 {kind}")

            version_path.mkdir(parents=True, exist_ok=True)
            logger.info("安装 %s @ %s", name, hash,
                        extra=package_context(uuid, name, hash))
            self.backend.checkout_tree(repo, hash, version_path)
        return version_path

    def install_all(
        self, items: Iterable[tuple[UUID, str, str, list[str]]],
    ) -> dict[UUID, Path]:
        """并行安装 (uuid, name, hash, urls)，任一失败即抛出"""
        items = list(items)
        if self.max_workers == 1 or len(items) <= 1:
            return {u: self.install(u, n, h, urls) for u, n, h, urls in items}
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [(item[0], executor.submit(self.install, *item)) for item in items]
            return {u: f.result() for u, f in futures}
