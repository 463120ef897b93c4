"""版本控制后端 - 通过 git 命令行操作上游缓存仓库

职责:
- bare clone
- 按 refspec 从镜像 fetch
- 查询对象类型
- 将 tree 强制检出到指定目录
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from pkgdepot.core.exceptions import ExecutionError
from pkgdepot.utils.shell import CommandExecutor, CommandResult, LocalExecutor

logger = logging.getLogger(__name__)

# 把镜像的全部引用导入缓存专用命名空间
REFSPECS = ["+refs/*:refs/remotes/cache/*"]


class GitBackend:
    """git 命令行后端"""

    def __init__(self, executor: CommandExecutor | None = None, git: str = "git") -> None:
        self.executor = executor or LocalExecutor()
        self.git = git

    def _run(
        self, args: list[str], *, label: str, env: dict[str, str] | None = None,
    ) -> CommandResult:
        r = self.executor.execute([self.git, *args], env=env)
        if not r.success:
            raise ExecutionError(f"git {label} 失败 (rc={r.returncode}): {r.stderr[:500]}")
        return r

    def clone_bare(self, url: str, repo: Path) -> None:
        repo.parent.mkdir(parents=True, exist_ok=True)
        self._run(["clone", "--bare", "--quiet", url, str(repo)], label="clone")

    def fetch(self, repo: Path, url: str, refspecs: list[str] | None = None) -> None:
        self._run(
            ["--git-dir", str(repo), "fetch", "--quiet", url, *(refspecs or REFSPECS)],
            label="fetch",
        )

    def object_type(self, repo: Path, obj: str) -> str | None:
        """返回对象类型（tree/commit/blob/tag），对象不存在时返回 None"""
        if not repo.exists():
            raise ExecutionError(f"上游缓存仓库不存在: {repo}")
        r = self.executor.execute([self.git, "--git-dir", str(repo), "cat-file", "-t", obj])
        if not r.success:
            return None
        return r.stdout.strip()

    def checkout_tree(self, repo: Path, tree: str, dest: Path) -> None:
        """强制检出 tree 内容到 dest，使用临时 index 不改动缓存仓库"""
        with tempfile.TemporaryDirectory() as tmp:
            env = {**os.environ, "GIT_INDEX_FILE": str(Path(tmp) / "index")}
            base = ["--git-dir", str(repo), "--work-tree", str(dest)]
            self._run([*base, "read-tree", tree], label="read-tree", env=env)
            self._run([*base, "checkout-index", "--all", "--force"], label="checkout-index", env=env)
