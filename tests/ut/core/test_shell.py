"""LocalExecutor 与 GitBackend 命令拼装测试"""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import sha
from pkgdepot.core.exceptions import ExecutionError
from pkgdepot.core.git import REFSPECS, GitBackend
from pkgdepot.utils.shell import CommandResult, LocalExecutor


class RecordingExecutor:
    def __init__(self, results: list[CommandResult] | None = None) -> None:
        self.calls: list[tuple[list[str], dict | None]] = []
        self.results = results or []

    def execute(self, cmd, *, cwd=".", env=None, timeout=None) -> CommandResult:
        self.calls.append((cmd, env))
        return self.results.pop(0) if self.results else CommandResult(0, "", "")


class TestLocalExecutor:
    def test_success(self, tmp_path: Path) -> None:
        r = LocalExecutor().execute(["echo", "hello"], cwd=str(tmp_path))
        assert r.success
        assert "hello" in r.stdout

    def test_failure(self, tmp_path: Path) -> None:
        r = LocalExecutor().execute(["false"], cwd=str(tmp_path))
        assert not r.success


class TestGitBackendCommands:
    def test_clone_bare(self, tmp_path: Path) -> None:
        ex = RecordingExecutor()
        GitBackend(ex).clone_bare("https://m/a.git", tmp_path / "up" / "a")
        cmd, _ = ex.calls[0]
        assert cmd[:3] == ["git", "clone", "--bare"]
        assert cmd[-2:] == ["https://m/a.git", str(tmp_path / "up" / "a")]
        assert (tmp_path / "up").is_dir()

    def test_fetch_uses_cache_refspec(self, tmp_path: Path) -> None:
        ex = RecordingExecutor()
        GitBackend(ex).fetch(tmp_path, "https://m/b.git")
        cmd, _ = ex.calls[0]
        assert cmd[-2:] == ["https://m/b.git", *REFSPECS]
        assert REFSPECS == ["+refs/*:refs/remotes/cache/*"]

    def test_object_type(self, tmp_path: Path) -> None:
        ex = RecordingExecutor([CommandResult(0, "tree\n", ""), CommandResult(128, "", "fatal")])
        backend = GitBackend(ex)
        assert backend.object_type(tmp_path, sha(1)) == "tree"
        assert backend.object_type(tmp_path, sha(2)) is None

    def test_object_type_missing_repo(self, tmp_path: Path) -> None:
        with pytest.raises(ExecutionError, match="不存在"):
            GitBackend(RecordingExecutor()).object_type(tmp_path / "none", sha(1))

    def test_checkout_uses_private_index(self, tmp_path: Path) -> None:
        ex = RecordingExecutor()
        GitBackend(ex).checkout_tree(tmp_path / "repo", sha(1), tmp_path / "dest")
        (read_tree, env1), (checkout, env2) = ex.calls
        assert "read-tree" in read_tree
        assert "checkout-index" in checkout and "--force" in checkout
        assert env1["GIT_INDEX_FILE"] == env2["GIT_INDEX_FILE"]
        assert not env1["GIT_INDEX_FILE"].startswith(str(tmp_path / "repo"))

    def test_failure_raises(self, tmp_path: Path) -> None:
        ex = RecordingExecutor([CommandResult(128, "", "fatal: repository not found")])
        with pytest.raises(ExecutionError, match="clone.*repository not found"):
            GitBackend(ex).clone_bare("https://m/x.git", tmp_path / "x")
