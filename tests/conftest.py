"""公共测试夹具: 磁盘注册表构造器 + 假版本控制后端"""

from __future__ import annotations

from pathlib import Path
from uuid import UUID

import pytest

from pkgdepot.core.config import Config
from pkgdepot.core.environment import Environment
from pkgdepot.core.installer import Installer
from pkgdepot.core.operations import Context
from pkgdepot.core.registry import RegistryIndex
from pkgdepot.utils.yaml_io import load_yaml, save_yaml

UUID_A = UUID("00000000-0000-0000-0000-00000000000a")
UUID_B = UUID("00000000-0000-0000-0000-00000000000b")
UUID_C = UUID("00000000-0000-0000-0000-00000000000c")
UUID_X = UUID("00000000-0000-0000-0000-0000000000ff")


def sha(n: int) -> str:
    return f"{n:040x}"


class RegistryBuilder:
    """在 tmp 目录下生成注册表"""

    def __init__(self, root: Path, name: str = "General") -> None:
        self.root = root
        self.name = name
        root.mkdir(parents=True, exist_ok=True)
        save_yaml(root / "Registry.yml", {"name": name, "packages": {}})

    def package(
        self,
        name: str,
        uuid: UUID,
        versions: dict[str, str],
        *,
        repo: str = "",
        deps: dict[str, dict[str, str]] | None = None,
        compat: dict[str, dict[str, str]] | None = None,
    ) -> Path:
        path = self.root / name
        path.mkdir(parents=True, exist_ok=True)
        save_yaml(path / "package.yml", {
            "name": name, "uuid": str(uuid),
            "repo": repo or f"https://example.com/{self.name}/{name}.git",
        })
        save_yaml(path / "versions.yml", {v: {"hash-sha1": h} for v, h in versions.items()})
        if deps:
            save_yaml(path / "dependencies.yml", deps)
        if compat:
            save_yaml(path / "compatibility.yml", compat)
        reg = load_yaml(self.root / "Registry.yml")
        reg["packages"][str(uuid)] = {"name": name, "path": name}
        save_yaml(self.root / "Registry.yml", reg)
        return path


class FakeBackend:
    """按 URL 预置对象的假 git 后端，记录 clone / fetch 次数

    缓存仓库记住曾 clone / fetch 过的镜像，对象查询实时读取这些镜像的内容。
    """

    def __init__(self, objects: dict[str, dict[str, str]] | None = None) -> None:
        self.objects = objects or {}
        self.repos: dict[Path, list[str]] = {}
        self.clones: list[str] = []
        self.fetches: list[str] = []
        self.checkouts: list[tuple[str, Path]] = []

    def clone_bare(self, url: str, repo: Path) -> None:
        self.clones.append(url)
        repo.mkdir(parents=True, exist_ok=True)
        self.repos[repo] = [url]

    def fetch(self, repo: Path, url: str, refspecs: list[str] | None = None) -> None:
        self.fetches.append(url)
        self.repos.setdefault(repo, []).append(url)

    def object_type(self, repo: Path, obj: str) -> str | None:
        for url in self.repos.get(repo, []):
            kind = self.objects.get(url, {}).get(obj)
            if kind is not None:
                return kind
        return None

    def checkout_tree(self, repo: Path, tree: str, dest: Path) -> None:
        self.checkouts.append((tree, dest))
        (dest / "TREE").write_text(tree)


@pytest.fixture()
def registry(tmp_path: Path) -> RegistryBuilder:
    return RegistryBuilder(tmp_path / "registries" / "General")


@pytest.fixture()
def make_context(tmp_path: Path, registry: RegistryBuilder):
    """基于 tmp 目录构造工作流上下文，所有镜像默认提供注册表中声明的全部哈希"""

    def _make(backend: FakeBackend | None = None, host_version: str = "3.11.4") -> Context:
        config = Config(
            depots=[str(tmp_path / "depot")],
            registries=[str(registry.root)],
            project_file=str(tmp_path / "Project.yml"),
            manifest_file=str(tmp_path / "Manifest.yml"),
            max_workers=1,
            host_version=host_version,
        )
        if backend is None:
            backend = FakeBackend(tree_objects(registry.root))
        return Context(
            config=config,
            env=Environment.load(config.project_file, config.manifest_file),
            index=RegistryIndex(config.registries, config.depots),
            installer=Installer(config.depot_paths, backend, config.max_workers),
        )

    return _make


def tree_objects(root: Path) -> dict[str, dict[str, str]]:
    objects: dict[str, dict[str, str]] = {}
    for pkg in root.iterdir():
        if not (pkg / "package.yml").exists():
            continue
        repo = load_yaml(pkg / "package.yml")["repo"]
        for info in load_yaml(pkg / "versions.yml").values():
            objects.setdefault(repo, {})[info["hash-sha1"]] = "tree"
    return objects
