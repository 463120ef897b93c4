"""注册表索引与版本区间表展开测试"""

from __future__ import annotations

from pathlib import Path

import pytest
from semantic_version import SimpleSpec, Version

from conftest import UUID_A, UUID_B, RegistryBuilder, sha
from pkgdepot.core.exceptions import DuplicateKeyError, RegistryError
from pkgdepot.core.models import parse_spec, parse_uuid
from pkgdepot.core.registry import RegistryIndex, load_package_data, load_versions
from pkgdepot.utils.yaml_io import save_yaml


class TestLoadPackageData:
    def test_expand_ranges_per_version(self, tmp_path: Path) -> None:
        f = tmp_path / "dependencies.yml"
        save_yaml(f, {
            ">=1.0.0,<2.0.0": {"B": str(UUID_B)},
            ">=1.1.0": {"C": str(UUID_A)},
        })
        vers = [Version("1.0.0"), Version("1.1.0"), Version("2.0.0")]
        data = load_package_data(parse_uuid, f, vers)
        assert data[Version("1.0.0")] == {"B": UUID_B}
        assert data[Version("1.1.0")] == {"B": UUID_B, "C": UUID_A}
        assert data[Version("2.0.0")] == {"C": UUID_A}

    def test_duplicate_key_in_overlapping_ranges(self, tmp_path: Path) -> None:
        f = tmp_path / "compatibility.yml"
        save_yaml(f, {"^1.0": {"B": "*"}, ">=1.2.0": {"B": "^2.0"}})
        with pytest.raises(DuplicateKeyError, match="1.2.0/B"):
            load_package_data(parse_spec, f, [Version("1.2.0")])

    def test_overlap_without_shared_key_is_fine(self, tmp_path: Path) -> None:
        f = tmp_path / "compatibility.yml"
        save_yaml(f, {"^1.0": {"B": "*"}, ">=1.2.0": {"python": ">=3.8.0"}})
        data = load_package_data(parse_spec, f, [Version("1.2.0")])
        assert set(data[Version("1.2.0")]) == {"B", "python"}
        assert isinstance(data[Version("1.2.0")]["python"], SimpleSpec)

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert load_package_data(parse_uuid, tmp_path / "nope.yml", [Version("1.0.0")]) == {}

    def test_bad_range_key(self, tmp_path: Path) -> None:
        f = tmp_path / "dependencies.yml"
        save_yaml(f, {"not a range": {"B": str(UUID_B)}})
        with pytest.raises(RegistryError, match="无效的版本区间"):
            load_package_data(parse_uuid, f, [Version("1.0.0")])


class TestLoadVersions:
    def test_versions_to_hashes(self, registry: RegistryBuilder) -> None:
        path = registry.package("A", UUID_A, {"1.0.0": sha(1), "1.1.0": sha(2)})
        assert load_versions(path) == {Version("1.0.0"): sha(1), Version("1.1.0"): sha(2)}

    def test_missing_hash_raises(self, tmp_path: Path) -> None:
        save_yaml(tmp_path / "versions.yml", {"1.0.0": {}})
        with pytest.raises(RegistryError, match="hash-sha1"):
            load_versions(tmp_path)


class TestRegistryIndex:
    def test_registered_paths_and_names(self, registry: RegistryBuilder) -> None:
        path = registry.package("A", UUID_A, {"1.0.0": sha(1)})
        index = RegistryIndex([registry.root])
        assert index.registered_paths(UUID_A) == [path]
        assert index.registered_paths(UUID_B) == []
        assert index.find_registered("A") == {UUID_A: [path]}
        assert index.find_registered("missing") == {}

    def test_same_uuid_in_two_registries(self, tmp_path: Path) -> None:
        r1 = RegistryBuilder(tmp_path / "r1", "R1")
        r2 = RegistryBuilder(tmp_path / "r2", "R2")
        p1 = r1.package("A", UUID_A, {"1.0.0": sha(1)})
        p2 = r2.package("A", UUID_A, {"1.0.0": sha(1)})
        index = RegistryIndex([r1.root, r2.root])
        assert index.registered_paths(UUID_A) == [p1, p2]

    def test_refresh_discovers_depot_registries(self, tmp_path: Path) -> None:
        depot = tmp_path / "depot"
        index = RegistryIndex(depots=[depot])
        assert index.registered_paths(UUID_A) == []

        reg = RegistryBuilder(depot / "registries" / "Late", "Late")
        reg.package("A", UUID_A, {"1.0.0": sha(1)})
        index.refresh([UUID_A])
        assert len(index.registered_paths(UUID_A)) == 1

    def test_invalid_uuid_ignored(self, tmp_path: Path) -> None:
        root = tmp_path / "bad"
        save_yaml(root / "Registry.yml", {"packages": {"not-a-uuid": {"name": "x", "path": "x"}}})
        index = RegistryIndex([root])
        assert index.find_registered("x") == {}
