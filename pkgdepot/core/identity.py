"""包身份解析：为求解结果中的每个包确定名称、内容哈希与上游镜像列表"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from uuid import UUID

from semantic_version import Version

from pkgdepot.core.exceptions import HashNotFoundError, NameMismatchError
from pkgdepot.core.registry import RegistryIndex, load_package_info, load_versions

logger = logging.getLogger(__name__)


def version_data(
    index: RegistryIndex,
    versions: Mapping[UUID, Version],
) -> tuple[dict[UUID, str], dict[UUID, str], dict[UUID, list[str]]]:
    """返回 (names, hashes, upstreams)

    - 名称在注册表之间不一致是致命错误
    - 哈希以第一个找到的为准，后续不一致只告警
    - 镜像 URL 去重并排序
    """
    names: dict[UUID, str] = {}
    hashes: dict[UUID, str] = {}
    upstreams: dict[UUID, list[str]] = {}
    for uuid, ver in versions.items():
        urls: set[str] = set()
        for path in index.registered_paths(uuid):
            info = load_package_info(path)
            if uuid in names:
                if names[uuid] != info["name"]:
                    raise NameMismatchError(
                        f"{uuid}: 注册表之间名称不一致: "
                        f"{names[uuid]} vs. {info['name']}"
                    )
            else:
                names[uuid] = info["name"]
            if info.get("repo"):
                urls.add(info["repo"])
            h = load_versions(path).get(ver)
            if h is None:
                continue
            if uuid not in hashes:
                hashes[uuid] = h
            elif hashes[uuid] != h:
                logger.warning("%s: 版本 %s 的哈希不一致: %s vs. %s", uuid, ver, hashes[uuid], h)
        if uuid not in hashes:
            raise HashNotFoundError(f"{uuid}: 所有注册表中都没有版本 {ver} 的内容哈希")
        upstreams[uuid] = sorted(urls)
    return names, hashes, upstreams
