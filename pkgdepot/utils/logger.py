"""pkgdepot 日志配置

文本格式面向终端；JSON 格式面向 CI，安装相关记录附带包上下文字段
（package / uuid / hash / url），便于按包过滤。
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Mapping
from datetime import datetime, timezone
from uuid import UUID

LOG_LEVEL_ENV = "PKGDEPOT_LOG_LEVEL"
LOG_JSON_ENV = "PKGDEPOT_LOG_JSON"

CONTEXT_FIELDS = ("package", "uuid", "hash", "url")

_TEXT_FORMAT = "%(asctime)s [%(levelname)-7s] %(name)s: %(message)s"


def package_context(
    uuid: UUID, name: str, hash: str | None = None, url: str | None = None,
) -> dict[str, str]:
    """构造日志 extra，只包含给出的字段"""
    ctx = {"package": name, "uuid": str(uuid)}
    if hash:
        ctx["hash"] = hash
    if url:
        ctx["url"] = url
    return ctx


class JSONFormatter(logging.Formatter):
    """结构化 JSON 日志格式器

    输出示例:
        {"timestamp": "...", "level": "INFO", "logger": "pkgdepot.core.installer",
         "message": "安装 A @ ...", "package": "A", "uuid": "...", "hash": "..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """配置根日志器，输出到 stderr，重复调用会替换已有 handler"""
    root = logging.getLogger()
    reset_logging()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if json_output else logging.Formatter(_TEXT_FORMAT))
    root.addHandler(handler)


def setup_logging_from_env(environ: Mapping[str, str] | None = None) -> None:
    """按 PKGDEPOT_LOG_LEVEL / PKGDEPOT_LOG_JSON 配置日志"""
    env = os.environ if environ is None else environ
    setup_logging(
        level=env.get(LOG_LEVEL_ENV, "INFO"),
        json_output=env.get(LOG_JSON_ENV, "") == "1",
    )


def reset_logging() -> None:
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
