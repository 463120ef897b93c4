"""pkgdepot 命令行接口

各领域命令模块注册自己的命令到 main group。
"""

import click

from pkgdepot import __version__
from pkgdepot.utils.logger import setup_logging_from_env


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """pkgdepot - 包管理器"""
    setup_logging_from_env()


from pkgdepot.cli.cmd_pkg import register as _reg_pkg  # noqa: E402

_reg_pkg(main)
