"""CLI: 环境变更命令 add / rm / up / status"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import Any

import click

from pkgdepot.core import operations
from pkgdepot.core.config import Config
from pkgdepot.core.exceptions import PkgError
from pkgdepot.core.models import UpgradeLevel

logger = logging.getLogger(__name__)

_LEVELS = [level.value for level in UpgradeLevel]


def register(group: click.Group) -> None:
    group.add_command(add)
    group.add_command(rm)
    group.add_command(up)
    group.add_command(status)


def _context(config: str) -> operations.Context:
    return operations.Context.from_config(Config.from_file(config))


def _friendly_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """把业务异常转为 click 错误输出（非零退出码）"""
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except PkgError as e:
            raise click.ClickException(f"[{e.code}] {e}") from e
    return wrapper


config_option = click.option(
    "--config", "-c", default="pkgdepot.yml", help="配置文件路径",
)


@click.command()
@click.argument("specs", nargs=-1, required=True)
@config_option
@_friendly_errors
def add(specs: tuple[str, ...], config: str) -> None:
    """添加依赖: NAME | NAME@约束 | NAME=UUID[@约束]"""
    ctx = _context(config)
    pkgs = [operations.parse_request(ctx, s) for s in specs]
    versions = operations.add(ctx, pkgs)
    for _, entry in sorted(ctx.env.entries(), key=lambda x: x[0]):
        if entry.uuid in versions:
            click.echo(f"  {_name_of(ctx, entry.uuid):20s} {entry.version}")


@click.command()
@click.argument("names", nargs=-1, required=True)
@config_option
@_friendly_errors
def rm(names: tuple[str, ...], config: str) -> None:
    """删除依赖（连同所有依赖它的包）"""
    ctx = _context(config)
    pkgs = []
    for name in names:
        try:
            pkgs.append(operations.lookup_package(ctx, name))
        except PkgError as e:
            logger.warning("跳过 %s: %s", name, e)
    dropped = operations.rm(ctx, pkgs)
    click.echo(f"已删除 {len(dropped)} 个包")


@click.command()
@click.argument("names", nargs=-1)
@click.option("--direct", type=click.Choice(_LEVELS), default="patch", help="直接依赖升级级别")
@click.option("--indirect", type=click.Choice(_LEVELS), default="major", help="间接依赖升级级别")
@config_option
@_friendly_errors
def up(names: tuple[str, ...], direct: str, indirect: str, config: str) -> None:
    """升级依赖（默认全部直接依赖）"""
    ctx = _context(config)
    before = {e.uuid: e.version for _, e in ctx.env.entries()}
    versions = operations.up(
        ctx, list(names) or None,
        direct=UpgradeLevel(direct), indirect=UpgradeLevel(indirect),
    )
    changed = 0
    for uuid, ver in versions.items():
        old = before.get(uuid, "")
        if old != str(ver):
            changed += 1
            click.echo(f"  {_name_of(ctx, uuid):20s} {old or '(新增)'} -> {ver}")
    if not changed:
        click.echo("所有依赖均已是允许范围内的最新版本。")


@click.command()
@config_option
@_friendly_errors
def status(config: str) -> None:
    """显示项目直接依赖与锁定的全部包"""
    ctx = _context(config)
    env = ctx.env
    if not env.manifest:
        click.echo("环境为空。")
        return
    direct = set(env.deps.values())
    for name, entry in sorted(env.entries(), key=lambda x: x[0]):
        marker = "*" if entry.uuid in direct else " "
        path = operations.installed_path(ctx, entry.uuid)
        where = str(path) if path else "(未安装)"
        click.echo(f"{marker} {name:20s} {entry.version:12s} {entry.uuid}  {where}")


def _name_of(ctx: operations.Context, uuid: Any) -> str:
    for name, entry in ctx.env.entries():
        if entry.uuid == uuid:
            return name
    return str(uuid)
