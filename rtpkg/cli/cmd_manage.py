"""CLI — 检索、已安装列表、发布、元信息与环境信息"""

from __future__ import annotations

import click

from rtpkg import __version__
from rtpkg.cli import _svc
from rtpkg.core.exceptions import PublishError
from rtpkg.core.models import (
    LATEST,
    PublishAllFailed,
    SearchMode,
    SearchSide,
)


def register(group: click.Group) -> None:
    group.add_command(search)
    group.add_command(installed)
    group.add_command(publish)
    group.add_command(describe_app)
    group.add_command(environment)
    group.add_command(help_cmd)
    group.add_command(version)


_SIDE_CHOICE = click.Choice([s.value for s in SearchSide])


def _echo_names(title: str, names: list[str]) -> None:
    click.echo(f"{title}:")
    if not names:
        click.echo("  (无)")
    for name in names:
        click.echo(f"  {name}")


# ---- 检索 ----

@click.command()
@click.argument("query", default="")
@click.option("--side", default=SearchSide.BOTH.value, type=_SIDE_CHOICE, help="检索范围")
@click.option(
    "--mode", default=SearchMode.NORMAL.value,
    type=click.Choice([m.value for m in SearchMode]), help="子串匹配或正则匹配",
)
def search(query: str, side: str, mode: str) -> None:
    """在所有仓库中检索包名（QUERY 为空时列出全部）"""
    result = _svc().manage.search(SearchSide(side), query, SearchMode(mode))
    if side != SearchSide.RELEASES.value:
        _echo_names("应用", result.applications)
    if side != SearchSide.LIB.value:
        _echo_names("发布", result.releases)


@click.command()
@click.option("--side", default=SearchSide.BOTH.value, type=_SIDE_CHOICE, help="列出范围")
def installed(side: str) -> None:
    """列出本地已安装的应用与发布"""
    listing = _svc().manage.installed(SearchSide(side))
    titles = {"applications": "应用", "releases": "发布"}
    for key, packages in listing.items():
        click.echo(f"{titles[key]}:")
        if not packages:
            click.echo("  (无)")
        for p in packages:
            click.echo(f"  {p.name:20s} {p.version}")


# ---- 发布 ----

@click.command()
@click.argument("path", type=click.Path(exists=True))
def publish(path: str) -> None:
    """把本地包目录或归档发布到所有发布仓库"""
    report = _svc().publish.publish(path)
    for suffix, outcome in report.outcomes:
        click.echo(f"{suffix}:")
        for url in getattr(outcome, "urls", []):
            click.echo(f"  成功 {url}")
        for f in getattr(outcome, "failures", []):
            click.echo(f"  失败 {f.repo}: {f.reason}", err=True)
    if report.success:
        click.echo(f"发布完成: {report.ref.label}")
        return
    if all(isinstance(o, PublishAllFailed) for _, o in report.outcomes):
        raise PublishError(f"{report.ref.label} 发布到所有仓库均失败", report)
    raise PublishError(f"{report.ref.label} 部分仓库发布失败，可针对失败仓库重试", report)


@click.command(name="describe-app")
@click.argument("name")
@click.argument("version", required=False)
def describe_app(name: str, version: str | None) -> None:
    """显示应用的 .app 元信息（不指定版本则取最新）"""
    click.echo(_svc().manage.describe_app(name, version or LATEST))


# ---- 环境 ----

@click.command()
def environment() -> None:
    """显示当前配置与运行环境"""
    env = _svc().manage.environment()
    click.echo(f"版本:       {env['version']}")
    click.echo(f"安装目录:   {env['install_root']}")
    click.echo(f"请求超时:   {env['request_timeout']}")
    click.echo(f"覆盖策略:   {env['force_policy']}")
    click.echo(f"平台标签:   {env['system_tag']}")
    click.echo(f"兼容层:     {' -> '.join(env['compat_chain'])}")
    _echo_names("拉取仓库", env["fetch_repos"])
    _echo_names("发布仓库", env["publish_repos"])


@click.command(name="help")
@click.argument("command", required=False)
@click.pass_context
def help_cmd(ctx: click.Context, command: str | None) -> None:
    """显示全部命令或指定命令的帮助"""
    parent = ctx.parent
    assert parent is not None
    group = parent.command
    if command is None:
        click.echo(group.get_help(parent))
        return
    cmd = group.get_command(parent, command) if isinstance(group, click.Group) else None
    if cmd is None:
        raise click.UsageError(f"未知命令: {command}", ctx=ctx)
    with click.Context(cmd, info_name=command, parent=parent) as sub_ctx:
        click.echo(cmd.get_help(sub_ctx))


@click.command()
def version() -> None:
    """显示 rtpkg 版本"""
    click.echo(__version__)
