"""CLI — 安装 / 删除 / 升级命令"""

from __future__ import annotations

import click

from rtpkg.cli import _svc
from rtpkg.core.models import PackageKind, PackageRef
from rtpkg.core.repo_paths import RUNTIME_NAME


def register(group: click.Group) -> None:
    group.add_command(install)
    group.add_command(install_app)
    group.add_command(install_runtime)
    group.add_command(remove)
    group.add_command(remove_app)
    group.add_command(upgrade)
    group.add_command(upgrade_all)
    group.add_command(upgrade_app)
    group.add_command(upgrade_all_apps)
    group.add_command(outdated)
    group.add_command(outdated_apps)


# ---- 安装 ----

def _install(kind: PackageKind, target: str, version: str | None) -> None:
    outcome = _svc().install.install(kind, target, version)
    if outcome.skipped:
        click.echo(f"已安装，跳过: {outcome.ref.label}")
    else:
        click.echo(f"安装完成: {outcome.ref.label} -> {outcome.path}")


@click.command()
@click.argument("target")
@click.argument("version", required=False)
def install(target: str, version: str | None) -> None:
    """安装发布包（TARGET 为包名或本地归档/目录，不指定版本则取最新）"""
    _install(PackageKind.RELEASE, target, version)


@click.command(name="install-app")
@click.argument("target")
@click.argument("version", required=False)
def install_app(target: str, version: str | None) -> None:
    """安装应用（TARGET 为包名或本地归档/目录，不指定版本则取最新）"""
    _install(PackageKind.APPLICATION, target, version)


@click.command(name="install-runtime")
@click.argument("version")
def install_runtime(version: str) -> None:
    """安装指定版本的运行时"""
    outcome = _svc().install.install_remote(
        PackageRef(PackageKind.RUNTIME, RUNTIME_NAME, version),
    )
    if outcome.skipped:
        click.echo(f"已安装，跳过: {outcome.ref.label}")
    else:
        click.echo(f"运行时安装完成: {outcome.ref.label} -> {outcome.path}")


# ---- 删除 ----

def _remove(kind: PackageKind, name: str, version: str | None) -> None:
    removed = _svc().manage.remove(kind, name, version)
    click.echo(f"已删除 {name}: {', '.join(removed)}")


@click.command()
@click.argument("name")
@click.argument("version", required=False)
def remove(name: str, version: str | None) -> None:
    """删除已安装的发布（不指定版本则删除全部版本）"""
    _remove(PackageKind.RELEASE, name, version)


@click.command(name="remove-app")
@click.argument("name")
@click.argument("version", required=False)
def remove_app(name: str, version: str | None) -> None:
    """删除已安装的应用（不指定版本则删除全部版本）"""
    _remove(PackageKind.APPLICATION, name, version)


# ---- 升级 ----

def _upgrade(kind: PackageKind, name: str) -> None:
    result = _svc().manage.upgrade(kind, name)
    if result.upgraded:
        click.echo(f"已升级 {name}: {result.local_version} -> {result.remote_version}")
    else:
        click.echo(f"{name} 已是最新 ({result.local_version})")


def _upgrade_all(kind: PackageKind) -> None:
    results, failures = _svc().manage.upgrade_all(kind)
    for r in results:
        if r.upgraded:
            click.echo(f"  已升级 {r.name:20s} {r.local_version} -> {r.remote_version}")
        else:
            click.echo(f"  已是最新 {r.name:20s} {r.local_version}")
    for name, reason in failures:
        click.echo(f"  失败 {name:20s} {reason}", err=True)
    if not results and not failures:
        click.echo("没有已安装的包。")


@click.command()
@click.argument("name")
def upgrade(name: str) -> None:
    """把发布升级到远程最新版本"""
    _upgrade(PackageKind.RELEASE, name)


@click.command(name="upgrade-all")
def upgrade_all() -> None:
    """升级全部已安装的发布"""
    _upgrade_all(PackageKind.RELEASE)


@click.command(name="upgrade-app")
@click.argument("name")
def upgrade_app(name: str) -> None:
    """把应用升级到远程最新版本"""
    _upgrade(PackageKind.APPLICATION, name)


@click.command(name="upgrade-all-apps")
def upgrade_all_apps() -> None:
    """升级全部已安装的应用"""
    _upgrade_all(PackageKind.APPLICATION)


# ---- 过期检查 ----

def _outdated(kind: PackageKind) -> None:
    reports = _svc().manage.outdated_set(kind)
    if not reports:
        click.echo("全部已是最新。")
        return
    for r in reports:
        click.echo(f"  {r.name:20s} {r.local_version:12s} -> {r.remote_version}")


@click.command()
def outdated() -> None:
    """列出有新版本的已安装发布"""
    _outdated(PackageKind.RELEASE)


@click.command(name="outdated-apps")
def outdated_apps() -> None:
    """列出有新版本的已安装应用"""
    _outdated(PackageKind.APPLICATION)
