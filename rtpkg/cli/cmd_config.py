"""CLI — 仓库列表与请求超时配置"""

from __future__ import annotations

import click

from rtpkg.cli import _config_path, _svc
from rtpkg.core.config import (
    FETCH_REPOS,
    PUBLISH_REPOS,
    Config,
    add_repo,
    remove_repo,
    set_request_timeout,
)


def register(group: click.Group) -> None:
    group.add_command(add_repo_cmd)
    group.add_command(remove_repo_cmd)
    group.add_command(show_repos)
    group.add_command(add_publish_repo)
    group.add_command(remove_publish_repo)
    group.add_command(show_publish_repos)
    group.add_command(set_request_timeout_cmd)
    group.add_command(show_request_timeout)


def _echo_repos(repos: tuple[str, ...]) -> None:
    if not repos:
        click.echo("没有已配置的仓库。")
        return
    for i, repo in enumerate(repos, 1):
        click.echo(f"  {i}. {repo}")


# ---- 拉取仓库 ----

@click.command(name="add-repo")
@click.argument("repo")
def add_repo_cmd(repo: str) -> None:
    """添加拉取仓库（插入到最高优先级）"""
    cfg = add_repo(_config_path(), repo, key=FETCH_REPOS)
    click.echo(f"已添加仓库: {repo}")
    _echo_repos(cfg.fetch_repos)


@click.command(name="remove-repo")
@click.argument("repo")
def remove_repo_cmd(repo: str) -> None:
    """删除拉取仓库"""
    cfg = remove_repo(_config_path(), repo, key=FETCH_REPOS)
    click.echo(f"已删除仓库: {repo}")
    _echo_repos(cfg.fetch_repos)


@click.command(name="show-repos")
def show_repos() -> None:
    """按优先级列出拉取仓库"""
    _echo_repos(_svc().config.fetch_repos)


# ---- 发布仓库 ----

@click.command(name="add-publish-repo")
@click.argument("repo")
def add_publish_repo(repo: str) -> None:
    """添加发布仓库"""
    cfg = add_repo(_config_path(), repo, key=PUBLISH_REPOS)
    click.echo(f"已添加发布仓库: {repo}")
    _echo_repos(cfg.publish_repos)


@click.command(name="remove-publish-repo")
@click.argument("repo")
def remove_publish_repo(repo: str) -> None:
    """删除发布仓库"""
    cfg = remove_repo(_config_path(), repo, key=PUBLISH_REPOS)
    click.echo(f"已删除发布仓库: {repo}")
    _echo_repos(cfg.publish_repos)


@click.command(name="show-publish-repos")
def show_publish_repos() -> None:
    """列出发布仓库"""
    _echo_repos(_svc().config.publish_repos)


# ---- 请求超时 ----

@click.command(name="set-request-timeout")
@click.argument("timeout")
def set_request_timeout_cmd(timeout: str) -> None:
    """设置单次网络请求超时（毫秒，或 infinity）"""
    cfg: Config = set_request_timeout(_config_path(), timeout)
    click.echo(f"请求超时已设置为: {cfg.timeout_label}")


@click.command(name="show-request-timeout")
def show_request_timeout() -> None:
    """显示单次网络请求超时"""
    click.echo(_svc().config.timeout_label)
