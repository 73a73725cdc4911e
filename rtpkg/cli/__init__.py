"""rtpkg 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
业务异常 (RtpkgError) 统一转为 click 错误提示并以非零码退出。
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import click

from rtpkg import __version__
from rtpkg.core.config import Config, default_config_path
from rtpkg.core.exceptions import PackageNotFoundError, RtpkgError
from rtpkg.core.models import ForcePolicy
from rtpkg.services.container import ServiceContainer
from rtpkg.utils.logger import setup_logging


class ClickConfirmer:
    """交互式覆盖确认"""

    def confirm(self, message: str) -> bool:
        return click.confirm(message, default=False)


@dataclass
class CliState:
    config_path: Path
    force: ForcePolicy | None = None
    container: ServiceContainer | None = None


def _state() -> CliState:
    state = click.get_current_context().find_object(CliState)
    if state is None:
        state = CliState(config_path=default_config_path())
    return state


def _config_path() -> Path:
    return _state().config_path


def _svc() -> ServiceContainer:
    """本次调用的服务容器（首次访问时加载配置）"""
    state = _state()
    if state.container is None:
        cfg = Config.from_file(state.config_path)
        if state.force is not None:
            cfg = cfg.with_overrides(force_policy=state.force)
        state.container = ServiceContainer(cfg, confirmer=ClickConfirmer())
    return state.container


def _format_error(e: RtpkgError) -> str:
    lines = [f"[{e.code}] {e}"]
    if isinstance(e, PackageNotFoundError):
        for tier, repo, reason in e.failures:
            lines.append(f"  {tier:12s} {repo}: {reason}")
    return "\n".join(lines)


class RtpkgGroup(click.Group):
    """把业务异常映射为 click 错误"""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except RtpkgError as e:
            raise click.ClickException(_format_error(e)) from e


@click.group(cls=RtpkgGroup)
@click.version_option(version=__version__)
@click.option(
    "--config", "config_path", default=None, type=click.Path(dir_okay=False),
    help="配置文件路径（默认 $RTPKG_CONFIG 或 ~/.rtpkg/config.yml）",
)
@click.option(
    "--force/--no-overwrite", default=None,
    help="已安装时总是覆盖 / 从不覆盖（默认按配置 force_policy）",
)
@click.pass_context
def main(ctx: click.Context, config_path: str | None, force: bool | None) -> None:
    """rtpkg - 运行时软件包管理器"""
    setup_logging(
        level=os.getenv("RTPKG_LOG_LEVEL", "WARNING"),
        json_output=os.getenv("RTPKG_LOG_JSON", "") == "1",
    )
    policy = None
    if force is not None:
        policy = ForcePolicy.ALWAYS if force else ForcePolicy.NEVER
    ctx.obj = CliState(
        config_path=Path(config_path) if config_path else default_config_path(),
        force=policy,
    )


# 注册各领域子命令
from rtpkg.cli.cmd_install import register as _reg_install  # noqa: E402
from rtpkg.cli.cmd_manage import register as _reg_manage  # noqa: E402
from rtpkg.cli.cmd_config import register as _reg_config  # noqa: E402

_reg_install(main)
_reg_manage(main)
_reg_config(main)
