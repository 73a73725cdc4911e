"""集中配置管理

配置以不可变快照 (Config) 的形式显式传入各服务，核心层不读取任何全局状态。
快照从 YAML 文件加载；增删仓库、修改超时等写操作会重写文件并返回新快照。

配置文件示例:

    install_root: /usr/local/erlware
    fetch_repos:
      - http://repo.erlware.org/pub
    publish_repos: []
    request_timeout: 120000      # 毫秒，或 infinity
    force_policy: ask            # always | never | ask
    runtime_vsn: "5.6.3"
    max_install_attempts: 0      # 0 表示不限
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from rtpkg.core.exceptions import ConfigError
from rtpkg.core.models import ForcePolicy
from rtpkg.core.repo_paths import default_compat_chain, system_tag
from rtpkg.utils.net import validate_url_scheme
from rtpkg.utils.yaml_io import load_yaml, save_yaml

logger = logging.getLogger(__name__)

DEFAULT_REPO = "http://repo.erlware.org/pub"
DEFAULT_TIMEOUT_MS = 120000
INFINITY = "infinity"

FETCH_REPOS = "fetch_repos"
PUBLISH_REPOS = "publish_repos"


def default_config_path() -> Path:
    env = os.environ.get("RTPKG_CONFIG", "").strip()
    if env:
        return Path(env)
    return Path.home() / ".rtpkg" / "config.yml"


def _default_install_root() -> str:
    return os.environ.get("RTPKG_HOME", "").strip() or str(Path.home() / ".rtpkg")


@dataclass(frozen=True)
class Config:
    """配置快照"""

    install_root: str = field(default_factory=_default_install_root)
    fetch_repos: tuple[str, ...] = (DEFAULT_REPO,)
    publish_repos: tuple[str, ...] = ()
    request_timeout: int | None = DEFAULT_TIMEOUT_MS   # None 表示 infinity
    force_policy: ForcePolicy = ForcePolicy.ASK
    runtime_vsn: str = ""
    compat_tiers: tuple[str, ...] = ()
    system_tag: str = ""
    max_install_attempts: int = 0
    scratch_dir: str = ""

    # 放不到字段里的配置项
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def compat_chain(self) -> list[str]:
        """兼容层回退链，显式配置优先"""
        if self.compat_tiers:
            return list(self.compat_tiers)
        return default_compat_chain(self.runtime_vsn)

    @property
    def platform_tag(self) -> str:
        return self.system_tag or system_tag()

    @property
    def timeout_label(self) -> str:
        return INFINITY if self.request_timeout is None else str(self.request_timeout)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        known = {f.name for f in fields(cls)} - {"extra"}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                continue
            kwargs[key] = value

        for key in (FETCH_REPOS, PUBLISH_REPOS, "compat_tiers"):
            if key in kwargs:
                kwargs[key] = _as_str_tuple(key, kwargs[key])
        if "request_timeout" in kwargs:
            kwargs["request_timeout"] = parse_timeout(kwargs["request_timeout"])
        if "force_policy" in kwargs:
            kwargs["force_policy"] = _parse_force_policy(kwargs["force_policy"])
        if "max_install_attempts" in kwargs:
            kwargs["max_install_attempts"] = _parse_attempts(kwargs["max_install_attempts"])
        for key in ("install_root", "runtime_vsn", "system_tag", "scratch_dir"):
            if key in kwargs:
                kwargs[key] = "" if kwargs[key] is None else str(kwargs[key])

        extra = {k: v for k, v in data.items() if k not in known}
        return cls(**kwargs, extra=extra)

    @classmethod
    def from_file(cls, path: str | Path | None = None) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认值"""
        p = Path(path) if path else default_config_path()
        try:
            data = load_yaml(p)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"读取配置文件失败: {p}: {e}") from e
        cfg = cls.from_dict(data)
        logger.debug("配置已加载: %s", p)
        return cfg

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("extra")
        data[FETCH_REPOS] = list(self.fetch_repos)
        data[PUBLISH_REPOS] = list(self.publish_repos)
        data["compat_tiers"] = list(self.compat_tiers)
        data["force_policy"] = self.force_policy.value
        data["request_timeout"] = (
            INFINITY if self.request_timeout is None else self.request_timeout
        )
        data.update(self.extra)
        return data

    def with_overrides(self, **changes: Any) -> Config:
        return replace(self, **changes)


def parse_timeout(value: Any) -> int | None:
    """毫秒整数或 'infinity'"""
    if value is None or (isinstance(value, str) and value.strip().lower() == INFINITY):
        return None
    try:
        timeout = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"request_timeout 必须为毫秒整数或 infinity: {value!r}") from e
    if timeout <= 0:
        raise ConfigError(f"request_timeout 必须为正数: {value!r}")
    return timeout


def _parse_force_policy(value: Any) -> ForcePolicy:
    try:
        return ForcePolicy(str(value).lower())
    except ValueError as e:
        choices = ", ".join(p.value for p in ForcePolicy)
        raise ConfigError(f"force_policy 取值无效: {value!r}，可选: {choices}") from e


def _parse_attempts(value: Any) -> int:
    try:
        attempts = int(value or 0)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"max_install_attempts 必须为整数: {value!r}") from e
    if attempts < 0:
        raise ConfigError(f"max_install_attempts 不能为负数: {value!r}")
    return attempts


def _as_str_tuple(key: str, value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"{key} 必须是列表: {value!r}")
    return tuple(str(v) for v in value)


# =========================================================================
# 配置文件修改（仅 CLI 使用）
# =========================================================================

def _load_raw(path: Path) -> dict[str, Any]:
    try:
        return load_yaml(path)
    except (yaml.YAMLError, ValueError) as e:
        raise ConfigError(f"读取配置文件失败: {path}: {e}") from e


def _modify_list(path: Path, key: str, update: Any) -> Config:
    data = _load_raw(path)
    current = Config.from_dict(data)
    values = list(getattr(current, key))
    data[key] = update(values)
    save_yaml(path, data)
    logger.info("配置已更新: %s.%s = %s", path, key, data[key])
    return Config.from_dict(data)


def add_repo(path: str | Path, repo: str, *, key: str = FETCH_REPOS) -> Config:
    """新仓库插入到列表最前（最高优先级），已存在则不重复添加"""
    validate_url_scheme(repo, context="仓库地址")
    return _modify_list(
        Path(path), key,
        lambda values: values if repo in values else [repo, *values],
    )


def remove_repo(path: str | Path, repo: str, *, key: str = FETCH_REPOS) -> Config:
    return _modify_list(
        Path(path), key,
        lambda values: [v for v in values if v != repo],
    )


def set_request_timeout(path: str | Path, timeout: Any) -> Config:
    p = Path(path)
    parsed = parse_timeout(timeout)
    data = _load_raw(p)
    data["request_timeout"] = INFINITY if parsed is None else parsed
    save_yaml(p, data)
    logger.info("配置已更新: %s.request_timeout = %s", p, data["request_timeout"])
    return Config.from_dict(data)
