"""配置快照与配置文件修改测试"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from rtpkg.core.config import (
    DEFAULT_REPO,
    PUBLISH_REPOS,
    Config,
    add_repo,
    default_config_path,
    parse_timeout,
    remove_repo,
    set_request_timeout,
)
from rtpkg.core.exceptions import ConfigError, ValidationError
from rtpkg.core.models import ForcePolicy


def _write(path: Path, data: dict) -> Path:
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestConfigLoad:
    def test_defaults_when_missing(self, tmp_path: Path) -> None:
        cfg = Config.from_file(tmp_path / "none.yml")
        assert cfg.fetch_repos == (DEFAULT_REPO,)
        assert cfg.publish_repos == ()
        assert cfg.request_timeout == 120000
        assert cfg.force_policy is ForcePolicy.ASK
        assert cfg.max_install_attempts == 0

    def test_from_file(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "c.yml", {
            "install_root": str(tmp_path / "root"),
            "fetch_repos": ["http://a", "http://b"],
            "request_timeout": "infinity",
            "force_policy": "never",
            "runtime_vsn": "5.6.3",
            "max_install_attempts": 3,
            "custom_key": 1,
        })
        cfg = Config.from_file(path)
        assert cfg.fetch_repos == ("http://a", "http://b")
        assert cfg.request_timeout is None
        assert cfg.timeout_label == "infinity"
        assert cfg.force_policy is ForcePolicy.NEVER
        assert cfg.max_install_attempts == 3
        assert cfg.extra == {"custom_key": 1}

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yml"
        path.write_text("fetch_repos: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigError, match="读取配置文件失败"):
            Config.from_file(path)

    @pytest.mark.parametrize(("data", "match"), [
        ({"force_policy": "sometimes"}, "force_policy"),
        ({"request_timeout": "soon"}, "request_timeout"),
        ({"max_install_attempts": -1}, "max_install_attempts"),
        ({"fetch_repos": {"a": 1}}, "fetch_repos"),
    ])
    def test_invalid_values(self, data: dict, match: str) -> None:
        with pytest.raises(ConfigError, match=match):
            Config.from_dict(data)

    def test_env_config_path(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("RTPKG_CONFIG", str(tmp_path / "x.yml"))
        assert default_config_path() == tmp_path / "x.yml"

    def test_to_dict_round_trips(self) -> None:
        cfg = Config(install_root="/opt/rt", request_timeout=None, compat_tiers=("5.6",))
        assert Config.from_dict(cfg.to_dict()) == cfg


class TestCompatChain:
    def test_runtime_then_generic(self) -> None:
        assert Config(runtime_vsn="5.6.3").compat_chain == ["5.6.3", "Generic"]

    def test_generic_only(self) -> None:
        assert Config().compat_chain == ["Generic"]

    def test_explicit_tiers_win(self) -> None:
        cfg = Config(runtime_vsn="5.6.3", compat_tiers=("5.6.3", "5.6", "Generic"))
        assert cfg.compat_chain == ["5.6.3", "5.6", "Generic"]


class TestParseTimeout:
    @pytest.mark.parametrize(("value", "expected"), [
        (5000, 5000), ("5000", 5000), ("infinity", None), ("INFINITY", None), (None, None),
    ])
    def test_values(self, value: object, expected: int | None) -> None:
        assert parse_timeout(value) == expected

    def test_rejects_non_positive(self) -> None:
        with pytest.raises(ConfigError):
            parse_timeout(0)


class TestConfigFileEdits:
    def test_add_repo_prepends(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yml"
        cfg = add_repo(path, "http://mirror")
        assert cfg.fetch_repos == ("http://mirror", DEFAULT_REPO)
        # 重复添加不产生重复项
        cfg = add_repo(path, "http://mirror")
        assert cfg.fetch_repos == ("http://mirror", DEFAULT_REPO)
        assert Config.from_file(path).fetch_repos == cfg.fetch_repos

    def test_add_repo_rejects_bad_scheme(self, tmp_path: Path) -> None:
        with pytest.raises(ValidationError):
            add_repo(tmp_path / "c.yml", "ftp://mirror")

    def test_remove_repo(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "c.yml", {"fetch_repos": ["http://a", "http://b"]})
        cfg = remove_repo(path, "http://a")
        assert cfg.fetch_repos == ("http://b",)

    def test_publish_repos(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yml"
        add_repo(path, "http://pub1", key=PUBLISH_REPOS)
        cfg = add_repo(path, "http://pub2", key=PUBLISH_REPOS)
        assert cfg.publish_repos == ("http://pub2", "http://pub1")
        assert cfg.fetch_repos == (DEFAULT_REPO,)

    def test_set_request_timeout(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yml"
        assert set_request_timeout(path, "30000").request_timeout == 30000
        assert set_request_timeout(path, "infinity").request_timeout is None
        assert yaml.safe_load(path.read_text())["request_timeout"] == "infinity"

    def test_keeps_unknown_keys(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "c.yml", {"custom_key": "x"})
        add_repo(path, "http://a")
        assert yaml.safe_load(path.read_text())["custom_key"] == "x"
