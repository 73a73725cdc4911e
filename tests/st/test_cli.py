"""CLI 端到端测试（CliRunner + 内存仓库）"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from rtpkg import __version__
from rtpkg.cli import main
from rtpkg.core.repo_paths import package_suffix
from rtpkg.utils.logger import reset_logging

R1 = "http://r1"
ALPHA_SUFFIX = package_suffix("Generic", "lib", "alpha", "1.0")


@pytest.fixture(autouse=True)
def _isolate(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, fake_client):
    """独立工作目录，HTTP 客户端替换为内存仓库"""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("RTPKG_LOG_LEVEL", raising=False)
    monkeypatch.setattr("rtpkg.core.repo.client.HttpRepoClient", lambda: fake_client)
    yield
    reset_logging()
    logging.getLogger().setLevel(logging.WARNING)


@pytest.fixture()
def cfg_path(tmp_path: Path) -> Path:
    path = tmp_path / "config.yml"
    path.write_text(yaml.safe_dump({
        "install_root": str(tmp_path / "root"),
        "fetch_repos": [R1],
        "scratch_dir": str(tmp_path / "scratch"),
    }))
    return path


@pytest.fixture()
def run(cfg_path: Path):
    runner = CliRunner()

    def _run(*args: str, **kwargs):
        return runner.invoke(main, ["--config", str(cfg_path), *args], **kwargs)
    return _run


@pytest.fixture()
def alpha_remote(fake_client, pkg) -> None:
    fake_client.listings[(R1, "Generic/lib/alpha")] = ["1.0"]
    fake_client.files[(R1, ALPHA_SUFFIX)] = pkg.tarball(pkg.app("alpha", "1.0"))


class TestBasics:
    def test_version(self, run) -> None:
        result = run("version")
        assert result.exit_code == 0
        assert result.output.strip() == __version__

    def test_help_lists_commands(self, run) -> None:
        result = run("help")
        assert result.exit_code == 0
        for cmd in ("install-app", "upgrade-all-apps", "describe-app", "show-publish-repos"):
            assert cmd in result.output

    def test_help_for_command(self, run) -> None:
        result = run("help", "install-app")
        assert result.exit_code == 0
        assert "安装应用" in result.output

    def test_help_unknown_command(self, run) -> None:
        assert run("help", "frobnicate").exit_code != 0

    def test_environment(self, run, tmp_path: Path) -> None:
        result = run("environment")
        assert result.exit_code == 0
        assert str(tmp_path / "root") in result.output
        assert R1 in result.output


class TestConfigCommands:
    def test_repos(self, run) -> None:
        assert run("add-repo", "http://mirror").exit_code == 0
        result = run("show-repos")
        assert result.output.splitlines() == ["  1. http://mirror", f"  2. {R1}"]

        assert run("remove-repo", R1).exit_code == 0
        assert R1 not in run("show-repos").output

    def test_publish_repos(self, run) -> None:
        assert "没有已配置的仓库" in run("show-publish-repos").output
        run("add-publish-repo", "http://pub")
        assert "http://pub" in run("show-publish-repos").output
        run("remove-publish-repo", "http://pub")
        assert "没有已配置的仓库" in run("show-publish-repos").output

    def test_request_timeout(self, run) -> None:
        assert run("show-request-timeout").output.strip() == "120000"
        assert run("set-request-timeout", "infinity").exit_code == 0
        assert run("show-request-timeout").output.strip() == "infinity"

    def test_bad_request_timeout(self, run) -> None:
        result = run("set-request-timeout", "soon")
        assert result.exit_code == 1
        assert "[CONFIG_ERROR]" in result.output


@pytest.mark.usefixtures("alpha_remote")
class TestInstallCommands:
    def test_install_app_latest(self, run, tmp_path: Path) -> None:
        result = run("install-app", "alpha")
        assert result.exit_code == 0, result.output
        assert "安装完成: alpha-1.0" in result.output
        assert (tmp_path / "root" / "lib" / "alpha-1.0" / "ebin" / "alpha.app").is_file()

        listing = run("installed", "--side", "lib")
        assert "alpha" in listing.output and "1.0" in listing.output

    def test_no_overwrite_skips(self, run, fake_client) -> None:
        run("install-app", "alpha", "1.0")
        fetches = len(fake_client.ops("fetch"))

        result = run("--no-overwrite", "install-app", "alpha", "1.0")
        assert result.exit_code == 0
        assert "已安装，跳过" in result.output
        assert len(fake_client.ops("fetch")) == fetches

    def test_force_reinstalls(self, run, fake_client) -> None:
        run("install-app", "alpha", "1.0")
        result = run("--force", "install-app", "alpha", "1.0")
        assert "安装完成" in result.output
        assert len(fake_client.ops("fetch")) == 2

    def test_ask_prompts(self, run) -> None:
        run("install-app", "alpha", "1.0")
        result = run("install-app", "alpha", "1.0", input="n\n")
        assert "是否覆盖" in result.output
        assert "已安装，跳过" in result.output

    def test_install_local_archive(self, run, pkg, tmp_path: Path, fake_client) -> None:
        archive = tmp_path / "beta-2.0.tar.gz"
        archive.write_bytes(pkg.tarball(pkg.app("beta", "2.0")))

        result = run("install-app", str(archive))
        assert result.exit_code == 0, result.output
        assert (tmp_path / "root" / "lib" / "beta-2.0").is_dir()
        assert fake_client.calls == []

    def test_not_found(self, run) -> None:
        result = run("install-app", "missing", "1.0")
        assert result.exit_code == 1
        assert "[NOT_FOUND]" in result.output
        assert R1 in result.output

    def test_remove_app(self, run, tmp_path: Path) -> None:
        run("install-app", "alpha", "1.0")
        result = run("remove-app", "alpha")
        assert result.exit_code == 0
        assert not (tmp_path / "root" / "lib" / "alpha-1.0").exists()
        assert "[NOT_INSTALLED]" in run("remove-app", "alpha").output

    def test_outdated_and_upgrade(self, run, fake_client, pkg, tmp_path: Path) -> None:
        run("install-app", "alpha", "1.0")
        fake_client.listings[(R1, "Generic/lib/alpha")] = ["1.0", "1.2"]
        fake_client.files[(R1, package_suffix("Generic", "lib", "alpha", "1.2"))] = (
            pkg.tarball(pkg.app("alpha", "1.2"))
        )

        outdated = run("outdated-apps")
        assert "alpha" in outdated.output and "1.2" in outdated.output

        result = run("upgrade-app", "alpha")
        assert result.exit_code == 0, result.output
        assert "已升级 alpha: 1.0 -> 1.2" in result.output
        assert (tmp_path / "root" / "lib" / "alpha-1.2").is_dir()
        assert "全部已是最新" in run("outdated-apps").output

    def test_install_runtime_requires_version(self, run) -> None:
        assert run("install-runtime").exit_code == 2


class TestSearchAndPublish:
    def test_search(self, run, fake_client) -> None:
        fake_client.listings[(R1, "Generic/lib")] = ["gamma", "alpha", "alpha"]
        result = run("search", "--side", "lib")
        assert result.exit_code == 0
        assert result.output.splitlines() == ["应用:", "  alpha", "  gamma"]

    def test_search_bad_regexp(self, run) -> None:
        result = run("search", "(", "--mode", "regexp")
        assert result.exit_code == 1
        assert "[VALIDATION_ERROR]" in result.output

    def test_publish(self, run, pkg, fake_client) -> None:
        run("add-publish-repo", "http://pub")
        result = run("publish", str(pkg.app("alpha", "1.0")))
        assert result.exit_code == 0, result.output
        assert "发布完成: alpha-1.0" in result.output
        assert ("http://pub", ALPHA_SUFFIX) in fake_client.puts

    def test_publish_failure_exit_code(self, run, pkg, fake_client) -> None:
        run("add-publish-repo", "http://pub")
        fake_client.put_failures["http://pub"] = "HTTP 500"
        result = run("publish", str(pkg.app("alpha", "1.0")))
        assert result.exit_code == 1
        assert "[PUBLISH_FAILED]" in result.output

    def test_publish_without_repos(self, run, pkg) -> None:
        result = run("publish", str(pkg.app("alpha", "1.0")))
        assert result.exit_code == 1
        assert "add-publish-repo" in result.output

    def test_describe_app(self, run, fake_client) -> None:
        fake_client.files[(R1, "Generic/lib/alpha/1.0/alpha.app")] = b"{application, alpha}"
        result = run("describe-app", "alpha", "1.0")
        assert result.output.strip() == "{application, alpha}"
