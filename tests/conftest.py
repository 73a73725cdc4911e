"""共享测试夹具：内存仓库客户端与本地包构造器"""

from __future__ import annotations

import io
import tarfile
from pathlib import Path

import pytest
import yaml

from rtpkg.core.exceptions import PackageNotFoundError, RepoConnectionError


class FakeRepoClient:
    """内存仓库

    listings[(repo, suffix)] -> 条目列表
    files[(repo, suffix)]    -> 文件内容
    down                     -> 不可达的仓库
    put_failures[repo]       -> 该仓库 PUT 失败原因
    calls                    -> 每次调用 (op, repo, suffix)
    """

    def __init__(self) -> None:
        self.listings: dict[tuple[str, str], list[str]] = {}
        self.files: dict[tuple[str, str], bytes] = {}
        self.down: set[str] = set()
        self.put_failures: dict[str, str] = {}
        self.puts: dict[tuple[str, str], bytes] = {}
        self.calls: list[tuple[str, str, str]] = []

    def _enter(self, op: str, repo: str, suffix: str) -> None:
        self.calls.append((op, repo, suffix))
        if repo in self.down:
            raise RepoConnectionError(f"连接被拒绝: {repo}", repo=repo)

    def list(self, repo: str, suffix: str, timeout: int | None) -> list[str]:
        self._enter("list", repo, suffix)
        if (repo, suffix) not in self.listings:
            raise PackageNotFoundError(f"不存在: {repo}/{suffix}")
        return list(self.listings[(repo, suffix)])

    def fetch(self, repo: str, suffix: str, dest_dir: Path, timeout: int | None) -> Path:
        self._enter("fetch", repo, suffix)
        if (repo, suffix) not in self.files:
            raise PackageNotFoundError(f"不存在: {repo}/{suffix}")
        dest_dir.mkdir(parents=True, exist_ok=True)
        dest = dest_dir / suffix.rsplit("/", 1)[-1]
        dest.write_bytes(self.files[(repo, suffix)])
        return dest

    def describe(self, repo: str, suffix: str, timeout: int | None) -> str:
        self._enter("describe", repo, suffix)
        if (repo, suffix) not in self.files:
            raise PackageNotFoundError(f"不存在: {repo}/{suffix}")
        return self.files[(repo, suffix)].decode("utf-8")

    def put(self, repo: str, suffix: str, payload: bytes, timeout: int | None) -> str:
        self.calls.append(("put", repo, suffix))
        if repo in self.put_failures:
            raise RepoConnectionError(self.put_failures[repo], repo=repo)
        self.puts[(repo, suffix)] = payload
        return f"{repo}/{suffix}"

    def ops(self, op: str) -> list[tuple[str, str]]:
        return [(repo, suffix) for o, repo, suffix in self.calls if o == op]


class PackageBuilder:
    """在临时目录中构造应用 / 发布 / 运行时包目录"""

    def __init__(self, root: Path) -> None:
        self.root = root

    def app(
        self, name: str, version: str, *, native: bool = False, app_file: bool = True,
        parent: Path | None = None,
    ) -> Path:
        d = (parent or self.root) / f"{name}-{version}"
        (d / "ebin").mkdir(parents=True)
        if app_file:
            (d / "ebin" / f"{name}.app").write_text(
                f'{{application, {name}, [{{vsn, "{version}"}}]}}.\n'
            )
        if native:
            (d / "priv").mkdir()
            (d / "priv" / f"{name}_drv.so").write_bytes(b"\x7fELF")
        return d

    def runtime(self, version: str, parent: Path | None = None) -> Path:
        d = (parent or self.root) / f"erts-{version}"
        (d / "bin").mkdir(parents=True)
        (d / "bin" / "erl").write_text("#!/bin/sh\n")
        return d

    def release(
        self,
        name: str,
        version: str,
        runtime: str,
        apps: list[tuple[str, str]],
        *,
        bundle_apps: tuple[str, ...] = (),
        bundle_runtime: bool = False,
    ) -> Path:
        d = self.root / f"{name}-{version}"
        d.mkdir(parents=True)
        (d / "release.yml").write_text(yaml.safe_dump({
            "runtime": runtime,
            "applications": [{"name": n, "version": v} for n, v in apps],
        }))
        for app_name, app_vsn in apps:
            if app_name in bundle_apps:
                self.app(app_name, app_vsn, parent=d / "lib")
        if bundle_runtime:
            self.runtime(runtime, parent=d)
        return d

    @staticmethod
    def tarball(package_dir: Path) -> bytes:
        buf = io.BytesIO()
        with tarfile.open(fileobj=buf, mode="w:gz") as tf:
            tf.add(str(package_dir), arcname=package_dir.name)
        return buf.getvalue()


@pytest.fixture()
def fake_client() -> FakeRepoClient:
    return FakeRepoClient()


@pytest.fixture()
def pkg(tmp_path: Path) -> PackageBuilder:
    return PackageBuilder(tmp_path / "src")
