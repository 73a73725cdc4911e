"""本地安装树

目录布局 (install_root 下):
  lib/<name>-<vsn>/           应用
  releases/<name>/<vsn>/      发布
  runtime/erts-<vsn>/         运行时

所有查询直接扫描磁盘，不做缓存。安装树假设单写者，没有任何加锁，
同一安装树上的并发调用是不安全的。
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from rtpkg.core.exceptions import PackageNotInstalledError
from rtpkg.core.models import InstalledPackage, PackageKind
from rtpkg.core.repo_paths import RUNTIME_NAME
from rtpkg.core.version import NAME_AND_VERSION_RE, VERSION_RE, sort_versions, version_key

logger = logging.getLogger(__name__)

RUNTIME_DIR = "runtime"


class LocalPackageStore:
    """本地安装树查询与删除"""

    def __init__(self, install_root: str | Path) -> None:
        self.install_root = Path(install_root).expanduser()

    # ------------------------------------------------------------------
    # 路径
    # ------------------------------------------------------------------

    def installed_path(self, kind: PackageKind, name: str, version: str) -> Path:
        if kind is PackageKind.APPLICATION:
            return self.install_root / "lib" / f"{name}-{version}"
        if kind is PackageKind.RELEASE:
            return self.install_root / "releases" / name / version
        return self.install_root / RUNTIME_DIR / f"{RUNTIME_NAME}-{version}"

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def is_installed(self, kind: PackageKind, name: str, version: str) -> bool:
        return self.installed_path(kind, name, version).is_dir()

    def list_installed(self, kind: PackageKind) -> list[InstalledPackage]:
        """按名称、版本排序的已安装列表"""
        found = [
            InstalledPackage(kind=kind, name=name, version=version)
            for name, version in self._scan(kind)
        ]
        return sorted(found, key=lambda p: (p.name, version_key(p.version)))

    def list_names(self, kind: PackageKind) -> list[str]:
        return sorted({name for name, _ in self._scan(kind)})

    def list_versions(self, kind: PackageKind, name: str) -> list[str]:
        return sort_versions(v for n, v in self._scan(kind) if n == name)

    def _scan(self, kind: PackageKind) -> list[tuple[str, str]]:
        if kind is PackageKind.RELEASE:
            base = self.install_root / "releases"
            if not base.is_dir():
                return []
            pairs = []
            for rel_dir in base.iterdir():
                if not rel_dir.is_dir() or rel_dir.name.startswith("."):
                    continue
                for vsn_dir in rel_dir.iterdir():
                    if not vsn_dir.is_dir() or vsn_dir.name.startswith("."):
                        continue
                    if not VERSION_RE.match(vsn_dir.name):
                        logger.debug("忽略无法识别的目录: %s", vsn_dir)
                        continue
                    pairs.append((rel_dir.name, vsn_dir.name))
            return pairs

        base = self.install_root / (
            "lib" if kind is PackageKind.APPLICATION else RUNTIME_DIR
        )
        if not base.is_dir():
            return []
        pairs = []
        for d in base.iterdir():
            if not d.is_dir() or d.name.startswith("."):
                continue
            m = NAME_AND_VERSION_RE.match(d.name)
            if m is None:
                logger.debug("忽略无法识别的目录: %s", d)
                continue
            pairs.append((m.group("name"), m.group("version")))
        return pairs

    # ------------------------------------------------------------------
    # 删除
    # ------------------------------------------------------------------

    def remove(
        self, kind: PackageKind, name: str, version: str | None = None,
    ) -> list[str]:
        """删除指定版本（version 为空则删除全部版本），返回被删除的版本"""
        versions = [version] if version else self.list_versions(kind, name)
        removed = []
        for v in versions:
            path = self.installed_path(kind, name, v)
            if path.is_dir():
                self.delete_dir(path)
                removed.append(v)
        if not removed:
            label = f"{name}-{version}" if version else name
            raise PackageNotInstalledError(f"未安装 {kind.value}: {label}")
        if kind is PackageKind.RELEASE:
            rel_dir = self.install_root / "releases" / name
            if rel_dir.is_dir() and not any(rel_dir.iterdir()):
                rel_dir.rmdir()
        logger.info("已删除 %s %s: %s", kind.value, name, ", ".join(removed))
        return removed

    def delete_dir(self, path: Path) -> None:
        if Path(path).exists():
            shutil.rmtree(path)
            logger.debug("已删除目录: %s", path)
