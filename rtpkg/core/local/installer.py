"""本地包安装器

把已在本地的包目录复制进安装树。安装方法返回判别结果:

  InstallOk             安装完成
  MissingDependencies   发布包引用的应用既未安装也未随包携带
  MissingRuntime        发布包要求的运行时既未安装也未随包携带
  MalformedPackage      包结构不合法

包格式:
  应用    <name>-<vsn>/ebin/...
  发布    <name>-<vsn>/release.yml  (runtime + applications)，
          可携带 lib/<app>-<vsn>/ 与 erts-<vsn>/
  运行时  erts-<vsn>/bin/...
"""

from __future__ import annotations

import logging
import shutil
import tarfile
from pathlib import Path
from typing import Any

import yaml

from rtpkg.core.exceptions import MalformedPackageError, ValidationError
from rtpkg.core.local.store import LocalPackageStore
from rtpkg.core.models import (
    InstallOk,
    InstallResult,
    MalformedPackage,
    MissingDependencies,
    MissingRuntime,
    PackageKind,
    PackageRef,
)
from rtpkg.core.repo_paths import RUNTIME_NAME
from rtpkg.core.version import VERSION_RE, split_name_and_version
from rtpkg.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

RELEASE_FILE = "release.yml"


def read_release_file(package_dir: Path) -> tuple[str, list[tuple[str, str]]]:
    """解析 release.yml，返回 (运行时版本, [(应用名, 版本)])

    Raises:
        MalformedPackageError: 文件缺失或字段不合法
    """
    path = package_dir / RELEASE_FILE
    if not path.is_file():
        raise MalformedPackageError(f"缺少 {RELEASE_FILE}: {package_dir}", str(package_dir))
    try:
        data = load_yaml(path)
    except (yaml.YAMLError, ValueError) as e:
        raise MalformedPackageError(f"{path} 解析失败: {e}", str(package_dir)) from e

    runtime = str(data.get("runtime") or "")
    if not VERSION_RE.match(runtime):
        raise MalformedPackageError(f"{path} 缺少合法的 runtime 版本", str(package_dir))

    apps: list[tuple[str, str]] = []
    for entry in data.get("applications") or []:
        apps.append(_parse_app_entry(entry, path))
    return runtime, apps


def _parse_app_entry(entry: Any, path: Path) -> tuple[str, str]:
    if isinstance(entry, dict):
        name, version = str(entry.get("name", "")), str(entry.get("version", ""))
    elif isinstance(entry, str):
        try:
            name, version = split_name_and_version(entry)
        except ValidationError as e:
            raise MalformedPackageError(f"{path}: {e}") from e
    else:
        raise MalformedPackageError(f"{path}: 无法识别的应用条目 {entry!r}")
    if not name or not VERSION_RE.match(version):
        raise MalformedPackageError(f"{path}: 应用条目不完整 {entry!r}")
    return name, version


class LocalPackageInstaller:
    """本地包安装器，写入 LocalPackageStore 管理的安装树"""

    def __init__(self, store: LocalPackageStore) -> None:
        self.store = store

    # ------------------------------------------------------------------
    # 解压与识别
    # ------------------------------------------------------------------

    def unpack(self, archive: Path, dest_dir: Path) -> Path:
        """解压 .tar.gz 到 dest_dir，返回其中唯一的顶层包目录"""
        dest_dir.mkdir(parents=True, exist_ok=True)
        try:
            with tarfile.open(str(archive), "r:*") as tf:
                tf.extractall(path=str(dest_dir), filter="data")  # noqa: S202
        except (tarfile.TarError, OSError) as e:
            raise MalformedPackageError(f"无法解压 {archive}: {e}", str(archive)) from e

        top_dirs = [d for d in dest_dir.iterdir() if d.is_dir()]
        if len(top_dirs) != 1:
            raise MalformedPackageError(
                f"{archive} 顶层应只有一个包目录，实际 {len(top_dirs)} 个",
                str(archive),
            )
        logger.debug("已解压 %s -> %s", archive, top_dirs[0])
        return top_dirs[0]

    def identify(self, package_dir: Path) -> PackageRef:
        try:
            name, version = split_name_and_version(package_dir.name)
        except ValidationError as e:
            raise MalformedPackageError(str(e), str(package_dir)) from e

        if name == RUNTIME_NAME and (package_dir / "bin").is_dir():
            kind = PackageKind.RUNTIME
        elif (package_dir / RELEASE_FILE).is_file():
            kind = PackageKind.RELEASE
        elif (package_dir / "ebin").is_dir():
            kind = PackageKind.APPLICATION
        else:
            raise MalformedPackageError(
                f"无法识别包类型 (缺少 ebin/、bin/ 或 {RELEASE_FILE}): {package_dir}",
                str(package_dir),
            )
        return PackageRef(kind=kind, name=name, version=version)

    # ------------------------------------------------------------------
    # 安装
    # ------------------------------------------------------------------

    def install_application(self, package_dir: Path) -> InstallResult:
        try:
            name, version = split_name_and_version(package_dir.name)
        except ValidationError as e:
            return MalformedPackage(reason=str(e))
        if not (package_dir / "ebin").is_dir():
            return MalformedPackage(reason=f"应用包缺少 ebin/: {package_dir}")

        dest = self.store.installed_path(PackageKind.APPLICATION, name, version)
        self._copy(package_dir, dest)
        logger.info("已安装应用 %s-%s -> %s", name, version, dest)
        return InstallOk(path=str(dest))

    def install_runtime(self, package_dir: Path) -> InstallResult:
        try:
            name, version = split_name_and_version(package_dir.name)
        except ValidationError as e:
            return MalformedPackage(reason=str(e))
        if name != RUNTIME_NAME or not (package_dir / "bin").is_dir():
            return MalformedPackage(reason=f"运行时包结构不合法: {package_dir}")

        dest = self.store.installed_path(PackageKind.RUNTIME, name, version)
        self._copy(package_dir, dest)
        logger.info("已安装运行时 %s -> %s", version, dest)
        return InstallOk(path=str(dest))

    def install_release(self, package_dir: Path) -> InstallResult:
        try:
            name, version = split_name_and_version(package_dir.name)
            runtime_vsn, apps = read_release_file(package_dir)
        except (ValidationError, MalformedPackageError) as e:
            return MalformedPackage(reason=str(e))

        missing: list[tuple[str, str]] = []
        for app_name, app_vsn in apps:
            if self.store.is_installed(PackageKind.APPLICATION, app_name, app_vsn):
                continue
            bundled = package_dir / "lib" / f"{app_name}-{app_vsn}"
            if bundled.is_dir():
                result = self.install_application(bundled)
                if not isinstance(result, InstallOk):
                    return result
                continue
            missing.append((app_name, app_vsn))
        if missing:
            logger.info(
                "发布 %s-%s 缺少应用: %s", name, version,
                ", ".join(f"{n}-{v}" for n, v in missing),
            )
            return MissingDependencies(applications=missing, runtime_vsn=runtime_vsn)

        if not self.store.is_installed(PackageKind.RUNTIME, RUNTIME_NAME, runtime_vsn):
            bundled = package_dir / f"{RUNTIME_NAME}-{runtime_vsn}"
            if not bundled.is_dir():
                logger.info("发布 %s-%s 缺少运行时 %s", name, version, runtime_vsn)
                return MissingRuntime(runtime_vsn=runtime_vsn)
            result = self.install_runtime(bundled)
            if not isinstance(result, InstallOk):
                return result

        dest = self.store.installed_path(PackageKind.RELEASE, name, version)
        self._copy(package_dir, dest, ignore=_ignore_bundled)
        logger.info("已安装发布 %s-%s -> %s", name, version, dest)
        return InstallOk(path=str(dest))

    def _copy(self, src: Path, dest: Path, ignore: Any = None) -> None:
        # 重装时先清理旧目录
        self.store.delete_dir(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(src, dest, ignore=ignore)


def _ignore_bundled(directory: str, names: list[str]) -> set[str]:
    """发布目录只保留自身文件；随包携带的应用与运行时已单独安装"""
    if (Path(directory) / RELEASE_FILE).is_file():
        return {n for n in names if n == "lib" or n.startswith(f"{RUNTIME_NAME}-")}
    return set()
