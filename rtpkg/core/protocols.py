"""协作者协议定义

核心引擎只依赖这些接口；默认实现位于 rtpkg.core.repo.client 与 rtpkg.core.local，
测试中以内存假实现替换。

使用 typing.Protocol 而非 ABC，实现类无需继承即可满足协议。
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from rtpkg.core.models import InstalledPackage, InstallResult, PackageKind, PackageRef


# =========================================================================
# 远程仓库
# =========================================================================

class RepoClient(Protocol):
    """仓库读取客户端

    list / fetch / describe 在找不到时抛 PackageNotFoundError，
    仓库不可达时抛 RepoConnectionError。
    """

    def list(self, repo: str, suffix: str, timeout: int | None) -> list[str]:
        """列出目录下的条目（版本号或包名）"""
        ...

    def fetch(
        self, repo: str, suffix: str, dest_dir: Path, timeout: int | None,
    ) -> Path:
        """下载文件到 dest_dir，返回本地路径"""
        ...

    def describe(self, repo: str, suffix: str, timeout: int | None) -> str:
        """读取包元信息文本"""
        ...


class PublishClient(Protocol):
    """仓库写入客户端，失败时抛出 RtpkgError 子类"""

    def put(
        self, repo: str, suffix: str, payload: bytes, timeout: int | None,
    ) -> str:
        """上传并返回最终 URL"""
        ...


# =========================================================================
# 本地安装树
# =========================================================================

class PackageStore(Protocol):
    """本地安装树查询（不缓存，每次实时读取）"""

    def installed_path(self, kind: PackageKind, name: str, version: str) -> Path:
        ...

    def is_installed(self, kind: PackageKind, name: str, version: str) -> bool:
        ...

    def list_installed(self, kind: PackageKind) -> list[InstalledPackage]:
        ...

    def list_versions(self, kind: PackageKind, name: str) -> list[str]:
        ...

    def delete_dir(self, path: Path) -> None:
        ...


class PackageInstaller(Protocol):
    """本地包安装器

    安装方法返回判别结果而不是抛异常，由安装编排器据此决定重试路径。
    """

    def unpack(self, archive: Path, dest_dir: Path) -> Path:
        """解压归档到 dest_dir，返回包目录"""
        ...

    def identify(self, package_dir: Path) -> PackageRef:
        """根据目录内容判断包类型、名称与版本"""
        ...

    def install_application(self, package_dir: Path) -> InstallResult:
        ...

    def install_release(self, package_dir: Path) -> InstallResult:
        ...

    def install_runtime(self, package_dir: Path) -> InstallResult:
        ...


class Confirmer(Protocol):
    """交互式覆盖确认"""

    def confirm(self, message: str) -> bool:
        ...
