"""本地安装树与本地包安装器"""

from rtpkg.core.local.installer import LocalPackageInstaller
from rtpkg.core.local.store import LocalPackageStore

__all__ = ["LocalPackageInstaller", "LocalPackageStore"]
