"""统一异常体系

所有业务异常继承 RtpkgError。CLI 层据此输出友好提示并以非零码退出。

可恢复的安装失败（缺依赖、缺运行时）不是异常，而是本地安装器返回的
判别结果，见 rtpkg.core.models。
"""

from __future__ import annotations

from typing import Any


class RtpkgError(Exception):
    """基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(RtpkgError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(RtpkgError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class InvalidVersionError(ValidationError):
    """版本号格式不合法"""

    code = "INVALID_VERSION"


class RepoConnectionError(RtpkgError):
    """仓库不可达（连接失败 / 超时）"""

    code = "CONNECTION_FAILED"

    def __init__(self, message: str, repo: str = "") -> None:
        super().__init__(message)
        self.repo = repo


class PackageNotFoundError(RtpkgError):
    """远程仓库中找不到指定包

    failures 记录每个 (tier, repo) 组合的失败原因，便于诊断。
    """

    code = "NOT_FOUND"

    def __init__(
        self, message: str, failures: list[tuple[str, str, str]] | None = None,
    ) -> None:
        super().__init__(message)
        self.failures = failures or []


class PackageNotInstalledError(RtpkgError):
    """本地未安装指定包"""

    code = "NOT_INSTALLED"


class MalformedPackageError(RtpkgError):
    """本地包结构校验失败"""

    code = "MALFORMED_PACKAGE"

    def __init__(self, message: str, package_dir: str = "") -> None:
        super().__init__(message)
        self.package_dir = package_dir


class InstallRetryExhaustedError(RtpkgError):
    """缺依赖重试次数达到上限"""

    code = "RETRY_EXHAUSTED"


class PublishError(RtpkgError):
    """发布到部分或全部仓库失败，outcome 为对应的发布结果"""

    code = "PUBLISH_FAILED"

    def __init__(self, message: str, outcome: Any = None) -> None:
        super().__init__(message)
        self.outcome = outcome
