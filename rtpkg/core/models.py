"""领域数据模型

包引用 / 已安装包 / 过期报告，以及各传输与安装步骤的判别结果类型。
结果类型采用 "若干 dataclass + 联合类型别名" 的方式，调用方用 isinstance 分派。
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any

# 未指定版本时的占位，必须先由版本解析器固定为具体版本
LATEST = "latest"


# =========================================================================
# 枚举
# =========================================================================

class PackageKind(str, Enum):
    """包类型"""
    APPLICATION = "application"
    RELEASE = "release"
    RUNTIME = "runtime"

    @property
    def side(self) -> str:
        """仓库与安装树中的目录名"""
        return _SIDES[self]


_SIDES = {
    PackageKind.APPLICATION: "lib",
    PackageKind.RELEASE: "releases",
    PackageKind.RUNTIME: "erts",
}


class Comparison(str, Enum):
    """本地版本相对远程版本的关系"""
    HIGHER = "higher"
    SAME = "same"
    LOWER = "lower"


class ForcePolicy(str, Enum):
    """已安装包的覆盖策略"""
    ALWAYS = "always"   # 总是覆盖
    NEVER = "never"     # 从不覆盖，静默跳过
    ASK = "ask"         # 交由确认器决定


class SearchSide(str, Enum):
    LIB = "lib"
    RELEASES = "releases"
    BOTH = "both"


class SearchMode(str, Enum):
    NORMAL = "normal"   # 子串匹配
    REGEXP = "regexp"   # 正则匹配


# =========================================================================
# 包引用
# =========================================================================

@dataclass(frozen=True)
class PackageRef:
    """一次操作中临时构造的包引用"""

    kind: PackageKind
    name: str
    version: str = LATEST

    @property
    def is_latest(self) -> bool:
        return self.version == LATEST

    @property
    def label(self) -> str:
        return f"{self.name}-{self.version}"

    def pinned(self, version: str) -> PackageRef:
        return replace(self, version=version)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.label}"


@dataclass(frozen=True)
class InstalledPackage:
    """本地安装树中发现的包（每次实时查询，不缓存）"""

    kind: PackageKind
    name: str
    version: str


@dataclass(frozen=True)
class RemoteVersion:
    """某仓库中的某个可用版本"""

    repo: str
    version: str


@dataclass
class OutdatedReport:
    """仅在 本地版本 < 远程版本 时产生"""

    name: str
    local_version: str
    remote_version: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


# =========================================================================
# 拉取 / 发布结果
# =========================================================================

@dataclass(frozen=True)
class FetchFailure:
    """一次 (tier, repo) 拉取尝试的失败记录"""

    tier: str
    repo: str
    reason: str


@dataclass(frozen=True)
class PublishFailure:
    repo: str
    reason: str


@dataclass
class PublishAllOk:
    """全部仓库发布成功"""
    urls: list[str]

    @property
    def success(self) -> bool:
        return True


@dataclass
class PublishAllFailed:
    """全部仓库发布失败"""
    failures: list[PublishFailure]

    @property
    def success(self) -> bool:
        return False


@dataclass
class PublishPartialFailure:
    """部分成功：调用方可只针对 failures 中的仓库重试"""
    urls: list[str]
    failures: list[PublishFailure]

    @property
    def success(self) -> bool:
        return False


PublishOutcome = PublishAllOk | PublishAllFailed | PublishPartialFailure


# =========================================================================
# 本地安装器结果
# =========================================================================

@dataclass
class InstallOk:
    path: str = ""


@dataclass
class MissingDependencies:
    """发布包引用的应用既未安装也未随包携带"""
    applications: list[tuple[str, str]]
    runtime_vsn: str = ""


@dataclass
class MissingRuntime:
    """发布包要求的运行时既未安装也未随包携带"""
    runtime_vsn: str


@dataclass
class MalformedPackage:
    reason: str


InstallResult = InstallOk | MissingDependencies | MissingRuntime | MalformedPackage


# =========================================================================
# 服务层结果
# =========================================================================

@dataclass
class InstallOutcome:
    """一次安装请求的最终结果"""

    ref: PackageRef
    status: str = "installed"   # installed | skipped
    attempts: int = 0
    path: str = ""

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"


@dataclass
class UpgradeResult:
    name: str
    local_version: str
    remote_version: str
    upgraded: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SearchResult:
    """跨仓库检索结果，两侧分别排序去重"""

    applications: list[str] = field(default_factory=list)
    releases: list[str] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.applications and not self.releases
