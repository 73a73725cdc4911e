"""版本排序

全系统唯一的版本比较规则，"取最新"、"是否过期"、检索结果排序都经由 version_key。

比较规则:
  1. 版本号按 '.' / '-' 切分为组件，组件再切分为数字段与非数字段
  2. 数字段按整数比较，且大于任何非数字段   (1.0.10 > 1.0.9, 1.0.0 > 1.0.beta)
  3. 非数字段按字典序比较                   (1.0-alpha < 1.0-beta, 1.0-rc2 < 1.0-rc10)
  4. 前缀相同时段数更少者更小               (1.0 < 1.0.1, 1.0 < 1.0-beta)
  5. 以上完全相同时按原始字符串比较         ("1.0" < "1.00")

规则 5 保证不同字符串之间总有严格先后，"相等" 当且仅当字符串相同。
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from rtpkg.core.exceptions import InvalidVersionError, ValidationError
from rtpkg.core.models import Comparison

VERSION_RE = re.compile(r"^[a-zA-Z0-9_]+([.-][a-zA-Z0-9_]+)*$")
NAME_RE = re.compile(r"^[a-z][a-zA-Z0-9_]*$")
# <name>-<version>[.tar.gz]
NAME_AND_VERSION_RE = re.compile(
    r"^(?P<name>[a-z][a-zA-Z0-9_]*)-(?P<version>[a-zA-Z0-9_]+([.-][a-zA-Z0-9_]+)*?)(\.tar\.gz)?$"
)

_SEP_RE = re.compile(r"[.-]")
_RUN_RE = re.compile(r"\d+|\D+")

VersionKey = tuple[tuple[tuple[tuple[int, int, str], ...], ...], str]


def validate_version(version: str) -> str:
    if not isinstance(version, str) or not VERSION_RE.match(version):
        raise InvalidVersionError(f"非法版本号: {version!r}")
    return version


def validate_name(name: str) -> str:
    if not isinstance(name, str) or not NAME_RE.match(name):
        raise ValidationError(f"非法包名: {name!r}")
    return name


def split_name_and_version(label: str) -> tuple[str, str]:
    """'alpha-1.2.0' / 'alpha-1.2.0.tar.gz' -> ('alpha', '1.2.0')"""
    m = NAME_AND_VERSION_RE.match(label)
    if not m:
        raise ValidationError(f"无法从 '{label}' 解析包名与版本，应为 <name>-<version>")
    return m.group("name"), m.group("version")


def _run_key(run: str) -> tuple[int, int, str]:
    if run.isdigit():
        return (1, int(run), "")
    return (0, 0, run)


def version_key(version: str) -> VersionKey:
    """版本排序键（非法版本号抛 InvalidVersionError）"""
    validate_version(version)
    components = tuple(
        tuple(_run_key(run) for run in _RUN_RE.findall(comp))
        for comp in _SEP_RE.split(version)
    )
    return components, version


def compare_versions(a: str, b: str) -> int:
    """a < b 返回 -1，相等返回 0，a > b 返回 1"""
    ka, kb = version_key(a), version_key(b)
    if ka < kb:
        return -1
    if ka > kb:
        return 1
    return 0


def is_version_greater(a: str, b: str) -> bool:
    return compare_versions(a, b) > 0


def sort_versions(versions: Iterable[str], *, reverse: bool = False) -> list[str]:
    return sorted(versions, key=version_key, reverse=reverse)


def highest_version(versions: Iterable[str]) -> str | None:
    """返回最高版本，空输入返回 None"""
    best: str | None = None
    for v in versions:
        if best is None or version_key(v) > version_key(best):
            best = v
    return best


def is_outdated(local_version: str, remote_version: str) -> Comparison:
    """本地版本相对远程版本: LOWER 表示可升级"""
    c = compare_versions(local_version, remote_version)
    if c > 0:
        return Comparison.HIGHER
    if c == 0:
        return Comparison.SAME
    return Comparison.LOWER
