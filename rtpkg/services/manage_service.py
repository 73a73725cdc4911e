"""升级 / 检索服务

建立在版本解析器、拉取传输与安装编排器之上:
  - outdated_set / upgrade_all 为尽力而为的批量操作，单个包失败只记录并跳过
  - upgrade 单个包时解析错误直接上抛
  - search 汇总所有仓库 × 所有兼容层的原始列表，先排序去重，再按查询过滤
"""

from __future__ import annotations

import itertools
import logging
import re
from collections.abc import Callable
from typing import Any

from rtpkg import __version__
from rtpkg.core.config import Config
from rtpkg.core.exceptions import (
    PackageNotFoundError,
    PackageNotInstalledError,
    RepoConnectionError,
    RtpkgError,
    ValidationError,
)
from rtpkg.core.local.store import LocalPackageStore
from rtpkg.core.models import (
    LATEST,
    Comparison,
    InstalledPackage,
    OutdatedReport,
    PackageKind,
    PackageRef,
    SearchMode,
    SearchResult,
    SearchSide,
    UpgradeResult,
)
from rtpkg.core.protocols import RepoClient
from rtpkg.core.repo.fetcher import PackageFetcher
from rtpkg.core.repo.resolver import VersionResolver
from rtpkg.core.repo_paths import app_file_suffix, names_suffix
from rtpkg.core.version import highest_version, is_outdated, validate_name, validate_version
from rtpkg.services.install_service import InstallOrchestrator

logger = logging.getLogger(__name__)

_UPGRADABLE = (PackageKind.APPLICATION, PackageKind.RELEASE)


class ManageService:
    """过期检查、升级、检索与已安装包管理"""

    def __init__(
        self,
        config: Config,
        client: RepoClient,
        resolver: VersionResolver,
        fetcher: PackageFetcher,
        store: LocalPackageStore,
        orchestrator: InstallOrchestrator,
    ) -> None:
        self.config = config
        self.client = client
        self.resolver = resolver
        self.fetcher = fetcher
        self.store = store
        self.orchestrator = orchestrator

    # ------------------------------------------------------------------
    # 过期检查 / 升级
    # ------------------------------------------------------------------

    def check(self, kind: PackageKind, name: str) -> UpgradeResult:
        """比较本地最高已装版本与远程最高版本

        Raises:
            PackageNotInstalledError: 本地未安装任何版本
            PackageNotFoundError / RepoConnectionError: 远程解析失败
        """
        _check_upgradable(kind)
        local = highest_version(self.store.list_versions(kind, name))
        if local is None:
            raise PackageNotInstalledError(f"未安装 {kind.value}: {name}")
        remote = self.resolver.highest_remote_version(
            self.config.fetch_repos, self.config.compat_chain, kind, name,
        )
        return UpgradeResult(name=name, local_version=local, remote_version=remote.version)

    def outdated_set(self, kind: PackageKind) -> list[OutdatedReport]:
        """所有 本地 < 远程 的已安装包；单个包解析失败被跳过"""
        _check_upgradable(kind)
        reports: list[OutdatedReport] = []
        for name in self.store.list_names(kind):
            try:
                status = self.check(kind, name)
            except RtpkgError as e:
                logger.warning("跳过 %s: %s", name, e, extra={"package": name})
                continue
            if is_outdated(status.local_version, status.remote_version) is Comparison.LOWER:
                reports.append(OutdatedReport(
                    name=name,
                    local_version=status.local_version,
                    remote_version=status.remote_version,
                ))
        return reports

    def upgrade(self, kind: PackageKind, name: str) -> UpgradeResult:
        result = self.check(kind, name)
        if is_outdated(result.local_version, result.remote_version) is not Comparison.LOWER:
            logger.info("%s 已是最新 (%s)", name, result.local_version, extra={"package": name})
            return result
        logger.info(
            "升级 %s: %s -> %s", name, result.local_version, result.remote_version,
            extra={"package": name},
        )
        self.orchestrator.install_remote(PackageRef(kind, name, result.remote_version))
        result.upgraded = True
        return result

    def upgrade_all(
        self, kind: PackageKind,
    ) -> tuple[list[UpgradeResult], list[tuple[str, str]]]:
        """依次升级所有已安装包，返回 (结果, [(包名, 失败原因)])"""
        results: list[UpgradeResult] = []
        failures: list[tuple[str, str]] = []
        for name in self.store.list_names(kind):
            try:
                results.append(self.upgrade(kind, name))
            except RtpkgError as e:
                logger.warning("升级 %s 失败，继续: %s", name, e, extra={"package": name})
                failures.append((name, str(e)))
        return results, failures

    # ------------------------------------------------------------------
    # 检索
    # ------------------------------------------------------------------

    def search(
        self,
        side: SearchSide = SearchSide.BOTH,
        query: str = "",
        mode: SearchMode = SearchMode.NORMAL,
    ) -> SearchResult:
        """跨仓库检索包名；空查询返回全部"""
        predicate = _make_predicate(query, mode)
        result = SearchResult()
        if side in (SearchSide.LIB, SearchSide.BOTH):
            result.applications = self._search_side(PackageKind.APPLICATION.side, predicate)
        if side in (SearchSide.RELEASES, SearchSide.BOTH):
            result.releases = self._search_side(PackageKind.RELEASE.side, predicate)
        return result

    def _search_side(self, side: str, predicate: Callable[[str], bool]) -> list[str]:
        raw: list[str] = []
        for repo in self.config.fetch_repos:
            for tier in self.config.compat_chain:
                suffix = names_suffix(tier, side)
                try:
                    raw.extend(self.client.list(repo, suffix, self.config.request_timeout))
                except PackageNotFoundError:
                    logger.debug("无列表 %s/%s", repo, suffix)
                except RepoConnectionError as e:
                    logger.warning("检索跳过不可达仓库 %s: %s", repo, e, extra={"repo": repo})
        # 排序后重复项相邻
        unique = [name for name, _ in itertools.groupby(sorted(raw))]
        return [name for name in unique if predicate(name)]

    # ------------------------------------------------------------------
    # 元信息 / 本地管理
    # ------------------------------------------------------------------

    def describe_app(self, name: str, version: str = LATEST) -> str:
        """读取应用的 .app 元信息；latest 先固定为远程最高版本"""
        validate_name(name)
        repos, chain = self.config.fetch_repos, self.config.compat_chain
        if version == LATEST:
            version = self.resolver.highest_remote_version(
                repos, chain, PackageKind.APPLICATION, name,
            ).version
        validate_version(version)
        return self.fetcher.describe(
            repos, chain, lambda tier: app_file_suffix(tier, name, version),
        )

    def remove(self, kind: PackageKind, name: str, version: str | None = None) -> list[str]:
        return self.store.remove(kind, name, version)

    def installed(self, side: SearchSide = SearchSide.BOTH) -> dict[str, list[InstalledPackage]]:
        listing: dict[str, list[InstalledPackage]] = {}
        if side in (SearchSide.LIB, SearchSide.BOTH):
            listing["applications"] = self.store.list_installed(PackageKind.APPLICATION)
        if side in (SearchSide.RELEASES, SearchSide.BOTH):
            listing["releases"] = self.store.list_installed(PackageKind.RELEASE)
        return listing

    def environment(self) -> dict[str, Any]:
        return {
            "version": __version__,
            "install_root": str(self.store.install_root),
            "request_timeout": self.config.timeout_label,
            "fetch_repos": list(self.config.fetch_repos),
            "publish_repos": list(self.config.publish_repos),
            "compat_chain": self.config.compat_chain,
            "system_tag": self.config.platform_tag,
            "force_policy": self.config.force_policy.value,
        }


def _check_upgradable(kind: PackageKind) -> None:
    if kind not in _UPGRADABLE:
        raise ValidationError(f"不支持对 {kind.value} 做升级检查")


def _make_predicate(query: str, mode: SearchMode) -> Callable[[str], bool]:
    if not query:
        return lambda _name: True
    if mode is SearchMode.REGEXP:
        try:
            pattern = re.compile(query)
        except re.error as e:
            raise ValidationError(f"无效的正则表达式 {query!r}: {e}") from e
        return lambda name: pattern.search(name) is not None
    return lambda name: query in name
