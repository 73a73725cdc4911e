"""版本解析器

在全部仓库 × 全部兼容层上查询某个包的可用版本，求全局最高版本。

与拉取不同，这里不是 "首个成功即返回"：必须汇总所有仓库的列表才能得到真正的最大值。
任一仓库连接失败即中止整个查询，部分仓库宕机不能被误判为 "找不到"。
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from rtpkg.core.exceptions import InvalidVersionError, PackageNotFoundError
from rtpkg.core.models import PackageKind, RemoteVersion
from rtpkg.core.protocols import RepoClient
from rtpkg.core.repo_paths import versions_suffix
from rtpkg.core.version import VERSION_RE, version_key

logger = logging.getLogger(__name__)


class VersionResolver:
    """远程版本解析器"""

    def __init__(self, client: RepoClient, timeout: int | None = None) -> None:
        self.client = client
        self.timeout = timeout

    def available_versions(
        self,
        repos: Sequence[str],
        chain: Sequence[str],
        kind: PackageKind,
        name: str,
    ) -> list[RemoteVersion]:
        """按 (tier, repo) 顺序收集全部 (repo, version)

        Raises:
            RepoConnectionError: 任一仓库不可达
        """
        found: list[RemoteVersion] = []
        for tier in chain:
            suffix = versions_suffix(tier, kind.side, name)
            for repo in repos:
                try:
                    versions = self.client.list(repo, suffix, self.timeout)
                except PackageNotFoundError:
                    logger.debug("未列出 %s: %s/%s", name, repo, suffix)
                    continue
                for v in versions:
                    if not VERSION_RE.match(v):
                        logger.debug("忽略非版本条目 %s/%s: %s", repo, suffix, v)
                        continue
                    found.append(RemoteVersion(repo=repo, version=v))
        return found

    def highest_remote_version(
        self,
        repos: Sequence[str],
        chain: Sequence[str],
        kind: PackageKind,
        name: str,
    ) -> RemoteVersion:
        """全局最高版本；同版本出现在多个仓库时取仓库列表中靠前者

        Raises:
            PackageNotFoundError: 所有仓库都没有该包
            RepoConnectionError: 任一仓库不可达
        """
        best: RemoteVersion | None = None
        best_key = None
        repo_rank = {repo: i for i, repo in reversed(list(enumerate(repos)))}
        for candidate in self.available_versions(repos, chain, kind, name):
            try:
                key = version_key(candidate.version)
            except InvalidVersionError:
                continue
            if (
                best is None
                or key > best_key
                or (key == best_key and repo_rank[candidate.repo] < repo_rank[best.repo])
            ):
                best, best_key = candidate, key

        if best is None:
            raise PackageNotFoundError(
                f"所有仓库中均找不到 {kind.value} {name} (兼容层: {', '.join(chain)})"
            )
        logger.info("%s 最高远程版本: %s (%s)", name, best.version, best.repo)
        return best
