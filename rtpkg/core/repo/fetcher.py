"""拉取传输

外层遍历兼容层、内层按优先级遍历仓库，首个成功的请求立即返回，
不再访问后续仓库或兼容层。

某个仓库 "不存在" 或 "连接失败" 都只记录并继续扫描：镜像宕机不应阻断
另一个镜像上已有的包。全部组合失败时抛出携带失败清单的 PackageNotFoundError。
包归档 (fetch) 与应用元信息 (describe) 共用这一扫描顺序。
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TypeVar

from rtpkg.core.exceptions import PackageNotFoundError, RepoConnectionError
from rtpkg.core.models import FetchFailure
from rtpkg.core.protocols import RepoClient

logger = logging.getLogger(__name__)

SuffixFn = Callable[[str], str]
T = TypeVar("T")


class PackageFetcher:
    """多仓库回退拉取器"""

    def __init__(self, client: RepoClient, timeout: int | None = None) -> None:
        self.client = client
        self.timeout = timeout

    def fetch(
        self,
        repos: Sequence[str],
        chain: Sequence[str],
        suffix_for: SuffixFn,
        dest_dir: Path,
    ) -> Path:
        """拉取到 dest_dir，返回本地文件路径

        参数:
            suffix_for: 由兼容层生成仓库路径后缀

        Raises:
            PackageNotFoundError: 所有 (tier, repo) 组合均失败，failures 为明细
        """
        return self._first_success(
            repos, chain, suffix_for,
            lambda repo, suffix: self.client.fetch(repo, suffix, dest_dir, self.timeout),
        )

    def describe(
        self, repos: Sequence[str], chain: Sequence[str], suffix_for: SuffixFn,
    ) -> str:
        """读取首个可用的元信息文本"""
        return self._first_success(
            repos, chain, suffix_for,
            lambda repo, suffix: self.client.describe(repo, suffix, self.timeout),
        )

    def _first_success(
        self,
        repos: Sequence[str],
        chain: Sequence[str],
        suffix_for: SuffixFn,
        attempt: Callable[[str, str], T],
    ) -> T:
        failures: list[FetchFailure] = []
        for tier in chain:
            suffix = suffix_for(tier)
            for repo in repos:
                try:
                    result = attempt(repo, suffix)
                except PackageNotFoundError as e:
                    failures.append(FetchFailure(tier=tier, repo=repo, reason=str(e)))
                    logger.debug("未找到 %s/%s", repo, suffix, extra={"repo": repo, "tier": tier})
                    continue
                except RepoConnectionError as e:
                    failures.append(FetchFailure(tier=tier, repo=repo, reason=str(e)))
                    logger.warning(
                        "仓库不可达，尝试下一个: %s (%s)", repo, e,
                        extra={"repo": repo, "tier": tier},
                    )
                    continue
                logger.info("拉取成功: %s/%s", repo, suffix, extra={"repo": repo, "tier": tier})
                return result

        raise PackageNotFoundError(
            f"所有仓库均无法提供 {suffix_for(chain[0]) if chain else '(空兼容层)'}",
            failures=[(f.tier, f.repo, f.reason) for f in failures],
        )
