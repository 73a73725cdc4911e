"""发布传输

与拉取相反：逐个联系每一个发布仓库，不短路。
单个仓库的异常被隔离为一条失败记录，不影响其余仓库；全部尝试结束后再归类结果。
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from rtpkg.core.models import (
    PublishAllFailed,
    PublishAllOk,
    PublishFailure,
    PublishOutcome,
    PublishPartialFailure,
)
from rtpkg.core.protocols import PublishClient

logger = logging.getLogger(__name__)


class PackagePublisher:
    """多仓库复制发布器"""

    def __init__(self, client: PublishClient, timeout: int | None = None) -> None:
        self.client = client
        self.timeout = timeout

    def publish(
        self, repos: Sequence[str], suffix: str, payload: bytes,
    ) -> PublishOutcome:
        urls: list[str] = []
        failures: list[PublishFailure] = []
        for repo in repos:
            try:
                urls.append(self.client.put(repo, suffix, payload, self.timeout))
            except Exception as e:  # noqa: BLE001  单仓库失败只记录，不中止其余仓库
                logger.warning("发布到 %s 失败: %s", repo, e)
                failures.append(PublishFailure(repo=repo, reason=str(e)))

        if not failures:
            return PublishAllOk(urls=urls)
        if not urls:
            return PublishAllFailed(failures=failures)
        logger.warning(
            "发布部分失败: %d 成功, %d 失败 (%s)",
            len(urls), len(failures), ", ".join(f.repo for f in failures),
        )
        return PublishPartialFailure(urls=urls, failures=failures)
