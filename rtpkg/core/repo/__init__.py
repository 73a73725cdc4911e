"""远程仓库访问

- client.py:    HTTP/WebDAV 仓库客户端
- resolver.py:  跨仓库求最高版本
- fetcher.py:   首个成功即返回的回退拉取
- publisher.py: 全仓库复制发布
"""

from rtpkg.core.repo.client import HttpRepoClient
from rtpkg.core.repo.fetcher import PackageFetcher
from rtpkg.core.repo.publisher import PackagePublisher
from rtpkg.core.repo.resolver import VersionResolver

__all__ = [
    "HttpRepoClient",
    "PackageFetcher",
    "PackagePublisher",
    "VersionResolver",
]
