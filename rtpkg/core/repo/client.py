"""HTTP 仓库客户端

仓库是普通 HTTP 目录服务 (读) + WebDAV (写):
  - list:     GET 目录，解析 HTML 索引中的链接
  - fetch:    GET 归档文件，流式写入临时文件后 rename
  - describe: GET 元信息文本
  - put:      PUT 文件，父目录缺失时逐级 MKCOL 后重试

错误统一映射为 PackageNotFoundError (404/410) 与 RepoConnectionError。
"""

from __future__ import annotations

import http.client
import logging
import os
import tempfile
import urllib.error
import urllib.request
from html.parser import HTMLParser
from pathlib import Path
from urllib.parse import unquote, urlparse

from rtpkg import __version__
from rtpkg.core.exceptions import PackageNotFoundError, RepoConnectionError
from rtpkg.utils.net import join_url, timeout_seconds, validate_url_scheme

logger = logging.getLogger(__name__)

USER_AGENT = f"rtpkg/{__version__}"
_CHUNK = 8192
_NOT_FOUND_CODES = frozenset((404, 410))
# 连接层错误，包括对端返回畸形或被截断的 HTTP 响应
_TRANSPORT_ERRORS = (urllib.error.URLError, http.client.HTTPException, OSError)


class _IndexLinkParser(HTMLParser):
    """收集目录索引页中的 href"""

    def __init__(self) -> None:
        super().__init__()
        self.links: list[str] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag != "a":
            return
        for key, value in attrs:
            if key == "href" and value:
                self.links.append(value)


def parse_index(html: str) -> list[str]:
    """从目录索引 HTML 中提取直接子条目名（保持出现顺序、去重）

    忽略父目录、排序参数 (?C=N;O=D) 、绝对路径与外部链接。
    """
    parser = _IndexLinkParser()
    parser.feed(html)
    entries: list[str] = []
    for href in parser.links:
        if href.startswith(("?", "#", "/", "../")) or "://" in href:
            continue
        name = unquote(href.split("?", 1)[0]).rstrip("/")
        if not name or "/" in name or name in (".", ".."):
            continue
        if name not in entries:
            entries.append(name)
    return entries


class HttpRepoClient:
    """基于 urllib 的仓库客户端，同时满足 RepoClient 与 PublishClient 协议"""

    def __init__(self, user_agent: str = USER_AGENT) -> None:
        self.user_agent = user_agent

    # ------------------------------------------------------------------
    # 读
    # ------------------------------------------------------------------

    def list(self, repo: str, suffix: str, timeout: int | None) -> list[str]:
        url = join_url(repo, suffix) + "/"
        body = self._get(url, repo, timeout)
        entries = parse_index(body.decode("utf-8", errors="replace"))
        logger.debug("列目录 %s -> %d 项", url, len(entries))
        return entries

    def describe(self, repo: str, suffix: str, timeout: int | None) -> str:
        url = join_url(repo, suffix)
        return self._get(url, repo, timeout).decode("utf-8", errors="replace")

    def fetch(
        self, repo: str, suffix: str, dest_dir: Path, timeout: int | None,
    ) -> Path:
        url = join_url(repo, suffix)
        validate_url_scheme(url, context="fetch")
        dest_dir.mkdir(parents=True, exist_ok=True)
        dest = dest_dir / Path(urlparse(url).path).name

        req = urllib.request.Request(url, headers={"User-Agent": self.user_agent})
        tmp_fd, tmp_path = tempfile.mkstemp(suffix=".tmp", dir=str(dest_dir))
        try:
            with os.fdopen(tmp_fd, "wb") as out:
                with urllib.request.urlopen(  # nosec B310
                    req, timeout=timeout_seconds(timeout),
                ) as resp:
                    for chunk in iter(lambda: resp.read(_CHUNK), b""):
                        out.write(chunk)
            os.replace(tmp_path, dest)
        except urllib.error.HTTPError as e:
            _unlink_quietly(tmp_path)
            raise self._http_error(e, url, repo) from e
        except _TRANSPORT_ERRORS as e:
            _unlink_quietly(tmp_path)
            raise RepoConnectionError(f"下载失败: {url} - {e}", repo=repo) from e

        logger.info("已下载: %s -> %s", url, dest)
        return dest

    # ------------------------------------------------------------------
    # 写
    # ------------------------------------------------------------------

    def put(
        self, repo: str, suffix: str, payload: bytes, timeout: int | None,
    ) -> str:
        url = join_url(repo, suffix)
        validate_url_scheme(url, context="publish")
        try:
            self._put_once(url, payload, timeout)
        except urllib.error.HTTPError as e:
            if e.code not in (404, 409):
                raise RepoConnectionError(
                    f"上传失败 HTTP {e.code}: {url}", repo=repo,
                ) from e
            # 父集合不存在，逐级创建后重试
            logger.debug("父目录不存在，创建集合: %s", url)
            try:
                self._make_collections(repo, suffix, timeout)
                self._put_once(url, payload, timeout)
            except urllib.error.HTTPError as e2:
                raise RepoConnectionError(
                    f"上传失败 HTTP {e2.code}: {url}", repo=repo,
                ) from e2
            except _TRANSPORT_ERRORS as e2:
                raise RepoConnectionError(f"上传失败: {url} - {e2}", repo=repo) from e2
        except _TRANSPORT_ERRORS as e:
            raise RepoConnectionError(f"上传失败: {url} - {e}", repo=repo) from e
        logger.info("已上传: %s (%d 字节)", url, len(payload))
        return url

    def _put_once(self, url: str, payload: bytes, timeout: int | None) -> None:
        req = urllib.request.Request(
            url, data=payload, method="PUT",
            headers={
                "User-Agent": self.user_agent,
                "Content-Type": "application/octet-stream",
            },
        )
        with urllib.request.urlopen(  # nosec B310
            req, timeout=timeout_seconds(timeout),
        ) as resp:
            resp.read()

    def _make_collections(self, repo: str, suffix: str, timeout: int | None) -> None:
        parts = suffix.strip("/").split("/")[:-1]
        for i in range(1, len(parts) + 1):
            url = join_url(repo, "/".join(parts[:i])) + "/"
            req = urllib.request.Request(
                url, method="MKCOL", headers={"User-Agent": self.user_agent},
            )
            try:
                with urllib.request.urlopen(  # nosec B310
                    req, timeout=timeout_seconds(timeout),
                ) as resp:
                    resp.read()
            except urllib.error.HTTPError as e:
                # 405: 集合已存在
                if e.code != 405:
                    raise

    # ------------------------------------------------------------------
    # 内部
    # ------------------------------------------------------------------

    def _get(self, url: str, repo: str, timeout: int | None) -> bytes:
        validate_url_scheme(url, context="repo read")
        req = urllib.request.Request(url, headers={"User-Agent": self.user_agent})
        try:
            with urllib.request.urlopen(  # nosec B310
                req, timeout=timeout_seconds(timeout),
            ) as resp:
                return resp.read()
        except urllib.error.HTTPError as e:
            raise self._http_error(e, url, repo) from e
        except _TRANSPORT_ERRORS as e:
            raise RepoConnectionError(f"仓库不可达: {url} - {e}", repo=repo) from e

    @staticmethod
    def _http_error(e: urllib.error.HTTPError, url: str, repo: str) -> Exception:
        if e.code in _NOT_FOUND_CODES:
            return PackageNotFoundError(f"不存在: {url}")
        return RepoConnectionError(f"HTTP {e.code}: {url}", repo=repo)


def _unlink_quietly(path: str) -> None:
    try:
        os.unlink(path)
    except OSError:
        pass
