"""网络工具 — 仓库地址校验与拼接"""

from __future__ import annotations

from urllib.parse import quote, urlparse

from rtpkg.core.exceptions import ValidationError

_ALLOWED_SCHEMES = frozenset(("http", "https"))


def validate_url_scheme(url: str, *, context: str = "") -> None:
    """校验 URL 仅使用 http/https

    Raises:
        ValidationError: URL scheme 不在白名单内
    """
    parsed = urlparse(url)
    if parsed.scheme not in _ALLOWED_SCHEMES:
        label = f" ({context})" if context else ""
        raise ValidationError(
            f"不允许的 URL 协议 '{parsed.scheme}'{label}，"
            f"仅支持 http/https: {url}"
        )


def join_url(repo: str, suffix: str) -> str:
    """拼接仓库根地址与路径后缀，后缀中的每一段做百分号转义"""
    suffix = "/".join(quote(part) for part in suffix.split("/"))
    return f"{repo.rstrip('/')}/{suffix.lstrip('/')}"


def timeout_seconds(timeout_ms: int | None) -> float | None:
    """毫秒超时转为 urllib 使用的秒；None 表示不限时"""
    if timeout_ms is None:
        return None
    return timeout_ms / 1000.0
