"""服务层 — 安装编排、升级检索、发布"""

from rtpkg.services.container import ServiceContainer

__all__ = ["ServiceContainer"]
