"""rtpkg - 运行时软件包管理器"""

__version__ = "0.4.0"
