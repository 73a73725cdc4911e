"""仓库路径约定

所有实现共享的远程目录布局:

  <tier>/<lib|releases>/<Name>/<Vsn>/<Name>-<Vsn>.tar.gz     应用 / 发布包
  <tier>/lib/<Name>/<Vsn>/<Name>.app                          应用元信息
  <Vsn>/<SystemTag>/erts/<Vsn>/erts-<Vsn>.tar.gz              运行时包

tier 为兼容层: 目标运行时版本，或平台无关的 Generic。
"""

from __future__ import annotations

import platform

GENERIC_TIER = "Generic"
ARCHIVE_EXT = "tar.gz"
RUNTIME_NAME = "erts"


def package_suffix(tier: str, side: str, name: str, version: str) -> str:
    return f"{tier}/{side}/{name}/{version}/{name}-{version}.{ARCHIVE_EXT}"


def versions_suffix(tier: str, side: str, name: str) -> str:
    """列出某个包全部版本的目录"""
    return f"{tier}/{side}/{name}"


def names_suffix(tier: str, side: str) -> str:
    """列出某一侧全部包名的目录"""
    return f"{tier}/{side}"


def app_file_suffix(tier: str, name: str, version: str) -> str:
    return f"{tier}/lib/{name}/{version}/{name}.app"


def runtime_suffix(version: str, system_tag: str) -> str:
    return (
        f"{version}/{system_tag}/{RUNTIME_NAME}/{version}/"
        f"{RUNTIME_NAME}-{version}.{ARCHIVE_EXT}"
    )


def system_tag() -> str:
    """当前平台标签，如 Linux-x86_64"""
    return f"{platform.system() or 'unknown'}-{platform.machine() or 'unknown'}"


def default_compat_chain(runtime_vsn: str) -> list[str]:
    """兼容层回退链: 精确运行时版本 -> Generic"""
    if runtime_vsn:
        return [runtime_vsn, GENERIC_TIER]
    return [GENERIC_TIER]
