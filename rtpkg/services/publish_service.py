"""发布服务 — 把本地包目录或归档推送到所有发布仓库

路径选择:
  应用      Generic；带原生代码 (priv/*.so) 的应用放在目标运行时兼容层
  发布      Generic
  运行时    <Vsn>/<SystemTag>/erts/...
应用目录下有 ebin/<name>.app 时，元信息文件单独再发布一份。
"""

from __future__ import annotations

import io
import logging
import tarfile
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from rtpkg.core.config import Config
from rtpkg.core.exceptions import ConfigError, ValidationError
from rtpkg.core.models import PackageKind, PackageRef, PublishOutcome
from rtpkg.core.protocols import PackageInstaller
from rtpkg.core.repo.publisher import PackagePublisher
from rtpkg.core.repo_paths import (
    GENERIC_TIER,
    app_file_suffix,
    package_suffix,
    runtime_suffix,
)

logger = logging.getLogger(__name__)


@dataclass
class PublishReport:
    """一次发布的全部结果：[(仓库路径后缀, 发布结果)]"""

    ref: PackageRef
    outcomes: list[tuple[str, PublishOutcome]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(outcome.success for _, outcome in self.outcomes)


def has_native_code(package_dir: Path) -> bool:
    priv = package_dir / "priv"
    return priv.is_dir() and any(priv.rglob("*.so"))


def pack_directory(package_dir: Path) -> bytes:
    """在内存中把包目录打成 tar.gz，顶层为目录本身"""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tf:
        tf.add(str(package_dir), arcname=package_dir.name)
    return buf.getvalue()


class PublishService:
    """包发布"""

    def __init__(
        self,
        config: Config,
        publisher: PackagePublisher,
        installer: PackageInstaller,
    ) -> None:
        self.config = config
        self.publisher = publisher
        self.installer = installer

    def publish(self, path: str | Path) -> PublishReport:
        """发布目录或 .tar.gz 归档

        Raises:
            ConfigError: 未配置发布仓库
            ValidationError: 路径不存在，或原生代码应用缺少目标运行时版本
            MalformedPackageError: 无法识别包类型
        """
        repos = list(self.config.publish_repos)
        if not repos:
            raise ConfigError("未配置发布仓库，请先执行 add-publish-repo")

        p = Path(path).expanduser()
        if p.is_dir():
            return self._publish_dir(p, pack_directory(p), repos)
        if p.is_file():
            payload = p.read_bytes()
            with tempfile.TemporaryDirectory(prefix="rtpkg-publish-") as tmp:
                package_dir = self.installer.unpack(p, Path(tmp))
                return self._publish_dir(package_dir, payload, repos)
        raise ValidationError(f"待发布的包不存在: {p}")

    def _publish_dir(
        self, package_dir: Path, payload: bytes, repos: list[str],
    ) -> PublishReport:
        ref = self.installer.identify(package_dir)
        report = PublishReport(ref=ref)

        if ref.kind is PackageKind.RUNTIME:
            suffix = runtime_suffix(ref.version, self.config.platform_tag)
            report.outcomes.append((suffix, self.publisher.publish(repos, suffix, payload)))
            return report

        tier = self._tier_for(ref, package_dir)
        suffix = package_suffix(tier, ref.kind.side, ref.name, ref.version)
        logger.info("发布 %s -> %s", ref, suffix, extra={"package": ref.label, "tier": tier})
        report.outcomes.append((suffix, self.publisher.publish(repos, suffix, payload)))

        app_file = package_dir / "ebin" / f"{ref.name}.app"
        if ref.kind is PackageKind.APPLICATION and app_file.is_file():
            meta_suffix = app_file_suffix(tier, ref.name, ref.version)
            report.outcomes.append(
                (meta_suffix, self.publisher.publish(repos, meta_suffix, app_file.read_bytes()))
            )
        return report

    def _tier_for(self, ref: PackageRef, package_dir: Path) -> str:
        if ref.kind is PackageKind.APPLICATION and has_native_code(package_dir):
            if not self.config.runtime_vsn:
                raise ValidationError(
                    f"{ref} 含原生代码，需要在配置中指定 runtime_vsn"
                )
            return self.config.runtime_vsn
        return GENERIC_TIER
