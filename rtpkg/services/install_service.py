"""安装编排器

安装流程是一个显式状态机:

  Start         本地路径 -> InstallLocal；包引用版本为 latest -> 先由解析器固定版本
  CheckExisting 已安装时按覆盖策略决定跳过或重装
  Fetch         拉取到本次操作独占的临时目录（并发进程互不冲突）
  InstallLocal  调用本地安装器并按判别结果分派:
                  InstallOk            -> 成功，删除临时目录
                  MissingDependencies  -> 逐个安装缺失的应用后，对同一目录重试
                  MissingRuntime       -> 安装要求的运行时后，对同一目录重试
                  MalformedPackage     -> 终止，保留临时目录供排查

重试没有环检测；max_attempts 为 0 时不设上限（某个依赖安装后仍被报告缺失会一直重试），
设置为正数时超过次数抛 InstallRetryExhaustedError。
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path

from rtpkg.core.config import Config
from rtpkg.core.exceptions import (
    InstallRetryExhaustedError,
    InvalidVersionError,
    MalformedPackageError,
    PackageNotFoundError,
    ValidationError,
)
from rtpkg.core.models import (
    LATEST,
    ForcePolicy,
    InstallOk,
    InstallOutcome,
    InstallResult,
    MissingDependencies,
    MissingRuntime,
    PackageKind,
    PackageRef,
)
from rtpkg.core.protocols import Confirmer, PackageInstaller, PackageStore
from rtpkg.core.repo.fetcher import PackageFetcher, SuffixFn
from rtpkg.core.repo.resolver import VersionResolver
from rtpkg.core.repo_paths import (
    RUNTIME_NAME,
    default_compat_chain,
    package_suffix,
    runtime_suffix,
)
from rtpkg.core.version import validate_name, validate_version

logger = logging.getLogger(__name__)

_LOCAL_ARCHIVE_EXTS = (".tar.gz", ".tgz")


def looks_like_path(arg: str) -> bool:
    """含路径分隔符、以 ~ 或 . 开头或带归档扩展名的参数视为本地路径"""
    seps = {"/", os.sep} | ({os.altsep} if os.altsep else set())
    return (
        any(s in arg for s in seps)
        or arg.startswith(("~", "."))
        or arg.endswith(_LOCAL_ARCHIVE_EXTS)
    )


class InstallOrchestrator:
    """解析 -> 拉取 -> 本地安装 -> 补齐缺失后重试"""

    def __init__(
        self,
        config: Config,
        resolver: VersionResolver,
        fetcher: PackageFetcher,
        installer: PackageInstaller,
        store: PackageStore,
        confirmer: Confirmer | None = None,
        max_attempts: int | None = None,
    ) -> None:
        self.config = config
        self.resolver = resolver
        self.fetcher = fetcher
        self.installer = installer
        self.store = store
        self.confirmer = confirmer
        self.max_attempts = (
            config.max_install_attempts if max_attempts is None else max_attempts
        )

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    def install(
        self, kind: PackageKind, name_or_path: str, version: str | None = None,
    ) -> InstallOutcome:
        """CLI 入口：参数形如路径时按本地包安装，否则按远程包名安装

        裸包名即使与当前目录下的文件同名也按远程包处理。
        """
        if version is None and looks_like_path(name_or_path):
            return self.install_local(Path(name_or_path).expanduser(), kind=kind)
        ref = PackageRef(kind=kind, name=name_or_path, version=version or LATEST)
        return self.install_remote(ref)

    def install_remote(
        self, ref: PackageRef, chain: Sequence[str] | None = None,
    ) -> InstallOutcome:
        validate_name(ref.name)
        repos = list(self.config.fetch_repos)
        tiers = list(chain) if chain else self.config.compat_chain

        if ref.is_latest:
            if ref.kind is PackageKind.RUNTIME:
                raise InvalidVersionError("安装运行时必须指定版本")
            remote = self.resolver.highest_remote_version(repos, tiers, ref.kind, ref.name)
            ref = ref.pinned(remote.version)
            logger.info("已固定版本: %s", ref, extra={"package": ref.label})
        validate_version(ref.version)

        # ---- CheckExisting ----
        if self.store.is_installed(ref.kind, ref.name, ref.version):
            if not self._should_overwrite(ref):
                logger.info("已安装，跳过: %s", ref, extra={"package": ref.label})
                return InstallOutcome(
                    ref=ref, status="skipped",
                    path=str(self.store.installed_path(ref.kind, ref.name, ref.version)),
                )
            logger.info("已安装，按策略重装: %s", ref, extra={"package": ref.label})

        # ---- Fetch ----
        scratch = self._new_scratch_dir()
        fetch_chain, suffix_for = self._fetch_plan(ref, tiers)
        try:
            archive = self.fetcher.fetch(repos, fetch_chain, suffix_for, scratch)
        except PackageNotFoundError:
            self.store.delete_dir(scratch)
            raise
        package_dir = self.installer.unpack(archive, scratch / "pkg")

        return self._install_local(ref, package_dir, scratch, tiers)

    def install_local(
        self, path: Path, kind: PackageKind | None = None,
    ) -> InstallOutcome:
        """安装本地归档或目录；归档先解压到临时目录"""
        scratch: Path | None = None
        if path.is_file():
            scratch = self._new_scratch_dir()
            package_dir = self.installer.unpack(path, scratch)
        elif path.is_dir():
            package_dir = path
        else:
            raise ValidationError(f"本地包不存在: {path}")

        ref = self.installer.identify(package_dir)
        if kind is not None and ref.kind is not kind:
            raise ValidationError(
                f"{path} 是 {ref.kind.value} 包，不是 {kind.value} 包"
            )
        return self._install_local(ref, package_dir, scratch, self.config.compat_chain)

    # ------------------------------------------------------------------
    # InstallLocal
    # ------------------------------------------------------------------

    def _install_local(
        self,
        ref: PackageRef,
        package_dir: Path,
        scratch: Path | None,
        chain: Sequence[str],
    ) -> InstallOutcome:
        if ref.is_latest:
            raise ValidationError(f"本地安装前必须固定版本: {ref}")

        attempt = 0
        while True:
            attempt += 1
            if self.max_attempts and attempt > self.max_attempts:
                raise InstallRetryExhaustedError(
                    f"{ref} 在 {self.max_attempts} 次尝试后仍缺少依赖"
                )
            logger.debug(
                "本地安装 %s (第 %d 次)", ref, attempt,
                extra={"package": ref.label, "attempt": attempt},
            )
            result = self._run_installer(ref.kind, package_dir)

            if isinstance(result, InstallOk):
                if scratch is not None:
                    self.store.delete_dir(scratch)
                logger.info("安装完成: %s", ref, extra={"package": ref.label})
                return InstallOutcome(ref=ref, attempts=attempt, path=result.path)

            if isinstance(result, MissingDependencies) and ref.kind is PackageKind.RELEASE:
                dep_chain = self._chain_for_runtime(result.runtime_vsn, chain)
                for app_name, app_vsn in result.applications:
                    logger.info(
                        "%s 缺少应用 %s-%s，开始拉取", ref, app_name, app_vsn,
                        extra={"package": ref.label},
                    )
                    self.install_remote(
                        PackageRef(PackageKind.APPLICATION, app_name, app_vsn),
                        chain=dep_chain,
                    )
                continue

            if isinstance(result, MissingRuntime) and ref.kind is PackageKind.RELEASE:
                logger.info(
                    "%s 缺少运行时 %s，开始拉取", ref, result.runtime_vsn,
                    extra={"package": ref.label},
                )
                self.install_remote(
                    PackageRef(PackageKind.RUNTIME, RUNTIME_NAME, result.runtime_vsn),
                )
                continue

            # 临时目录保留供排查
            reason = getattr(result, "reason", repr(result))
            logger.error("安装失败 %s: %s (保留目录 %s)", ref, reason, package_dir)
            raise MalformedPackageError(f"{ref} 安装失败: {reason}", str(package_dir))

    def _run_installer(self, kind: PackageKind, package_dir: Path) -> InstallResult:
        if kind is PackageKind.APPLICATION:
            return self.installer.install_application(package_dir)
        if kind is PackageKind.RELEASE:
            return self.installer.install_release(package_dir)
        return self.installer.install_runtime(package_dir)

    # ------------------------------------------------------------------
    # 辅助
    # ------------------------------------------------------------------

    def _should_overwrite(self, ref: PackageRef) -> bool:
        policy = self.config.force_policy
        if policy is ForcePolicy.ALWAYS:
            return True
        if policy is ForcePolicy.NEVER:
            return False
        if self.confirmer is None:
            return False
        return self.confirmer.confirm(f"{ref} 已安装，是否覆盖?")

    def _fetch_plan(
        self, ref: PackageRef, tiers: Sequence[str],
    ) -> tuple[list[str], SuffixFn]:
        if ref.kind is PackageKind.RUNTIME:
            # 运行时包只按平台标签区分，不走兼容层
            return [self.config.platform_tag], lambda tag: runtime_suffix(ref.version, tag)
        side = ref.kind.side
        return list(tiers), lambda tier: package_suffix(tier, side, ref.name, ref.version)

    def _chain_for_runtime(self, runtime_vsn: str, fallback: Sequence[str]) -> list[str]:
        """发布包依赖的应用按发布要求的运行时版本查找"""
        if self.config.compat_tiers or not runtime_vsn:
            return list(fallback)
        return default_compat_chain(runtime_vsn)

    def _new_scratch_dir(self) -> Path:
        base = self.config.scratch_dir or None
        if base:
            Path(base).mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix="rtpkg-", dir=base))
