"""服务容器 — 从一份配置快照懒加载并共享各服务

依赖关系图（→ 表示依赖）:
  install → resolver, fetcher, installer, store
  manage  → client, resolver, fetcher, store, install
  publish → publisher, installer

配置快照在构造时显式传入，容器不读取任何全局状态；
CLI 每次调用构造一个容器。

用法:
    cfg = Config.from_file("~/.rtpkg/config.yml")
    container = ServiceContainer(cfg, confirmer=ClickConfirmer())
    container.install.install_remote(PackageRef(PackageKind.APPLICATION, "gas"))
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rtpkg.core.config import Config

if TYPE_CHECKING:
    from rtpkg.core.local.installer import LocalPackageInstaller
    from rtpkg.core.local.store import LocalPackageStore
    from rtpkg.core.protocols import Confirmer
    from rtpkg.core.repo.client import HttpRepoClient
    from rtpkg.core.repo.fetcher import PackageFetcher
    from rtpkg.core.repo.publisher import PackagePublisher
    from rtpkg.core.repo.resolver import VersionResolver
    from rtpkg.services.install_service import InstallOrchestrator
    from rtpkg.services.manage_service import ManageService
    from rtpkg.services.publish_service import PublishService

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器 — 同一容器内的实例共享同一份配置快照"""

    def __init__(self, config: Config, confirmer: Confirmer | None = None) -> None:
        self._config = config
        self._confirmer = confirmer
        self._instances: dict[str, object] = {}

    @property
    def config(self) -> Config:
        return self._config

    # ---- 协作者 ----

    @property
    def client(self) -> HttpRepoClient:
        if "client" not in self._instances:
            from rtpkg.core.repo.client import HttpRepoClient
            self._instances["client"] = HttpRepoClient()
        return self._instances["client"]  # type: ignore[return-value]

    @property
    def store(self) -> LocalPackageStore:
        if "store" not in self._instances:
            from rtpkg.core.local.store import LocalPackageStore
            self._instances["store"] = LocalPackageStore(self._config.install_root)
        return self._instances["store"]  # type: ignore[return-value]

    @property
    def installer(self) -> LocalPackageInstaller:
        if "installer" not in self._instances:
            from rtpkg.core.local.installer import LocalPackageInstaller
            self._instances["installer"] = LocalPackageInstaller(self.store)
        return self._instances["installer"]  # type: ignore[return-value]

    @property
    def resolver(self) -> VersionResolver:
        if "resolver" not in self._instances:
            from rtpkg.core.repo.resolver import VersionResolver
            self._instances["resolver"] = VersionResolver(
                self.client, self._config.request_timeout,
            )
        return self._instances["resolver"]  # type: ignore[return-value]

    @property
    def fetcher(self) -> PackageFetcher:
        if "fetcher" not in self._instances:
            from rtpkg.core.repo.fetcher import PackageFetcher
            self._instances["fetcher"] = PackageFetcher(
                self.client, self._config.request_timeout,
            )
        return self._instances["fetcher"]  # type: ignore[return-value]

    @property
    def publisher(self) -> PackagePublisher:
        if "publisher" not in self._instances:
            from rtpkg.core.repo.publisher import PackagePublisher
            self._instances["publisher"] = PackagePublisher(
                self.client, self._config.request_timeout,
            )
        return self._instances["publisher"]  # type: ignore[return-value]

    # ---- 服务层 ----

    @property
    def install(self) -> InstallOrchestrator:
        if "install" not in self._instances:
            from rtpkg.services.install_service import InstallOrchestrator
            self._instances["install"] = InstallOrchestrator(
                config=self._config,
                resolver=self.resolver,
                fetcher=self.fetcher,
                installer=self.installer,
                store=self.store,
                confirmer=self._confirmer,
            )
        return self._instances["install"]  # type: ignore[return-value]

    @property
    def manage(self) -> ManageService:
        if "manage" not in self._instances:
            from rtpkg.services.manage_service import ManageService
            self._instances["manage"] = ManageService(
                config=self._config,
                client=self.client,
                resolver=self.resolver,
                fetcher=self.fetcher,
                store=self.store,
                orchestrator=self.install,
            )
        return self._instances["manage"]  # type: ignore[return-value]

    @property
    def publish(self) -> PublishService:
        if "publish" not in self._instances:
            from rtpkg.services.publish_service import PublishService
            self._instances["publish"] = PublishService(
                config=self._config,
                publisher=self.publisher,
                installer=self.installer,
            )
        return self._instances["publish"]  # type: ignore[return-value]
