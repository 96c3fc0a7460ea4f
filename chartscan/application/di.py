from dishka import AsyncContainer, from_context, make_async_container

from chartscan.config import Config
from chartscan.domain.scan.util.di import ScanProvider
from chartscan.infrastructure.archive import ArchiveProvider
from chartscan.infrastructure.http import HttpProvider
from chartscan.infrastructure.registry import RegistryProvider
from chartscan.util.di.base import Provider
from chartscan.util.di.scope import Scope


class ConfigProvider(Provider):
    config = from_context(provides=Config, scope=Scope.APP)


def create_container(config: Config | None = None) -> AsyncContainer:
    # Pydantic Settings populates from env vars at runtime
    config = config or Config()

    return make_async_container(
        ConfigProvider(),
        HttpProvider(),
        ArchiveProvider(),
        RegistryProvider(),
        ScanProvider(),
        context={Config: config},
        scopes=Scope,  # type: ignore[arg-type]  # Custom scope class
    )
