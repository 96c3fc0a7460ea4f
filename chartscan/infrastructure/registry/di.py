"""DI provider for registry infrastructure."""

from dishka import provide

from chartscan.config import Config
from chartscan.domain.scan.port.registry_inspector import RegistryInspector
from chartscan.infrastructure.registry.inspector import OrasRegistryInspector
from chartscan.util.di.base import Provider
from chartscan.util.di.scope import Scope


class RegistryProvider(Provider):
    """DI provider for the registry inspector."""

    # One inspector per scan: registry clients and their tokens end with it
    @provide(scope=Scope.UOW, provides=RegistryInspector)
    def get_registry_inspector(self, config: Config) -> OrasRegistryInspector:
        return OrasRegistryInspector(
            platform_os=config.registry.platform_os,
            platform_architecture=config.registry.platform_architecture,
            insecure_registries=config.registry.insecure_registries,
            credentials=config.registry.credentials,
        )
