from chartscan.infrastructure.registry.di import RegistryProvider

__all__ = ["RegistryProvider"]
