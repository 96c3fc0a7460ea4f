"""Port for describing images held by a container registry."""

from abc import abstractmethod
from typing import Protocol, runtime_checkable

from chartscan.domain.scan.model.value import ImageReference, LayerDescriptor
from chartscan.domain.shared.port import Port


@runtime_checkable
class RegistryInspector(Port, Protocol):
    """Looks up the layers of an image without pulling its content."""

    @abstractmethod
    async def inspect(self, reference: ImageReference) -> list[LayerDescriptor]:
        """
        Describe the layers of an image.

        Args:
            reference: Image reference as found in the chart

        Returns:
            One LayerDescriptor per layer, in manifest order

        Raises:
            InspectError: If the registry is unreachable, refuses access, or does
                not know the reference
        """
        ...
