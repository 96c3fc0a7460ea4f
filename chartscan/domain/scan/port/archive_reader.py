"""Port for unpacking chart archives."""

from abc import abstractmethod
from collections.abc import Iterator
from typing import Protocol

from chartscan.domain.scan.model.value import ChartDocument
from chartscan.domain.shared.port import Port


class ArchiveReader(Port, Protocol):
    """Turns raw archive bytes into the named files it contains."""

    @abstractmethod
    def read(self, data: bytes) -> Iterator[ChartDocument]:
        """Yield the configuration files in the archive, in archive order.

        Raises:
            ChartUnpackError: If the archive cannot be decompressed or unpacked, or
                unpacks to more than the configured size.
        """
        ...
