"""Port for downloading chart archives."""

from abc import abstractmethod
from typing import Protocol

from chartscan.domain.shared.port import Port


class ChartFetcher(Port, Protocol):
    """Downloads a chart archive from a URL."""

    @abstractmethod
    async def fetch(self, url: str) -> bytes:
        """Return the raw archive bytes.

        Raises:
            ChartFetchError: If the archive is unreachable, the host answers with a
                non-success status, or the archive exceeds the size limit.
        """
        ...
