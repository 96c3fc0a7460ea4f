"""HTTP adapter for ChartFetcher port."""

import httpx
import logfire

from chartscan.domain.scan.port.chart_fetcher import ChartFetcher
from chartscan.domain.shared.error import ChartFetchError


class HttpChartFetcher(ChartFetcher):
    """Downloads chart archives using httpx.

    The body is streamed so that an oversized archive is rejected as soon as it
    crosses `max_bytes`, without buffering the rest of it.
    """

    def __init__(self, client: httpx.AsyncClient, max_bytes: int) -> None:
        self._client = client
        self._max_bytes = max_bytes

    async def fetch(self, url: str) -> bytes:
        try:
            async with self._client.stream("GET", url) as response:
                if response.status_code != httpx.codes.OK:
                    raise ChartFetchError(
                        f"bad status downloading chart: {response.status_code} {response.reason_phrase}",
                        code="chart_bad_status",
                    )

                declared = response.headers.get("Content-Length")
                if declared and declared.isdigit() and int(declared) > self._max_bytes:
                    raise self._too_large(url)

                buffer = bytearray()
                async for chunk in response.aiter_bytes():
                    buffer.extend(chunk)
                    if len(buffer) > self._max_bytes:
                        raise self._too_large(url)
        except httpx.InvalidURL as e:
            raise ChartFetchError(f"invalid chart URL: {e}", code="chart_invalid_url") from e
        except httpx.HTTPError as e:
            logfire.warning("Chart download failed", url=url, error=str(e))
            raise ChartFetchError(f"downloading chart: {e}", code="chart_unreachable") from e

        logfire.info("Chart downloaded", url=url, size_bytes=len(buffer))
        return bytes(buffer)

    def _too_large(self, url: str) -> ChartFetchError:
        logfire.warning("Chart archive too large", url=url, max_bytes=self._max_bytes)
        return ChartFetchError(
            f"chart archive exceeds {self._max_bytes} bytes",
            code="chart_too_large",
        )
