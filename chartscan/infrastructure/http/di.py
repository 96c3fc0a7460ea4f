"""DI provider for HTTP infrastructure."""

from collections.abc import AsyncIterable
from typing import NewType

import httpx
from dishka import provide

from chartscan.config import Config
from chartscan.domain.scan.port.chart_fetcher import ChartFetcher
from chartscan.infrastructure.http.chart_fetcher import HttpChartFetcher
from chartscan.util.di.base import Provider
from chartscan.util.di.scope import Scope

# Disambiguate from the registry httpx.AsyncClient
ChartHttpClient = NewType("ChartHttpClient", httpx.AsyncClient)


class HttpProvider(Provider):
    """DI provider for chart download adapters."""

    @provide(scope=Scope.APP)
    async def get_chart_http_client(self, config: Config) -> AsyncIterable[ChartHttpClient]:
        """Dedicated HTTP client for downloading chart archives."""
        client = httpx.AsyncClient(
            timeout=httpx.Timeout(config.archive.fetch_timeout, connect=10.0),
            follow_redirects=True,
        )
        yield ChartHttpClient(client)
        await client.aclose()

    @provide(scope=Scope.APP, provides=ChartFetcher)
    def get_chart_fetcher(self, client: ChartHttpClient, config: Config) -> HttpChartFetcher:
        return HttpChartFetcher(client=client, max_bytes=config.archive.max_bytes)
