from chartscan.domain.scan.port.archive_reader import ArchiveReader
from chartscan.domain.scan.port.chart_fetcher import ChartFetcher
from chartscan.domain.scan.port.registry_inspector import RegistryInspector

__all__ = [
    "ArchiveReader",
    "ChartFetcher",
    "RegistryInspector",
]
