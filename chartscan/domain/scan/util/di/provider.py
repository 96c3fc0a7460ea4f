from dishka import provide

from chartscan.config import Config
from chartscan.domain.scan.command.scan_chart import ScanChartHandler
from chartscan.domain.scan.port.archive_reader import ArchiveReader
from chartscan.domain.scan.port.chart_fetcher import ChartFetcher
from chartscan.domain.scan.port.registry_inspector import RegistryInspector
from chartscan.domain.scan.service.scan import ScanService
from chartscan.domain.scan.service.scheduler import InspectionScheduler
from chartscan.util.di.base import Provider
from chartscan.util.di.scope import Scope


class ScanProvider(Provider):
    # Services
    @provide(scope=Scope.UOW)
    def get_scheduler(self, inspector: RegistryInspector, config: Config) -> InspectionScheduler:
        return InspectionScheduler(
            inspector=inspector,
            concurrency=config.scan.concurrency,
            timeout=config.scan.inspect_timeout,
        )

    @provide(scope=Scope.UOW)
    def get_scan_service(
        self,
        fetcher: ChartFetcher,
        archive: ArchiveReader,
        scheduler: InspectionScheduler,
        config: Config,
    ) -> ScanService:
        return ScanService(
            fetcher=fetcher,
            archive=archive,
            scheduler=scheduler,
            document_suffixes=tuple(config.scan.document_suffixes),
        )

    # Command Handlers
    scan_chart_handler = provide(ScanChartHandler, scope=Scope.UOW)
