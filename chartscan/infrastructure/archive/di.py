from dishka import provide

from chartscan.config import Config
from chartscan.domain.scan.port.archive_reader import ArchiveReader
from chartscan.infrastructure.archive.reader import TarArchiveReader
from chartscan.util.di.base import Provider
from chartscan.util.di.scope import Scope


class ArchiveProvider(Provider):
    @provide(scope=Scope.APP)
    def get_archive_reader(self, config: Config) -> ArchiveReader:
        return TarArchiveReader(
            suffixes=config.scan.document_suffixes,
            max_unpacked_bytes=config.archive.max_unpacked_bytes,
        )
