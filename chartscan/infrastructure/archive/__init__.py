from chartscan.infrastructure.archive.di import ArchiveProvider

__all__ = ["ArchiveProvider"]
