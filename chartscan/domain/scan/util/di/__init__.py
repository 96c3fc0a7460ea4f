from chartscan.domain.scan.util.di.provider import ScanProvider

__all__ = ["ScanProvider"]
