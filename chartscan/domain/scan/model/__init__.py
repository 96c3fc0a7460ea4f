from chartscan.domain.scan.model.value import (
    ChartDocument,
    ImageInfo,
    ImageReference,
    LayerDescriptor,
)

__all__ = [
    "ChartDocument",
    "ImageInfo",
    "ImageReference",
    "LayerDescriptor",
]
