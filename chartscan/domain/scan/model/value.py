"""Scan value objects."""

from dataclasses import dataclass
from typing import NewType

from pydantic import Field

from chartscan.domain.shared.model.value import ValueObject

# Opaque image reference, e.g. "docker.io/library/nginx:1.27" or "app@sha256:...".
# Compared by exact string equality; never validated by the domain.
ImageReference = NewType("ImageReference", str)


class ImageInfo(ValueObject):
    """Size summary of one successfully inspected image."""

    reference: ImageReference
    total_size_bytes: int = Field(ge=0)
    layer_count: int = Field(ge=0)


@dataclass(frozen=True)
class ChartDocument:
    """A single file unpacked from a chart archive."""

    name: str
    content: bytes


@dataclass(frozen=True)
class LayerDescriptor:
    """One layer as reported by a registry manifest.

    ``size`` is None when the registry did not report a usable size.
    """

    digest: str
    size: int | None
