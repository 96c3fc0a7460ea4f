from typing import Protocol


class Port(Protocol):
    """Marker base for domain ports implemented by infrastructure adapters."""


__all__ = ["Port"]
