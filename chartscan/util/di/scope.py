"""Custom Dishka scopes for chartscan."""

from dishka import BaseScope, new_scope


class Scope(BaseScope):  # type: ignore[misc]  # BaseScope is designed to be subclassed
    """chartscan dependency injection scopes.

    Hierarchy: APP -> UOW

    - APP: Application lifetime (HTTP clients, configuration)
    - UOW: Unit of Work (one HTTP request / one scan)
    """

    APP = new_scope("APP")
    UOW = new_scope("UOW")
