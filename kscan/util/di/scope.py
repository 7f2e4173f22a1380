"""Custom Dishka scopes for kscan."""

from dishka import BaseScope, new_scope


class Scope(BaseScope):  # type: ignore[misc]  # BaseScope is designed to be subclassed
    """kscan dependency injection scopes.

    Hierarchy: APP -> UOW

    - APP: Process lifetime (API clients, configuration)
    - UOW: Unit of Work (one CLI command or one scan)
    """

    APP = new_scope("APP")
    UOW = new_scope("UOW")
