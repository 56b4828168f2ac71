"""
Registry for edit transports.

Maps transport ids (e.g. "relay", "direct") to implementations.
"""

from pixshop.core.transports.base import EditTransport


class TransportRegistry:
    """Registry mapping transport id to EditTransport implementation."""

    def __init__(self) -> None:
        self._impls: dict[str, EditTransport] = {}

    def register(self, transport_id: str, impl: EditTransport) -> None:
        """Register a transport implementation. Idempotent for the same id."""
        self._impls[transport_id] = impl

    def get(self, transport_id: str) -> EditTransport | None:
        """Return the registered implementation for transport_id, or None if unknown."""
        return self._impls.get(transport_id)

    def transport_ids(self) -> list[str]:
        """Return the list of registered transport ids."""
        return list(self._impls.keys())


_registry: TransportRegistry | None = None


def get_registry() -> TransportRegistry:
    """Return the global transport registry. Creates it on first call."""
    global _registry
    if _registry is None:
        _registry = TransportRegistry()
    return _registry
