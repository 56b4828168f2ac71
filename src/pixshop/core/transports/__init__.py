"""
Edit transports: protocol, registry, and built-in implementations.

Built-in transports are registered lazily on first get_registry() call to
avoid circular imports with core.operations.
"""

from pixshop.core.transports.base import EditTransport as EditTransport
from pixshop.core.transports.registry import (
    TransportRegistry,
)
from pixshop.core.transports.registry import (
    get_registry as _get_registry_impl,
)
from pixshop.utils.exceptions import ConfigurationError

TRANSPORT_RELAY = "relay"
TRANSPORT_DIRECT = "direct"
KNOWN_TRANSPORTS = (TRANSPORT_RELAY, TRANSPORT_DIRECT)

_builtins_registered = False


def _register_builtins(reg: TransportRegistry) -> None:
    """Register built-in transports. Called once when the registry is first used."""
    global _builtins_registered
    if _builtins_registered:
        return
    from pixshop.core.transports.direct import DirectTransport
    from pixshop.core.transports.relay import RelayTransport

    reg.register(TRANSPORT_RELAY, RelayTransport())
    reg.register(TRANSPORT_DIRECT, DirectTransport())
    _builtins_registered = True


def get_registry() -> TransportRegistry:
    """Return the global transport registry and ensure built-ins are registered."""
    reg = _get_registry_impl()
    _register_builtins(reg)
    return reg


def get_transport(transport_id: str) -> EditTransport:
    """
    Return the transport registered under transport_id.

    Raises:
        ConfigurationError: If no such transport is registered
    """
    impl = get_registry().get(transport_id)
    if impl is None:
        raise ConfigurationError(
            f"Unknown transport: {transport_id!r}. "
            f"Must be one of: {', '.join(get_registry().transport_ids())}."
        )
    return impl
