"""
Error handling and signal management for the CLI.

Maps pixshop exceptions to exit codes and user messages, and turns SIGINT
into a cancellation flag that library calls poll through cancel_check.
Messages carry a hint for what to try next where the failure points at the
relay, the key or the instruction.
"""

import signal
import sys
import threading
from collections.abc import Callable

import click

from pixshop import (
    APIError,
    CancellationError,
    ConfigurationError,
    ContentBlockedError,
    GenerationRefusedError,
    ImageProcessingError,
    NetworkError,
    PixshopError,
    RequestTimeoutError,
    ValidationError,
)
from pixshop.cli import progress
from pixshop.cli.utils import (
    EXIT_API_OR_NETWORK,
    EXIT_CANCELLED,
    EXIT_VALIDATION_OR_CONFIG,
)

RELAY_DOWN_HINT = "Is the relay running? Start one with `pixshop serve` or use --transport direct."
RELAY_KEY_HINT = "Set GEMINI_API_KEY where the relay runs."
REPHRASE_HINT = "Try rephrasing the instruction."

# Set on SIGINT; library calls poll it through cancel_check
_cancel_event = threading.Event()


def cancel_check() -> bool:
    """Return True if cancellation has been requested."""
    return _cancel_event.is_set()


def handle_sigint(_signum: int, _frame: object) -> None:
    _cancel_event.set()


def reset_cancellation() -> None:
    _cancel_event.clear()


def _message(exc: BaseException, fallback: str) -> str:
    return str(exc.args[0]) if exc.args else fallback


def _with_hint(msg: str, hint: str) -> str:
    return msg if hint in msg else f"{msg} {hint}"


def _api_message(exc: APIError, transport: str | None) -> str:
    msg = _message(exc, "API error.")
    if isinstance(exc, (ContentBlockedError, GenerationRefusedError)):
        return _with_hint(msg, REPHRASE_HINT)
    if exc.status_code and str(exc.status_code) not in msg:
        msg = f"{msg} (HTTP {exc.status_code})"
    if transport == "relay" and "API key is not configured" in msg:
        msg = _with_hint(msg, RELAY_KEY_HINT)
    return msg


def map_exception_to_exit(
    exc: BaseException, transport: str | None = None
) -> tuple[int, str]:
    """
    Map library and known exceptions to (exit_code, user_message).

    transport is the id the failed request went through, if known; relay
    failures get a hint about starting or configuring the relay.
    """
    if isinstance(exc, ValidationError):
        msg = _message(exc, "Validation failed.")
        if exc.field:
            msg = f"{msg} (field: {exc.field})"
        return (EXIT_VALIDATION_OR_CONFIG, msg)
    if isinstance(exc, ConfigurationError):
        return (EXIT_VALIDATION_OR_CONFIG, _message(exc, "Invalid configuration."))
    if isinstance(exc, (ImageProcessingError, FileNotFoundError)):
        return (EXIT_VALIDATION_OR_CONFIG, _message(exc, "Image processing failed."))
    if isinstance(exc, CancellationError):
        return (EXIT_CANCELLED, "Cancelled.")
    if isinstance(exc, APIError):
        return (EXIT_API_OR_NETWORK, _api_message(exc, transport))
    if isinstance(exc, NetworkError):
        msg = _message(exc, "Network error.")
        if transport == "relay":
            msg = _with_hint(msg, RELAY_DOWN_HINT)
        return (EXIT_API_OR_NETWORK, msg)
    if isinstance(exc, (RequestTimeoutError, PixshopError)):
        return (EXIT_API_OR_NETWORK, _message(exc, "An error occurred."))
    return (EXIT_API_OR_NETWORK, str(exc) if exc.args else "An unexpected error occurred.")


def _report(msg: str, quiet: bool) -> None:
    if quiet:
        click.echo(msg, err=True)
    else:
        progress.print_error(msg)


def run_with_error_handling(
    fn: Callable[[], None],
    *,
    quiet: bool = False,
    debug: bool = False,
    context: dict[str, str] | None = None,
) -> None:
    """
    Run fn(); on exception map to exit code and message, print and sys.exit.

    fn may record the transport it used in context["transport"] so failures
    can be reported with a matching hint.
    """
    context = context if context is not None else {}
    try:
        fn()
    except (PixshopError, FileNotFoundError) as e:
        code, msg = map_exception_to_exit(e, context.get("transport"))
        if code == EXIT_CANCELLED:
            if not quiet:
                progress.print_warning(msg)
        else:
            _report(msg, quiet)
        sys.exit(code)
    except Exception as e:
        if debug:
            raise
        _, msg = map_exception_to_exit(e)
        _report(msg, quiet)
        sys.exit(EXIT_API_OR_NETWORK)


def install_sigint_handler() -> signal.Handlers:
    """Install SIGINT handler for cancellation, return old handler."""
    return signal.signal(signal.SIGINT, handle_sigint)  # type: ignore[return-value]


def restore_sigint_handler(old_handler: signal.Handlers) -> None:
    signal.signal(signal.SIGINT, old_handler)


__all__ = [
    "cancel_check",
    "handle_sigint",
    "reset_cancellation",
    "map_exception_to_exit",
    "run_with_error_handling",
    "install_sigint_handler",
    "restore_sigint_handler",
]
