"""
HTTP call helpers shared by the Gemini caller and the relay transport.

Maps requests exceptions to pixshop errors and runs a blocking call in a
worker thread so a cancel_check callable can abort the wait.
"""

import threading
from collections.abc import Callable
from typing import Any, TypeVar

import requests

from pixshop.utils.exceptions import CancellationError, NetworkError, RequestTimeoutError

T = TypeVar("T")

POLL_INTERVAL = 0.25


def truncate_for_log(obj: Any, parent_key: str | None = None, threshold: int = 200) -> Any:
    """Recursively replace long base64/data URL strings with placeholders for safe logging."""
    if isinstance(obj, dict):
        return {k: truncate_for_log(v, k, threshold) for k, v in obj.items()}
    if isinstance(obj, list):
        return [truncate_for_log(v, None, threshold) for v in obj]
    if isinstance(obj, str) and len(obj) >= threshold:
        if parent_key in ("text", "error", "details"):
            return obj
        if obj.startswith("data:"):
            return f"<data URL, {len(obj)} chars>"
        return f"<string, {len(obj)} chars>"
    return obj


def call_mapping_errors(fn: Callable[[], T], timeout: int, target: str) -> T:
    """
    Call fn(), translating requests exceptions.

    Raises:
        RequestTimeoutError: On requests Timeout
        NetworkError: On connection or other requests failures
    """
    try:
        return fn()
    except requests.exceptions.Timeout as e:
        raise RequestTimeoutError(
            f"Request to {target} timed out after {timeout} seconds. "
            "The generation may be taking longer than expected."
        ) from e
    except requests.exceptions.ConnectionError as e:
        raise NetworkError(
            f"Failed to connect to {target}. Please check your connection.",
            original_error=e,
        ) from e
    except requests.exceptions.RequestException as e:
        raise NetworkError(
            f"Network error during request to {target}: {str(e)}", original_error=e
        ) from e


def run_cancellable(
    fn: Callable[[], T],
    cancel_check: Callable[[], bool] | None,
    what: str = "Image generation",
) -> T:
    """
    Run fn in a daemon thread, polling cancel_check every POLL_INTERVAL seconds.

    With cancel_check=None, fn runs inline. Exceptions raised by fn are
    re-raised in the caller; a failing cancel_check is ignored.

    Raises:
        CancellationError: If cancel_check returns True before fn finishes
    """
    if cancel_check is None:
        return fn()

    result_holder: list[Any] = [None]
    exc_holder: list[BaseException | None] = [None]

    def worker() -> None:
        try:
            result_holder[0] = fn()
        except BaseException as e:
            exc_holder[0] = e

    thread = threading.Thread(target=worker, daemon=True)
    thread.start()
    while True:
        thread.join(timeout=POLL_INTERVAL)
        if not thread.is_alive():
            break
        try:
            if cancel_check():
                raise CancellationError(f"{what} was cancelled.")
        except CancellationError:
            raise
        except Exception:
            pass  # Don't let a buggy cancel_check break the loop

    if exc_holder[0] is not None:
        raise exc_holder[0]
    return result_holder[0]
