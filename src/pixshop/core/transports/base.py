"""
Transport protocol for edit requests.

A transport takes an EditRequest built on the client and returns the model's
square result as a data URL.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

from pixshop.core.config import Config

if TYPE_CHECKING:
    from pixshop.core.operations import EditRequest


class EditTransport(Protocol):
    """Protocol for edit transports.

    Implementations either forward the request to the relay over HTTP or run
    it in-process with a local credential.
    """

    @property
    def needs_api_key(self) -> bool:
        """Whether this transport needs the Gemini key in the local config. Read-only."""
        ...

    def submit(
        self,
        request: EditRequest,
        config: Config,
        cancel_check: Callable[[], bool] | None,
    ) -> str:
        """Send request and return the result image as a data URL.

        May raise ValidationError, APIError, NetworkError,
        RequestTimeoutError, or CancellationError.
        """
        ...
