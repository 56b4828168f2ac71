"""
Direct transport: run edit requests in-process.

Calls the image model with the local GEMINI_API_KEY, skipping the relay.
Meant for the CLI on a trusted machine.
"""

from collections.abc import Callable

from pixshop.core.config import Config
from pixshop.core.operations import EditRequest, run_edit_request
from pixshop.logging_config import get_logger

logger = get_logger(__name__)


class DirectTransport:
    """Edit transport that dispatches requests locally."""

    needs_api_key: bool = True

    def submit(
        self,
        request: EditRequest,
        config: Config,
        cancel_check: Callable[[], bool] | None,
    ) -> str:
        """Run request against the model directly and return the data URL."""
        logger.debug("Direct transport submitting %s", request.type)
        return run_edit_request(request, config=config, cancel_check=cancel_check)
