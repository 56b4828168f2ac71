"""
Relay transport: forward edit requests to the pixshop relay over HTTP.

The client never holds the Gemini key; the relay adds it server-side.
"""

import json
import time
from collections.abc import Callable
from typing import Any

import requests

from pixshop.core.config import Config
from pixshop.core.operations import EditRequest
from pixshop.logging_config import get_logger
from pixshop.utils.exceptions import APIError, ValidationError
from pixshop.utils.http import call_mapping_errors, run_cancellable, truncate_for_log

logger = get_logger(__name__)


def _error_message(response: requests.Response) -> str:
    """Pull error/details out of a relay error body, falling back to the raw text."""
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or f"Relay request failed with status {response.status_code}"
    if not isinstance(body, dict):
        return str(body)
    error = body.get("error") or body.get("detail") or "Image generation failed"
    details = body.get("details")
    return f"{error}: {details}" if details else str(error)


class RelayTransport:
    """Edit transport that posts to the relay's /api/generate endpoint."""

    needs_api_key: bool = False

    def _do_request(
        self, url: str, payload: dict[str, Any], timeout: int, debug: bool
    ) -> str:
        logger.debug("Relay request url=%s type=%s timeout=%s", url, payload.get("type"), timeout)
        if debug:
            logger.info(
                "Relay request body (image data truncated): %s",
                json.dumps(truncate_for_log(payload), indent=2, default=str),
            )
        start_time = time.time()
        response = requests.post(
            url,
            headers={"Content-Type": "application/json"},
            json=payload,
            timeout=timeout,
        )
        logger.debug(
            "Relay response status=%s time=%.2fs", response.status_code, time.time() - start_time
        )
        if response.status_code != 200:
            raise APIError(
                _error_message(response),
                status_code=response.status_code,
                response=response.text,
            )
        try:
            result = response.json()
        except ValueError as e:
            raise APIError(
                f"Failed to parse relay response as JSON: {str(e)}",
                status_code=response.status_code,
                response=response.text,
            ) from e
        if debug:
            logger.info(
                "Relay response (image data truncated): %s",
                json.dumps(truncate_for_log(result), indent=2, default=str),
            )
        data = result.get("data") if isinstance(result, dict) else None
        if not isinstance(data, str) or not data:
            raise APIError("Relay response did not contain image data", response=response.text)
        return data

    def submit(
        self,
        request: EditRequest,
        config: Config,
        cancel_check: Callable[[], bool] | None,
    ) -> str:
        """POST request to config.relay_url and return the data URL from the response."""
        if not config.relay_url:
            raise ValidationError(
                "Relay URL is required. Set PIXSHOP_RELAY_URL or pass --relay-url.",
                field="relay_url",
            )
        payload = request.to_payload()
        timeout = config.generation_timeout
        return run_cancellable(
            lambda: call_mapping_errors(
                lambda: self._do_request(config.relay_url, payload, timeout, config.debug_api),
                timeout,
                "pixshop relay",
            ),
            cancel_check,
        )
