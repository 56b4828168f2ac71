"""
Gemini image model caller.

Sends image and text parts to the generateContent REST endpoint and turns the
response into a data URL, or into a pixshop error explaining why no image came
back (prompt blocked, generation stopped early, model answered in text).
"""

import json
import time
from collections.abc import Callable
from typing import Any

import requests

from pixshop.core.config import Config
from pixshop.core.imageio import strip_data_url
from pixshop.logging_config import get_logger, log_prompts
from pixshop.utils.exceptions import (
    APIError,
    ContentBlockedError,
    GenerationRefusedError,
    ValidationError,
)
from pixshop.utils.http import call_mapping_errors, run_cancellable, truncate_for_log

logger = get_logger(__name__)

_PROMPT_LOG_MAX = 50_000
RESPONSE_MODALITIES = ["IMAGE", "TEXT"]


def image_part(image: str, default_mime: str = "image/png") -> dict[str, Any]:
    """Build an inlineData part from a data URL or bare base64 string."""
    mime, data = strip_data_url(image, default_mime=default_mime)
    if not data:
        raise ValidationError("Image data is empty", field="image")
    return {"inlineData": {"mimeType": mime, "data": data}}


def text_part(text: str) -> dict[str, Any]:
    return {"text": text}


def _inline_data(part: dict[str, Any]) -> dict[str, Any] | None:
    # REST responses use camelCase; tolerate snake_case from proxies
    inline = part.get("inlineData") or part.get("inline_data")
    return inline if isinstance(inline, dict) else None


def _first_candidate(result: dict[str, Any]) -> dict[str, Any]:
    # Anything that is not a dict counts as no candidate
    candidates = result.get("candidates")
    if isinstance(candidates, list) and candidates and isinstance(candidates[0], dict):
        return candidates[0]
    return {}


def _parts(candidate: dict[str, Any]) -> list[dict[str, Any]]:
    content = candidate.get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return []
    return [p for p in parts if isinstance(p, dict)]


def _response_text(candidate: dict[str, Any]) -> str:
    return "".join(str(p.get("text") or "") for p in _parts(candidate)).strip()


def extract_image(result: dict[str, Any], context: str) -> str:
    """
    Return the first inline image of the first candidate as a data URL.

    Raises:
        ContentBlockedError: If promptFeedback carries a blockReason
        GenerationRefusedError: If no image is present (finishReason or text explains why)
    """
    feedback = result.get("promptFeedback")
    if not isinstance(feedback, dict):
        feedback = {}
    block_reason = feedback.get("blockReason")
    if block_reason:
        message = feedback.get("blockReasonMessage") or ""
        raise ContentBlockedError(
            f"Request was blocked. Reason: {block_reason}. {message}".strip(),
            reason=block_reason,
            response=json.dumps(truncate_for_log(result), default=str),
        )

    candidate = _first_candidate(result)
    for part in _parts(candidate):
        inline = _inline_data(part)
        if inline and inline.get("data"):
            mime = inline.get("mimeType") or inline.get("mime_type") or "image/png"
            logger.debug("Received image data (%s) for %s", mime, context)
            return f"data:{mime};base64,{inline['data']}"

    finish_reason = candidate.get("finishReason")
    if finish_reason and finish_reason != "STOP":
        raise GenerationRefusedError(
            f"Image generation for {context} stopped unexpectedly. Reason: {finish_reason}. "
            "This often relates to safety settings.",
            finish_reason=finish_reason,
            response=json.dumps(truncate_for_log(result), default=str),
        )

    text = _response_text(candidate)
    detail = (
        f'The model responded with text: "{text}"'
        if text
        else "This can happen due to safety filters or if the request is too complex. "
        "Please try rephrasing your prompt to be more direct."
    )
    raise GenerationRefusedError(
        f"The AI model did not return an image for the {context}. {detail}",
        finish_reason=finish_reason or "",
        response=json.dumps(truncate_for_log(result), default=str),
    )


class GeminiProvider:
    """Calls the Gemini generateContent endpoint with image + text parts."""

    def _api_key(self, config: Config, api_key_override: str | None) -> str:
        api_key = api_key_override if api_key_override is not None else config.gemini_api_key
        if not api_key:
            raise ValidationError(
                "Gemini API key is required. Set it via config or GEMINI_API_KEY.",
                field="api_key",
            )
        return api_key

    def build_payload(self, parts: list[dict[str, Any]]) -> dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {"responseModalities": RESPONSE_MODALITIES},
        }

    def _check_status(self, response: requests.Response, model: str) -> None:
        """Map non-200 status codes to APIError."""
        status = response.status_code
        if status == 200:
            return
        if status == 400:
            raise APIError(
                f"Gemini rejected the request as invalid: {response.text[:500]}",
                status_code=400,
                response=response.text,
            )
        if status in (401, 403):
            raise APIError(
                "Authentication failed. Please check your Gemini API key.",
                status_code=status,
                response=response.text,
            )
        if status == 404:
            raise APIError(
                f"Model not found or endpoint unavailable: {model}",
                status_code=404,
                response=response.text,
            )
        if status == 429:
            raise APIError(
                "Rate limit exceeded. Please wait before making more requests.",
                status_code=429,
                response=response.text,
            )
        if status >= 500:
            raise APIError(
                f"Gemini service error: {status}",
                status_code=status,
                response=response.text,
            )
        raise APIError(
            f"API request failed with status {status}: {response.text}",
            status_code=status,
            response=response.text,
        )

    def _do_request(
        self,
        url: str,
        headers: dict[str, str],
        payload: dict[str, Any],
        timeout: int,
        model: str,
        context: str,
        debug: bool,
    ) -> str:
        logger.debug("API request url=%s model=%s timeout=%s", url, model, timeout)
        if debug:
            logger.info(
                "API request payload (image data truncated): %s",
                json.dumps(truncate_for_log(payload), indent=2, default=str),
            )
        start_time = time.time()
        response = requests.post(url, headers=headers, json=payload, timeout=timeout)
        logger.debug(
            "API response status=%s time=%.2fs", response.status_code, time.time() - start_time
        )
        self._check_status(response, model)
        try:
            result = response.json()
        except ValueError as e:
            raise APIError(
                f"Failed to parse API response as JSON: {str(e)}",
                status_code=response.status_code,
                response=response.text,
            ) from e
        if debug:
            logger.info(
                "API response (image data truncated): %s",
                json.dumps(truncate_for_log(result), indent=2, default=str),
            )
        if not isinstance(result, dict):
            raise APIError("Unexpected API response shape", response=response.text)
        return extract_image(result, context)

    def generate(
        self,
        parts: list[dict[str, Any]],
        context: str,
        config: Config,
        cancel_check: Callable[[], bool] | None = None,
        *,
        timeout: int | None = None,
        api_key_override: str | None = None,
    ) -> str:
        """
        Send parts to the image model and return the resulting image as a data URL.

        Args:
            parts: Ordered inlineData/text parts (images first, instruction last)
            context: Operation name used in error messages (e.g. "edit")
            config: Config providing model, base URL, key and timeout
            cancel_check: Optional callable polled while waiting

        Raises:
            ValidationError, APIError (incl. ContentBlockedError / GenerationRefusedError),
            NetworkError, RequestTimeoutError, CancellationError
        """
        api_key = self._api_key(config, api_key_override)
        timeout = timeout or config.generation_timeout
        model = config.image_model
        url = f"{config.gemini_base_url.rstrip('/')}/models/{model}:generateContent"
        headers = {"x-goog-api-key": api_key, "Content-Type": "application/json"}
        payload = self.build_payload(parts)

        n_images = sum(1 for p in parts if "inlineData" in p)
        logger.info("Requesting %s model=%s images=%d", context, model, n_images)
        if log_prompts():
            for p in parts:
                if "text" in p:
                    text = p["text"]
                    if len(text) > _PROMPT_LOG_MAX:
                        text = text[:_PROMPT_LOG_MAX] + "..."
                    logger.info("Instruction (%s): %s", context, text)

        start = time.time()
        data_url = run_cancellable(
            lambda: call_mapping_errors(
                lambda: self._do_request(
                    url, headers, payload, timeout, model, context, config.debug_api
                ),
                timeout,
                "Gemini API",
            ),
            cancel_check,
        )
        logger.info("Generated %s in %.1fs model=%s", context, time.time() - start, model)
        return data_url


_provider: GeminiProvider | None = None


def get_provider() -> GeminiProvider:
    """Return the shared GeminiProvider."""
    global _provider
    if _provider is None:
        _provider = GeminiProvider()
    return _provider
