"""Unit tests for the Gemini caller (response interpretation, mocked API)."""

import threading
import time
from unittest.mock import MagicMock, patch

import pytest
import requests

from pixshop.core.config import Config
from pixshop.core.gemini import GeminiProvider, extract_image, image_part, text_part
from pixshop.utils.exceptions import (
    APIError,
    CancellationError,
    ContentBlockedError,
    GenerationRefusedError,
    NetworkError,
    RequestTimeoutError,
    ValidationError,
)

PARTS = [image_part("data:image/png;base64,QUJD"), text_part("make it blue")]


def _ok_response(result: dict) -> MagicMock:
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = result
    response.text = "{}"
    return response


def _image_result(data: str = "QUJD", mime: str = "image/png") -> dict:
    return {
        "candidates": [
            {
                "content": {
                    "parts": [{"text": "here"}, {"inlineData": {"mimeType": mime, "data": data}}]
                },
                "finishReason": "STOP",
            }
        ]
    }


@pytest.mark.unit
class TestParts:
    def test_image_part_from_data_url(self):
        assert image_part("data:image/jpeg;base64,QUJD") == {
            "inlineData": {"mimeType": "image/jpeg", "data": "QUJD"}
        }

    def test_image_part_from_bare_base64(self):
        assert image_part("QUJD")["inlineData"]["mimeType"] == "image/png"

    def test_empty_image_raises(self):
        with pytest.raises(ValidationError):
            image_part("data:image/png;base64,")


@pytest.mark.unit
class TestExtractImage:
    def test_returns_first_inline_image(self):
        assert extract_image(_image_result("WFla", "image/webp"), "edit") == (
            "data:image/webp;base64,WFla"
        )

    def test_block_reason_wins(self):
        result = {
            "promptFeedback": {"blockReason": "SAFETY", "blockReasonMessage": "Unsafe."},
            **_image_result(),
        }
        with pytest.raises(ContentBlockedError) as exc_info:
            extract_image(result, "edit")
        assert exc_info.value.reason == "SAFETY"
        assert "Request was blocked. Reason: SAFETY. Unsafe." == str(exc_info.value)

    def test_unexpected_finish_reason(self):
        result = {"candidates": [{"content": {"parts": []}, "finishReason": "IMAGE_SAFETY"}]}
        with pytest.raises(GenerationRefusedError) as exc_info:
            extract_image(result, "filter")
        assert exc_info.value.finish_reason == "IMAGE_SAFETY"
        assert "Image generation for filter stopped unexpectedly" in str(exc_info.value)

    def test_text_only_response_is_quoted(self):
        result = {
            "candidates": [
                {"content": {"parts": [{"text": "I cannot do that."}]}, "finishReason": "STOP"}
            ]
        }
        with pytest.raises(GenerationRefusedError, match="responded with text"):
            extract_image(result, "adjustment")

    def test_empty_response(self):
        with pytest.raises(GenerationRefusedError, match="did not return an image for the edit"):
            extract_image({}, "edit")

    @pytest.mark.parametrize(
        "result",
        [
            {"candidates": [None]},
            {"candidates": "oops"},
            {"candidates": [{"content": "oops"}]},
            {"candidates": [{"content": {"parts": [None, "x", {"inlineData": "x"}]}}]},
            {"candidates": [{"content": {"parts": None}}], "promptFeedback": "x"},
        ],
    )
    def test_unexpected_shapes_are_refusals(self, result):
        with pytest.raises(GenerationRefusedError, match="did not return an image for the edit"):
            extract_image(result, "edit")


@pytest.mark.unit
class TestGenerate:
    def test_missing_api_key_raises(self):
        with pytest.raises(ValidationError) as exc_info:
            GeminiProvider().generate(PARTS, "edit", Config())
        assert exc_info.value.field == "api_key"

    def test_request_shape(self):
        config = Config(gemini_api_key="g-key", image_model="img-model")
        with patch(
            "pixshop.core.gemini.requests.post", return_value=_ok_response(_image_result())
        ) as mock_post:
            data_url = GeminiProvider().generate(PARTS, "edit", config)
        assert data_url == "data:image/png;base64,QUJD"
        url = mock_post.call_args.args[0]
        kwargs = mock_post.call_args.kwargs
        assert url == (
            "https://generativelanguage.googleapis.com/v1beta/models/img-model:generateContent"
        )
        assert kwargs["headers"]["x-goog-api-key"] == "g-key"
        assert kwargs["timeout"] == config.generation_timeout
        body = kwargs["json"]
        assert body["contents"][0]["parts"] == PARTS
        assert body["generationConfig"]["responseModalities"] == ["IMAGE", "TEXT"]

    def test_api_key_override(self):
        config = Config(gemini_api_key="")
        with patch(
            "pixshop.core.gemini.requests.post", return_value=_ok_response(_image_result())
        ) as mock_post:
            GeminiProvider().generate(PARTS, "edit", config, api_key_override="other")
        assert mock_post.call_args.kwargs["headers"]["x-goog-api-key"] == "other"

    @pytest.mark.parametrize(
        "status,fragment",
        [
            (400, "invalid"),
            (401, "Authentication failed"),
            (403, "Authentication failed"),
            (404, "Model not found"),
            (429, "Rate limit"),
            (503, "service error"),
            (418, "status 418"),
        ],
    )
    def test_status_mapping(self, status, fragment):
        response = MagicMock()
        response.status_code = status
        response.text = "nope"
        with (
            patch("pixshop.core.gemini.requests.post", return_value=response),
            pytest.raises(APIError, match=fragment) as exc_info,
        ):
            GeminiProvider().generate(PARTS, "edit", Config(gemini_api_key="k"))
        assert exc_info.value.status_code == status

    def test_invalid_json(self):
        response = MagicMock()
        response.status_code = 200
        response.text = "<html>"
        response.json.side_effect = ValueError("bad json")
        with (
            patch("pixshop.core.gemini.requests.post", return_value=response),
            pytest.raises(APIError, match="parse"),
        ):
            GeminiProvider().generate(PARTS, "edit", Config(gemini_api_key="k"))

    def test_timeout_maps_to_request_timeout(self):
        with (
            patch(
                "pixshop.core.gemini.requests.post",
                side_effect=requests.exceptions.Timeout("slow"),
            ),
            pytest.raises(RequestTimeoutError, match="Gemini API"),
        ):
            GeminiProvider().generate(PARTS, "edit", Config(gemini_api_key="k"))

    def test_connection_error_maps_to_network(self):
        with (
            patch(
                "pixshop.core.gemini.requests.post",
                side_effect=requests.exceptions.ConnectionError("down"),
            ),
            pytest.raises(NetworkError),
        ):
            GeminiProvider().generate(PARTS, "edit", Config(gemini_api_key="k"))

    def test_cancellation(self):
        release = threading.Event()

        def slow_post(*args, **kwargs):
            release.wait(5)
            return _ok_response(_image_result())

        start = time.time()
        with (
            patch("pixshop.core.gemini.requests.post", side_effect=slow_post),
            pytest.raises(CancellationError),
        ):
            GeminiProvider().generate(
                PARTS, "edit", Config(gemini_api_key="k"), cancel_check=lambda: True
            )
        release.set()
        assert time.time() - start < 3
