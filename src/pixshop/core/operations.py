"""
Operation dispatch for relay requests.

An EditRequest mirrors the JSON body the client posts to /api/generate. The
relay (and the direct transport) hand it to run_edit_request, which picks the
instruction template for its type, assembles the image and text parts and
asks the image model for the result.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pixshop.core.canvas import DIRECTIONS, Point
from pixshop.core.config import Config, get_config
from pixshop.core.gemini import GeminiProvider, get_provider, image_part, text_part
from pixshop.core.prompts_loader import get_prompt, render_prompt
from pixshop.logging_config import get_logger
from pixshop.utils.exceptions import ConfigurationError, ValidationError

logger = get_logger(__name__)

OPERATION_EDIT = "edit"
OPERATION_FILTER = "filter"
OPERATION_ADJUSTMENT = "adjustment"
OPERATION_PLACEMENT = "placement"
OPERATION_GRID = "grid"
OPERATION_EXPAND = "expand"
OPERATION_TYPES = (
    OPERATION_EDIT,
    OPERATION_FILTER,
    OPERATION_ADJUSTMENT,
    OPERATION_PLACEMENT,
    OPERATION_GRID,
    OPERATION_EXPAND,
)


@dataclass
class EditRequest:
    """One relay request. Images are data URLs or bare base64 PNG."""

    type: str
    original_image: str
    user_prompt: str = ""
    hotspot: Point | None = None
    filter_prompt: str = ""
    adjustment_prompt: str = ""
    object_image: str = ""
    direction: str = ""
    target_size: tuple[int, int] | None = None

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON body accepted by the relay."""
        body: dict[str, Any] = {"type": self.type, "originalImage": self.original_image}
        if self.user_prompt:
            body["userPrompt"] = self.user_prompt
        if self.hotspot is not None:
            body["hotspot"] = self.hotspot.as_dict()
        if self.filter_prompt:
            body["filterPrompt"] = self.filter_prompt
        if self.adjustment_prompt:
            body["adjustmentPrompt"] = self.adjustment_prompt
        if self.object_image:
            body["objectImage"] = self.object_image
        if self.direction:
            body["direction"] = self.direction
        if self.target_size is not None:
            body["targetSize"] = {"width": self.target_size[0], "height": self.target_size[1]}
        return body

    @classmethod
    def from_payload(cls, body: dict[str, Any]) -> "EditRequest":
        """Build from the camelCase JSON body; unknown keys are ignored."""
        hotspot = body.get("hotspot")
        target = body.get("targetSize")
        try:
            point = Point(float(hotspot["x"]), float(hotspot["y"])) if hotspot else None
            size = (int(target["width"]), int(target["height"])) if target else None
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Malformed request field: {e}", field="body") from e
        return cls(
            type=str(body.get("type") or ""),
            original_image=body.get("originalImage") or "",
            user_prompt=body.get("userPrompt") or "",
            hotspot=point,
            filter_prompt=body.get("filterPrompt") or "",
            adjustment_prompt=body.get("adjustmentPrompt") or "",
            object_image=body.get("objectImage") or "",
            direction=body.get("direction") or "",
            target_size=size,
        )


def _require(value: Any, message: str, field: str) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(message, field=field)


def validate_request(request: EditRequest) -> None:
    """
    Check that request carries what its type needs.

    Raises:
        ValidationError: field='type' for unknown types, otherwise the missing field
    """
    if request.type not in OPERATION_TYPES:
        raise ValidationError("Invalid operation type", field="type")
    _require(request.original_image, "originalImage is required", "originalImage")

    if request.type == OPERATION_EDIT:
        _require(request.user_prompt, "userPrompt is required for edit", "userPrompt")
        _require(request.hotspot, "hotspot is required for edit", "hotspot")
    elif request.type == OPERATION_FILTER:
        _require(request.filter_prompt, "filterPrompt is required for filter", "filterPrompt")
    elif request.type == OPERATION_ADJUSTMENT:
        _require(
            request.adjustment_prompt,
            "adjustmentPrompt is required for adjustment",
            "adjustmentPrompt",
        )
    elif request.type == OPERATION_PLACEMENT:
        _require(request.object_image, "objectImage is required for placement", "objectImage")
        _require(request.user_prompt, "userPrompt is required for placement", "userPrompt")
        _require(request.hotspot, "hotspot is required for placement", "hotspot")
    elif request.type == OPERATION_GRID:
        _require(request.user_prompt, "userPrompt is required for grid", "userPrompt")
    elif request.type == OPERATION_EXPAND:
        if request.direction not in DIRECTIONS:
            raise ValidationError(
                f"direction must be one of: {', '.join(DIRECTIONS)}", field="direction"
            )


def build_parts(request: EditRequest) -> list[dict[str, Any]]:
    """Assemble the ordered model parts (images first, instruction last)."""
    validate_request(request)
    op = request.type
    hotspot = request.hotspot or Point(0, 0)

    if op == OPERATION_EDIT:
        prompt = render_prompt(
            op,
            user_prompt=request.user_prompt,
            hotspot_x=f"{hotspot.x:g}",
            hotspot_y=f"{hotspot.y:g}",
        )
        images = [request.original_image]
    elif op == OPERATION_FILTER:
        prompt = render_prompt(op, filter_prompt=request.filter_prompt)
        images = [request.original_image]
    elif op == OPERATION_ADJUSTMENT:
        prompt = render_prompt(op, adjustment_prompt=request.adjustment_prompt)
        images = [request.original_image]
    elif op == OPERATION_PLACEMENT:
        prompt = render_prompt(
            op,
            user_prompt=request.user_prompt,
            hotspot_x=f"{hotspot.x:g}",
            hotspot_y=f"{hotspot.y:g}",
        )
        images = [request.original_image, request.object_image]
    elif op == OPERATION_GRID:
        width, height = request.target_size or (1, 1)
        prompt = render_prompt(
            op, user_prompt=request.user_prompt, target_width=width, target_height=height
        )
        images = [request.original_image]
    else:
        key = "instruction_with_prompt" if request.user_prompt.strip() else "instruction_default"
        instruction = get_prompt(op, key)
        if instruction is None:
            raise ConfigurationError(f"expand.{key} not found in prompts.yaml.")
        prompt = render_prompt(
            op,
            direction=request.direction,
            expand_instruction=instruction.format(user_prompt=request.user_prompt),
        )
        images = [request.original_image]

    return [*(image_part(img) for img in images), text_part(prompt)]


def run_edit_request(
    request: EditRequest,
    config: Config | None = None,
    cancel_check: Callable[[], bool] | None = None,
    provider: GeminiProvider | None = None,
) -> str:
    """
    Execute request against the image model and return the square result as a data URL.

    Raises:
        ValidationError: If the request is malformed
        ConfigurationError: If templates are missing
        APIError, NetworkError, RequestTimeoutError, CancellationError: From the model call
    """
    config = config or get_config()
    parts = build_parts(request)
    logger.debug("Dispatching %s with %d parts", request.type, len(parts))
    return (provider or get_provider()).generate(parts, request.type, config, cancel_check)
