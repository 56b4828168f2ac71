"""
Client-side edit operations.

Each operation pads the working image to a square, marks the target location
where one is needed, sends the request through a transport (relay by default)
and crops the returned square back to the working image's dimensions.
"""

import io
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from PIL import Image

from pixshop.core.canvas import (
    Point,
    compose_grid,
    crop_square_to_original,
    draw_hotspot,
    expand_canvas,
    offset_hotspot,
    pad_to_square,
)
from pixshop.core.config import Config, get_config
from pixshop.core.imageio import (
    ImageSource,
    data_url_to_image,
    image_to_data_url,
    limit_pixels,
    load_image,
)
from pixshop.core.operations import (
    OPERATION_ADJUSTMENT,
    OPERATION_EDIT,
    OPERATION_EXPAND,
    OPERATION_FILTER,
    OPERATION_GRID,
    OPERATION_PLACEMENT,
    EditRequest,
)
from pixshop.core.transports import get_transport
from pixshop.logging_config import get_logger, log_prompts
from pixshop.utils.exceptions import ValidationError

logger = get_logger(__name__)

# Default scene size for grid mode when no base image exists (matches placeholder_image)
DEFAULT_GRID_SIZE = (1024, 768)

HotspotLike = Point | tuple[float, float]


@dataclass
class EditResult:
    """Result of an edit operation.

    ``image`` has the dimensions of the working image (the expanded size for
    expand, the target size for grid).
    """

    image: Image.Image
    operation: str
    elapsed: float  # seconds, including padding and cropping
    transport: str

    @property
    def image_data(self) -> bytes:
        """PNG bytes of the result."""
        buf = io.BytesIO()
        self.image.save(buf, format="PNG")
        return buf.getvalue()

    @property
    def data_url(self) -> str:
        return image_to_data_url(self.image)


def validate_prompt(prompt: str, field: str = "prompt") -> None:
    """
    Validate an instruction prompt.

    Raises:
        ValidationError: If prompt is empty or shorter than 3 characters
    """
    if not prompt or not prompt.strip():
        raise ValidationError("Prompt cannot be empty", field=field)
    if len(prompt.strip()) < 3:
        raise ValidationError(
            "Prompt is too short. Please provide at least 3 characters.",
            field=field,
        )


def _as_point(hotspot: HotspotLike) -> Point:
    if isinstance(hotspot, Point):
        return hotspot
    try:
        x, y = hotspot
        return Point(float(x), float(y))
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid hotspot: {hotspot!r}", field="hotspot") from e


def _send(
    request: EditRequest,
    config: Config,
    transport: str | None,
    cancel_check: Callable[[], bool] | None,
) -> tuple[Image.Image, str]:
    transport_id = transport or config.default_transport
    impl = get_transport(transport_id)
    logger.info("Sending %s via %s transport", request.type, transport_id)
    data_url = impl.submit(request, config, cancel_check)
    return data_url_to_image(data_url), transport_id


def _finish(
    square: Image.Image,
    width: int,
    height: int,
    operation: str,
    transport_id: str,
    start: float,
) -> EditResult:
    logger.debug("Cropping padded image back to %dx%d", width, height)
    image = crop_square_to_original(square, width, height)
    elapsed = time.time() - start
    logger.info("Finished %s in %.1fs size=%dx%d", operation, elapsed, width, height)
    return EditResult(image=image, operation=operation, elapsed=elapsed, transport=transport_id)


def _marked_request(
    image: Image.Image, hotspot: HotspotLike, config: Config
) -> tuple[str, Point]:
    padded = pad_to_square(image)
    point = offset_hotspot(_as_point(hotspot), padded.original_width, padded.original_height)
    logger.debug("Drawing marker on padded image at (%.1f, %.1f)", point.x, point.y)
    marked = draw_hotspot(padded.image, point, config.marker_radius_ratio)
    return image_to_data_url(marked), point


def generate_edited_image(
    image: ImageSource,
    prompt: str,
    hotspot: HotspotLike,
    *,
    config: Config | None = None,
    transport: str | None = None,
    cancel_check: Callable[[], bool] | None = None,
) -> EditResult:
    """
    Retouch the image at hotspot (original pixel coordinates) following prompt.

    Raises:
        ValidationError: Empty prompt or hotspot outside the image
        APIError, NetworkError, RequestTimeoutError, CancellationError: From the transport
    """
    config = config or get_config()
    validate_prompt(prompt)
    start = time.time()
    source = load_image(image)
    width, height = source.size
    if log_prompts():
        logger.info("Edit prompt: %s", prompt)

    marked, point = _marked_request(source, hotspot, config)
    request = EditRequest(OPERATION_EDIT, marked, user_prompt=prompt, hotspot=point)
    square, transport_id = _send(request, config, transport, cancel_check)
    return _finish(square, width, height, OPERATION_EDIT, transport_id, start)


def generate_filtered_image(
    image: ImageSource,
    filter_prompt: str,
    *,
    config: Config | None = None,
    transport: str | None = None,
    cancel_check: Callable[[], bool] | None = None,
) -> EditResult:
    """Apply a stylistic filter to the whole image."""
    config = config or get_config()
    validate_prompt(filter_prompt, field="filter_prompt")
    start = time.time()
    source = load_image(image)
    padded = pad_to_square(source)
    logger.debug("Padded image to square for filter")

    request = EditRequest(
        OPERATION_FILTER, image_to_data_url(padded.image), filter_prompt=filter_prompt
    )
    square, transport_id = _send(request, config, transport, cancel_check)
    return _finish(
        square, padded.original_width, padded.original_height, OPERATION_FILTER, transport_id, start
    )


def generate_adjusted_image(
    image: ImageSource,
    adjustment_prompt: str,
    *,
    config: Config | None = None,
    transport: str | None = None,
    cancel_check: Callable[[], bool] | None = None,
) -> EditResult:
    """Apply a photorealistic global adjustment to the whole image."""
    config = config or get_config()
    validate_prompt(adjustment_prompt, field="adjustment_prompt")
    start = time.time()
    source = load_image(image)
    padded = pad_to_square(source)

    request = EditRequest(
        OPERATION_ADJUSTMENT,
        image_to_data_url(padded.image),
        adjustment_prompt=adjustment_prompt,
    )
    square, transport_id = _send(request, config, transport, cancel_check)
    return _finish(
        square,
        padded.original_width,
        padded.original_height,
        OPERATION_ADJUSTMENT,
        transport_id,
        start,
    )


def generate_placed_image(
    image: ImageSource,
    object_image: ImageSource,
    prompt: str,
    hotspot: HotspotLike,
    *,
    config: Config | None = None,
    transport: str | None = None,
    cancel_check: Callable[[], bool] | None = None,
) -> EditResult:
    """Composite object_image into the scene at hotspot following prompt."""
    config = config or get_config()
    validate_prompt(prompt)
    start = time.time()
    scene = load_image(image)
    width, height = scene.size
    item = limit_pixels(load_image(object_image), config.max_image_pixels)

    marked, point = _marked_request(scene, hotspot, config)
    request = EditRequest(
        OPERATION_PLACEMENT,
        marked,
        user_prompt=prompt,
        hotspot=point,
        object_image=image_to_data_url(item),
    )
    square, transport_id = _send(request, config, transport, cancel_check)
    return _finish(square, width, height, OPERATION_PLACEMENT, transport_id, start)


def generate_from_grid(
    images: Sequence[ImageSource],
    prompt: str,
    target_size: tuple[int, int] = DEFAULT_GRID_SIZE,
    *,
    config: Config | None = None,
    transport: str | None = None,
    cancel_check: Callable[[], bool] | None = None,
) -> EditResult:
    """
    Generate a scene of target_size from a mood board of item images.

    The items are tiled into one grid image; the model returns a square
    whose central target_size region is kept.
    """
    config = config or get_config()
    if not images:
        raise ValidationError("Please upload one or more images for the grid.", field="images")
    if not prompt or not prompt.strip():
        raise ValidationError(
            "Please enter a prompt to describe the scene you want to create.", field="prompt"
        )
    width, height = target_size
    if width <= 0 or height <= 0:
        raise ValidationError(
            f"Target size must be positive, got {width}x{height}", field="target_size"
        )
    start = time.time()
    items = [limit_pixels(load_image(img), config.max_image_pixels) for img in images]
    board = compose_grid(items, cell_size=config.grid_cell_size)
    logger.debug("Mood board %dx%d from %d items", board.width, board.height, len(items))

    request = EditRequest(
        OPERATION_GRID,
        image_to_data_url(board),
        user_prompt=prompt,
        target_size=(width, height),
    )
    square, transport_id = _send(request, config, transport, cancel_check)
    return _finish(square, width, height, OPERATION_GRID, transport_id, start)


def generate_expanded_image(
    image: ImageSource,
    direction: str,
    prompt: str = "",
    *,
    preserve_original: bool = True,
    config: Config | None = None,
    transport: str | None = None,
    cancel_check: Callable[[], bool] | None = None,
) -> EditResult:
    """
    Extend the canvas towards direction and let the model fill the new area.

    With preserve_original, the source pixels are pasted back over the model
    output so only the new strip changes.
    """
    config = config or get_config()
    start = time.time()
    source = load_image(image)
    expanded, box = expand_canvas(source, direction, config.expand_ratio)
    padded = pad_to_square(expanded)

    request = EditRequest(
        OPERATION_EXPAND,
        image_to_data_url(padded.image),
        user_prompt=prompt.strip(),
        direction=direction,
    )
    square, transport_id = _send(request, config, transport, cancel_check)
    result = _finish(
        square, expanded.width, expanded.height, OPERATION_EXPAND, transport_id, start
    )
    if preserve_original:
        merged = result.image.convert("RGB")
        merged.paste(expanded.crop(box), box[:2])
        result.image = merged
    return result
