"""
Canvas geometry for pixshop.

The image model returns square images, so every request image is padded to a
square with black bars before sending and the returned square is cropped back
to the original content rectangle. Locations the user picked are carried into
the padded frame and drawn as a cyan marker the model is told to replace.

Cropping works on ratios of the padded square rather than absolute pixels, so
the model may return any square size.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from PIL import Image, ImageDraw, ImageFont, ImageOps

from pixshop.logging_config import get_logger
from pixshop.utils.exceptions import ValidationError

logger = get_logger(__name__)

Direction = Literal["left", "right", "top", "bottom"]
DIRECTIONS: tuple[str, ...] = ("left", "right", "top", "bottom")

PAD_FILL = (0, 0, 0)
MARKER_FILL = (0, 255, 255, round(255 * 0.7))
MARKER_OUTLINE = (255, 255, 255, round(255 * 0.8))
MARKER_OUTLINE_WIDTH = 2
DEFAULT_MARKER_RADIUS_RATIO = 0.015

GRID_BACKGROUND = (255, 255, 255)
PLACEHOLDER_BACKGROUND = (9, 10, 15)
PLACEHOLDER_TITLE_COLOR = (156, 163, 175)
PLACEHOLDER_SUBTITLE_COLOR = (107, 114, 128)


@dataclass(frozen=True)
class Point:
    """A location in image pixel coordinates."""

    x: float
    y: float

    def as_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass
class PaddedImage:
    """A square image with the original content centred in it."""

    image: Image.Image
    original_width: int
    original_height: int

    @property
    def size(self) -> int:
        return max(self.original_width, self.original_height)

    @property
    def offset(self) -> tuple[int, int]:
        """Top-left of the content inside the square."""
        return content_offset(self.original_width, self.original_height)


def _require_size(width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        raise ValidationError(f"Image has no area: {width}x{height}", field="image")


def content_offset(width: int, height: int) -> tuple[int, int]:
    """Whole-pixel top-left of a width x height image centred in its padded square."""
    size = max(width, height)
    return ((size - width) // 2, (size - height) // 2)


def _flatten(image: Image.Image, fill: tuple[int, int, int]) -> Image.Image:
    """Return an RGB copy with any transparency composited over fill."""
    rgba = image.convert("RGBA")
    background = Image.new("RGB", rgba.size, fill)
    background.paste(rgba, mask=rgba.split()[3])
    return background


def pad_to_square(
    image: Image.Image, fill: tuple[int, int, int] = PAD_FILL
) -> PaddedImage:
    """
    Pad an image to a square of side max(width, height), content centred.

    Returns:
        PaddedImage with an RGB square and the original dimensions
    """
    width, height = image.size
    _require_size(width, height)
    size = max(width, height)
    canvas = Image.new("RGB", (size, size), fill)
    canvas.paste(_flatten(image, fill), content_offset(width, height))
    logger.debug("Padded %dx%d to %dx%d", width, height, size, size)
    return PaddedImage(image=canvas, original_width=width, original_height=height)


def offset_hotspot(point: Point, width: int, height: int) -> Point:
    """Translate a point in original coordinates into the padded square."""
    _require_size(width, height)
    if not (0 <= point.x <= width and 0 <= point.y <= height):
        raise ValidationError(
            f"Hotspot ({point.x}, {point.y}) lies outside the {width}x{height} image",
            field="hotspot",
        )
    dx, dy = content_offset(width, height)
    return Point(point.x + dx, point.y + dy)


def draw_hotspot(
    image: Image.Image,
    point: Point,
    radius_ratio: float = DEFAULT_MARKER_RADIUS_RATIO,
) -> Image.Image:
    """
    Return a copy of image with a translucent cyan marker at point.

    Radius is radius_ratio of the shorter side (at least one pixel) with a
    white outline.
    """
    width, height = image.size
    _require_size(width, height)
    if not (0 <= point.x <= width and 0 <= point.y <= height):
        raise ValidationError(
            f"Hotspot ({point.x}, {point.y}) lies outside the {width}x{height} image",
            field="hotspot",
        )
    radius = max(1.0, min(width, height) * radius_ratio)
    overlay = Image.new("RGBA", image.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    draw.ellipse(
        (point.x - radius, point.y - radius, point.x + radius, point.y + radius),
        fill=MARKER_FILL,
        outline=MARKER_OUTLINE,
        width=MARKER_OUTLINE_WIDTH,
    )
    marked = Image.alpha_composite(image.convert("RGBA"), overlay).convert("RGB")
    logger.debug("Marker drawn at (%.1f, %.1f) radius=%.1f", point.x, point.y, radius)
    return marked


def crop_square_to_original(
    image: Image.Image, original_width: int, original_height: int
) -> Image.Image:
    """
    Crop a padded square (of any side) back to the original content rectangle.

    The source box is computed from ratios of the original padded square, and
    the region is resampled to exactly original_width x original_height.
    """
    _require_size(original_width, original_height)
    new_size = image.size[0]
    original_size = max(original_width, original_height)

    # Same whole-pixel offset pad_to_square pasted at
    offset_x, offset_y = content_offset(original_width, original_height)
    ratio_x = offset_x / original_size
    ratio_y = offset_y / original_size
    ratio_w = original_width / original_size
    ratio_h = original_height / original_size

    left = new_size * ratio_x
    top = new_size * ratio_y
    box = (left, top, left + new_size * ratio_w, top + new_size * ratio_h)

    if image.size[0] != image.size[1]:
        logger.warning("Model returned a non-square image %dx%d", *image.size)
    source = image if image.mode in ("RGB", "RGBA") else image.convert("RGB")
    if image.size == (original_size, original_size):
        return source.crop(
            (offset_x, offset_y, offset_x + original_width, offset_y + original_height)
        )
    return source.resize((original_width, original_height), Image.Resampling.LANCZOS, box=box)


def display_to_image_point(
    x: float,
    y: float,
    display_size: tuple[float, float],
    natural_size: tuple[int, int],
) -> Point:
    """
    Map a click on a scaled display of an image to natural pixel coordinates.

    Rounds half up and clamps into the image.
    """
    display_w, display_h = display_size
    natural_w, natural_h = natural_size
    if display_w <= 0 or display_h <= 0:
        raise ValidationError("Display size must be positive", field="display_size")
    _require_size(natural_w, natural_h)
    px = math.floor(x * natural_w / display_w + 0.5)
    py = math.floor(y * natural_h / display_h + 0.5)
    return Point(min(max(px, 0), natural_w), min(max(py, 0), natural_h))


def crop_region(
    image: Image.Image,
    box: tuple[float, float, float, float],
    display_size: tuple[float, float] | None = None,
) -> Image.Image:
    """
    Crop image to box = (x, y, width, height).

    If display_size is given, box is in displayed coordinates and is scaled to
    the image's natural size first.
    """
    x, y, w, h = box
    natural_w, natural_h = image.size
    if display_size is not None:
        display_w, display_h = display_size
        if display_w <= 0 or display_h <= 0:
            raise ValidationError("Display size must be positive", field="display_size")
        sx = natural_w / display_w
        sy = natural_h / display_h
        x, y, w, h = x * sx, y * sy, w * sx, h * sy

    left, top = round(x), round(y)
    right, bottom = round(x + w), round(y + h)
    if right - left <= 0 or bottom - top <= 0:
        raise ValidationError("Please select an area to crop.", field="crop")
    if left < 0 or top < 0 or right > natural_w or bottom > natural_h:
        raise ValidationError(
            f"Crop box ({left}, {top}, {right}, {bottom}) exceeds image {natural_w}x{natural_h}",
            field="crop",
        )
    return image.crop((left, top, right, bottom))


def expand_canvas(
    image: Image.Image,
    direction: str,
    ratio: float = 0.5,
    fill: tuple[int, int, int] = PAD_FILL,
) -> tuple[Image.Image, tuple[int, int, int, int]]:
    """
    Extend the canvas on one side by ratio of that axis, filling the new area.

    Returns:
        (expanded RGB image, (left, top, right, bottom) box of the original content)
    """
    if direction not in DIRECTIONS:
        raise ValidationError(
            f"Invalid direction {direction!r}. Must be one of: {', '.join(DIRECTIONS)}.",
            field="direction",
        )
    if ratio <= 0:
        raise ValidationError("Expand ratio must be positive", field="ratio")
    width, height = image.size
    _require_size(width, height)

    if direction in ("left", "right"):
        extra = max(1, round(width * ratio))
        new_size = (width + extra, height)
        origin = (extra, 0) if direction == "left" else (0, 0)
    else:
        extra = max(1, round(height * ratio))
        new_size = (width, height + extra)
        origin = (0, extra) if direction == "top" else (0, 0)

    canvas = Image.new("RGB", new_size, fill)
    canvas.paste(_flatten(image, fill), origin)
    box = (origin[0], origin[1], origin[0] + width, origin[1] + height)
    logger.debug("Expanded %dx%d %s to %dx%d", width, height, direction, *new_size)
    return canvas, box


def compose_grid(
    images: Sequence[Image.Image],
    cell_size: int = 512,
    columns: int | None = None,
) -> Image.Image:
    """
    Lay out mood-board items in a grid of square cells on white.

    Each item keeps its aspect ratio and is centred in its cell. columns
    defaults to ceil(sqrt(n)).
    """
    if not images:
        raise ValidationError("Please upload one or more images for the grid.", field="images")
    if cell_size <= 0:
        raise ValidationError("Grid cell size must be positive", field="cell_size")
    count = len(images)
    cols = columns or math.ceil(math.sqrt(count))
    if cols <= 0:
        raise ValidationError("Grid columns must be positive", field="columns")
    rows = math.ceil(count / cols)

    board = Image.new("RGB", (cols * cell_size, rows * cell_size), GRID_BACKGROUND)
    for index, item in enumerate(images):
        _require_size(*item.size)
        fitted = ImageOps.contain(_flatten(item, GRID_BACKGROUND), (cell_size, cell_size))
        row, col = divmod(index, cols)
        x = col * cell_size + (cell_size - fitted.width) // 2
        y = row * cell_size + (cell_size - fitted.height) // 2
        board.paste(fitted, (x, y))
    logger.debug("Composed %d items into %dx%d grid", count, cols, rows)
    return board


def placeholder_image(width: int = 1024, height: int = 768) -> Image.Image:
    """Blank base canvas used when a session starts directly in grid mode."""
    _require_size(width, height)
    image = Image.new("RGB", (width, height), PLACEHOLDER_BACKGROUND)
    draw = ImageDraw.Draw(image)
    font = ImageFont.load_default()
    lines = (
        ("Grid Combine Mode", PLACEHOLDER_TITLE_COLOR, -20),
        ("Upload items in the panel below to get started.", PLACEHOLDER_SUBTITLE_COLOR, 20),
    )
    for text, color, dy in lines:
        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        tx = (width - (right - left)) / 2 - left
        ty = height / 2 + dy - (bottom - top) / 2 - top
        draw.text((tx, ty), text, fill=color, font=font)
    return image


__all__ = [
    "DIRECTIONS",
    "Direction",
    "PaddedImage",
    "Point",
    "compose_grid",
    "crop_region",
    "crop_square_to_original",
    "display_to_image_point",
    "draw_hotspot",
    "expand_canvas",
    "offset_hotspot",
    "pad_to_square",
    "placeholder_image",
]
