"""Unit tests for canvas geometry (padding, markers, crop back, expand, grid)."""

import pytest
from PIL import Image

from pixshop.core.canvas import (
    PLACEHOLDER_BACKGROUND,
    PaddedImage,
    Point,
    compose_grid,
    crop_region,
    crop_square_to_original,
    display_to_image_point,
    draw_hotspot,
    expand_canvas,
    offset_hotspot,
    pad_to_square,
    placeholder_image,
)
from pixshop.utils.exceptions import ValidationError

RED = (255, 0, 0)
BLACK = (0, 0, 0)
WHITE = (255, 255, 255)


def _solid(width: int, height: int, color=RED, mode: str = "RGB") -> Image.Image:
    return Image.new(mode, (width, height), color)


def _gradient(width: int, height: int) -> Image.Image:
    """Every pixel distinct: red varies by column, green by row."""
    image = Image.new("RGB", (width, height))
    image.putdata(
        [(x * 255 // width, y * 255 // height, 128) for y in range(height) for x in range(width)]
    )
    return image


@pytest.mark.unit
class TestPadToSquare:
    def test_landscape_is_centred_vertically(self):
        padded = pad_to_square(_solid(200, 100))
        assert padded.image.size == (200, 200)
        assert padded.image.mode == "RGB"
        assert padded.offset == (0, 50)
        assert padded.image.getpixel((0, 0)) == BLACK
        assert padded.image.getpixel((0, 49)) == BLACK
        assert padded.image.getpixel((0, 50)) == RED
        assert padded.image.getpixel((199, 149)) == RED
        assert padded.image.getpixel((199, 150)) == BLACK

    def test_portrait_is_centred_horizontally(self):
        padded = pad_to_square(_solid(60, 100))
        assert padded.image.size == (100, 100)
        assert padded.offset == (20, 0)
        assert padded.image.getpixel((19, 50)) == BLACK
        assert padded.image.getpixel((20, 50)) == RED

    def test_square_has_zero_offset(self):
        source = _solid(64, 64)
        padded = pad_to_square(source)
        assert padded.offset == (0, 0)
        assert padded.image is not source
        assert padded.image.getpixel((0, 0)) == RED

    def test_transparent_pixels_become_fill(self):
        source = Image.new("RGBA", (10, 20), (0, 255, 0, 0))
        padded = pad_to_square(source)
        assert padded.image.mode == "RGB"
        assert padded.image.getpixel((5, 10)) == BLACK

    def test_records_original_dimensions(self):
        padded = pad_to_square(_solid(31, 17))
        assert isinstance(padded, PaddedImage)
        assert (padded.original_width, padded.original_height) == (31, 17)
        assert padded.size == 31

    def test_zero_size_raises(self):
        with pytest.raises(ValidationError):
            pad_to_square(Image.new("RGB", (0, 10)))


@pytest.mark.unit
class TestOffsetHotspot:
    def test_landscape_offsets_y(self):
        assert offset_hotspot(Point(10, 10), 200, 100) == Point(10, 60)

    def test_portrait_offsets_x(self):
        assert offset_hotspot(Point(5, 90), 60, 100) == Point(25, 90)

    def test_odd_difference_uses_pasted_offset(self):
        assert offset_hotspot(Point(0, 0), 10, 7) == Point(0, 1)
        assert offset_hotspot(Point(2, 3), 7, 10) == Point(3, 3)

    def test_square_unchanged(self):
        assert offset_hotspot(Point(3, 4), 50, 50) == Point(3, 4)

    @pytest.mark.parametrize("point", [Point(-1, 5), Point(5, -1), Point(201, 5), Point(5, 101)])
    def test_outside_image_raises(self, point):
        with pytest.raises(ValidationError) as exc_info:
            offset_hotspot(point, 200, 100)
        assert exc_info.value.field == "hotspot"


@pytest.mark.unit
class TestDrawHotspot:
    def test_marker_is_translucent_cyan_over_black(self):
        marked = draw_hotspot(_solid(100, 100, BLACK), Point(50, 50), radius_ratio=0.1)
        r, g, b = marked.getpixel((50, 50))
        assert r == 0
        assert abs(g - 178) <= 2
        assert abs(b - 178) <= 2

    def test_outline_is_lighter_than_fill(self):
        marked = draw_hotspot(_solid(100, 100, BLACK), Point(50, 50), radius_ratio=0.1)
        # Left edge of the circle is on the white outline
        r, _g, _b = marked.getpixel((41, 50))
        assert r > 150

    def test_pixels_away_from_marker_unchanged(self):
        marked = draw_hotspot(_solid(100, 100), Point(50, 50), radius_ratio=0.1)
        assert marked.getpixel((0, 0)) == RED
        assert marked.getpixel((80, 50)) == RED

    def test_returns_copy(self):
        source = _solid(100, 100, BLACK)
        draw_hotspot(source, Point(50, 50), radius_ratio=0.1)
        assert source.getpixel((50, 50)) == BLACK

    def test_tiny_image_still_marked(self):
        marked = draw_hotspot(_solid(10, 10, BLACK), Point(5, 5))
        assert marked.getpixel((5, 5)) != BLACK

    def test_outside_raises(self):
        with pytest.raises(ValidationError):
            draw_hotspot(_solid(10, 10), Point(20, 5))


@pytest.mark.unit
class TestCropSquareToOriginal:
    @pytest.mark.parametrize("size", [(1, 1), (3, 7), (200, 100), (101, 50), (64, 64), (17, 400)])
    def test_pad_then_crop_restores_size(self, size):
        width, height = size
        padded = pad_to_square(_solid(width, height))
        assert crop_square_to_original(padded.image, width, height).size == (width, height)

    def test_larger_square_from_model(self):
        padded = pad_to_square(_solid(200, 100))
        upscaled = padded.image.resize((1024, 1024))
        cropped = crop_square_to_original(upscaled, 200, 100)
        assert cropped.size == (200, 100)
        assert cropped.getpixel((100, 50)) == RED
        # Black bars are excluded
        assert cropped.getpixel((100, 10)) == RED

    def test_smaller_square_from_model(self):
        padded = pad_to_square(_solid(300, 150))
        cropped = crop_square_to_original(padded.image.resize((96, 96)), 300, 150)
        assert cropped.size == (300, 150)
        assert cropped.getpixel((150, 75)) == RED

    @pytest.mark.parametrize("size", [(10, 5), (10, 6), (5, 10), (7, 4), (9, 9), (1, 4)])
    def test_round_trip_keeps_content(self, size):
        width, height = size
        source = _gradient(width, height)
        padded = pad_to_square(source)
        cropped = crop_square_to_original(padded.image, width, height)
        assert list(cropped.getdata()) == list(source.getdata())

    def test_offset_point_hits_same_pixel_in_square(self):
        source = _gradient(10, 5)
        padded = pad_to_square(source)
        point = offset_hotspot(Point(4, 4), 10, 5)
        assert padded.image.getpixel((int(point.x), int(point.y))) == source.getpixel((4, 4))

    def test_zero_size_raises(self):
        with pytest.raises(ValidationError):
            crop_square_to_original(_solid(10, 10), 0, 5)


@pytest.mark.unit
class TestDisplayToImagePoint:
    def test_scales_to_natural_size(self):
        assert display_to_image_point(50, 25, (100, 50), (1000, 500)) == Point(500, 250)

    def test_rounds_to_nearest(self):
        assert display_to_image_point(10.3, 10.6, (100, 100), (100, 100)) == Point(10, 11)
        assert display_to_image_point(0.5, 1.5, (100, 100), (100, 100)) == Point(1, 2)

    def test_clamps_into_image(self):
        assert display_to_image_point(-5, 150, (100, 100), (200, 200)) == Point(0, 200)

    def test_zero_display_size_raises(self):
        with pytest.raises(ValidationError):
            display_to_image_point(1, 1, (0, 100), (100, 100))


@pytest.mark.unit
class TestCropRegion:
    def test_crops_natural_box(self):
        source = _solid(100, 80)
        source.putpixel((10, 20), WHITE)
        cropped = crop_region(source, (10, 20, 30, 40))
        assert cropped.size == (30, 40)
        assert cropped.getpixel((0, 0)) == WHITE

    def test_scales_display_box(self):
        cropped = crop_region(_solid(1000, 500), (10, 10, 50, 25), display_size=(100, 50))
        assert cropped.size == (500, 250)

    def test_empty_box_raises(self):
        with pytest.raises(ValidationError, match="select an area"):
            crop_region(_solid(100, 100), (10, 10, 0, 20))

    def test_out_of_bounds_raises(self):
        with pytest.raises(ValidationError):
            crop_region(_solid(100, 100), (50, 50, 60, 10))


@pytest.mark.unit
class TestExpandCanvas:
    @pytest.mark.parametrize(
        "direction,size,box",
        [
            ("left", (150, 50), (50, 0, 150, 50)),
            ("right", (150, 50), (0, 0, 100, 50)),
            ("top", (100, 75), (0, 25, 100, 75)),
            ("bottom", (100, 75), (0, 0, 100, 50)),
        ],
    )
    def test_directions(self, direction, size, box):
        expanded, content = expand_canvas(_solid(100, 50), direction)
        assert expanded.size == size
        assert content == box
        assert expanded.crop(content).getpixel((0, 0)) == RED

    def test_new_area_is_black(self):
        expanded, _ = expand_canvas(_solid(100, 50), "left")
        assert expanded.getpixel((0, 0)) == BLACK

    def test_custom_ratio(self):
        expanded, _ = expand_canvas(_solid(100, 50), "right", ratio=0.25)
        assert expanded.size == (125, 50)

    def test_invalid_direction_raises(self):
        with pytest.raises(ValidationError) as exc_info:
            expand_canvas(_solid(10, 10), "diagonal")
        assert exc_info.value.field == "direction"


@pytest.mark.unit
class TestComposeGrid:
    def test_default_columns(self):
        board = compose_grid([_solid(10, 10)] * 3, cell_size=64)
        assert board.size == (128, 128)
        # Fourth cell is empty
        assert board.getpixel((100, 100)) == WHITE
        assert board.getpixel((32, 32)) == RED

    def test_items_keep_aspect_ratio(self):
        board = compose_grid([_solid(200, 100)], cell_size=64)
        assert board.size == (64, 64)
        assert board.getpixel((32, 5)) == WHITE
        assert board.getpixel((32, 32)) == RED

    def test_explicit_columns(self):
        board = compose_grid([_solid(5, 5)] * 3, cell_size=10, columns=3)
        assert board.size == (30, 10)

    def test_empty_raises(self):
        with pytest.raises(ValidationError, match="one or more images"):
            compose_grid([])


@pytest.mark.unit
class TestPlaceholderImage:
    def test_default_size_and_background(self):
        image = placeholder_image()
        assert image.size == (1024, 768)
        assert image.getpixel((0, 0)) == PLACEHOLDER_BACKGROUND

    def test_has_text(self):
        image = placeholder_image(400, 300)
        colors = image.getcolors(maxcolors=100_000)
        assert colors is not None and len(colors) > 1
