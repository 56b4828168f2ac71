"""
pixshop - AI photo retouching with Gemini

Localized retouching at a clicked point, global filters and adjustments,
object placement, mood-board scenes and canvas expansion, driven through a
small HTTP relay that holds the Gemini credential.

Library usage:
- Configuration can be passed per operation (e.g. generate_filtered_image(..., config=my_config))
  or via the shared config: use get_config() / set_config() and omit the config argument.
- Operations send requests through a transport: "relay" (default, posts to PIXSHOP_RELAY_URL)
  or "direct" (calls Gemini in-process with GEMINI_API_KEY). Pass transport=... per call.
- Logging: control verbosity with set_verbosity(0|1|2) or configure_logging(verbose_level, quiet);
  PIXSHOP_VERBOSITY env (0/1/2) is read when CLI runs or when logging is configured.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pixshop")
except PackageNotFoundError:
    # Package is not installed (e.g., running from source in development)
    __version__ = "0.0.0.dev"

__author__ = "codeprimate"

from pixshop.core.canvas import (
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
from pixshop.core.config import (
    DEFAULT_IMAGE_MODEL,
    DEFAULT_RELAY_URL,
    Config,
    get_config,
    set_config,
)
from pixshop.core.editor import (
    EditResult,
    generate_adjusted_image,
    generate_edited_image,
    generate_expanded_image,
    generate_filtered_image,
    generate_from_grid,
    generate_placed_image,
    validate_prompt,
)
from pixshop.core.imageio import load_image
from pixshop.core.operations import EditRequest, run_edit_request
from pixshop.logging_config import configure_logging, set_verbosity
from pixshop.utils.exceptions import (
    APIError,
    CancellationError,
    ConfigurationError,
    ContentBlockedError,
    GenerationRefusedError,
    ImageProcessingError,
    NetworkError,
    PixshopError,
    RequestTimeoutError,
    ValidationError,
)

__all__ = [
    "APIError",
    "CancellationError",
    "configure_logging",
    "compose_grid",
    "Config",
    "ConfigurationError",
    "ContentBlockedError",
    "crop_region",
    "crop_square_to_original",
    "DEFAULT_IMAGE_MODEL",
    "DEFAULT_RELAY_URL",
    "display_to_image_point",
    "draw_hotspot",
    "EditRequest",
    "EditResult",
    "expand_canvas",
    "GenerationRefusedError",
    "generate_adjusted_image",
    "generate_edited_image",
    "generate_expanded_image",
    "generate_filtered_image",
    "generate_from_grid",
    "generate_placed_image",
    "get_config",
    "ImageProcessingError",
    "load_image",
    "NetworkError",
    "offset_hotspot",
    "pad_to_square",
    "PaddedImage",
    "PixshopError",
    "placeholder_image",
    "Point",
    "RequestTimeoutError",
    "run_edit_request",
    "set_config",
    "set_verbosity",
    "ValidationError",
]
