"""
Utility functions for the CLI.

This module contains helper functions used by CLI commands,
such as output path generation, saving results and exit code constants.
"""

from datetime import datetime
from pathlib import Path

from PIL import Image

# Exit codes (130 = common for SIGINT)
EXIT_SUCCESS = 0
EXIT_API_OR_NETWORK = 1
EXIT_VALIDATION_OR_CONFIG = 2
EXIT_CANCELLED = 130

# Formats that cannot store an alpha channel
_NO_ALPHA_FORMATS = ("JPEG", "BMP")


def default_output_path(operation: str) -> str:
    """Return default output path: pixshop_<op>_<YYYYMMDD>_<HHMMSS>.png in current directory."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"pixshop_{operation}_{timestamp}.png"


def save_image(image: Image.Image, path: Path) -> None:
    """Save image to path, picking the format from the suffix (PNG when unknown)."""
    fmt = Image.registered_extensions().get(path.suffix.lower(), "PNG")
    if fmt in _NO_ALPHA_FORMATS and image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
    image.save(path, format=fmt)


__all__ = [
    "EXIT_SUCCESS",
    "EXIT_API_OR_NETWORK",
    "EXIT_VALIDATION_OR_CONFIG",
    "EXIT_CANCELLED",
    "default_output_path",
    "save_image",
]
