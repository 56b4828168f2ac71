"""
Image loading and encoding for pixshop.

Images travel between client, relay and model as base64 data URLs; this module
converts between those, raw bytes, files and PIL images.
"""

import base64
import io
from pathlib import Path

from PIL import Image, ImageOps

from pixshop.logging_config import get_logger
from pixshop.utils.exceptions import ImageProcessingError, ValidationError

logger = get_logger(__name__)

SUPPORTED_FORMATS = {"PNG", "JPEG", "JPG", "WEBP", "HEIC", "HEIF"}

ImageSource = str | Path | bytes | Image.Image


def _upright(image: Image.Image) -> Image.Image:
    """Apply the EXIF orientation tag so width and height match the displayed image."""
    orientation = image.getexif().get(0x0112, 1)
    if orientation in (None, 1):
        return image
    logger.debug("Applying EXIF orientation %s", orientation)
    return ImageOps.exif_transpose(image)


def _register_heif() -> None:
    try:
        from pillow_heif import register_heif_opener

        register_heif_opener()
    except ImportError:
        pass  # HEIF support not available


def _infer_format_from_magic(data: bytes) -> str | None:
    """Infer image format from magic bytes. Returns format name (e.g. PNG, JPEG) or None."""
    if len(data) < 12:
        return None
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "PNG"
    if data[:2] == b"\xff\xd8":
        return "JPEG"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "WEBP"
    if data[4:12] in (b"ftypheic", b"ftypheix", b"ftypmif1"):
        return "HEIC"
    return None


def _normalize_format(fmt: str | None) -> str | None:
    """Normalize format to a key in SUPPORTED_FORMATS (JPG -> JPEG, image/png -> PNG)."""
    if not fmt:
        return None
    s = fmt.strip().lower()
    if s.startswith("image/"):
        s = s.split("/", 1)[1]
    u = s.upper()
    if u == "JPG":
        return "JPEG"
    return u if u in SUPPORTED_FORMATS else None


def parse_data_url(data_url: str) -> tuple[str, str]:
    """
    Split a data URL (data:image/png;base64,....) into (mime_type, base64_payload).

    Raises:
        ValidationError: If the string is not a base64 data URL
    """
    data_url = data_url.strip()
    if not data_url.startswith("data:"):
        raise ValidationError("Not a data URL", field="image")
    idx = data_url.find(";base64,")
    if idx == -1:
        raise ValidationError("Data URL missing ;base64, part", field="image")
    mime = data_url[5:idx].strip().lower()
    if not mime:
        raise ValidationError("Could not parse MIME type from data URL", field="image")
    return mime, data_url[idx + 8 :]


def strip_data_url(value: str, default_mime: str = "image/png") -> tuple[str, str]:
    """
    Accept a data URL or bare base64 and return (mime_type, base64_payload).

    Bare base64 is assumed to be default_mime.
    """
    value = value.strip()
    if value.startswith("data:"):
        return parse_data_url(value)
    return default_mime, value


def create_image_data_url(encoded_image: str, mime_type: str = "image/png") -> str:
    """Create a data URL from a base64 encoded image."""
    return f"data:{mime_type};base64,{encoded_image}"


def decode_base64_image(payload: str) -> bytes:
    """Decode base64 (bare or data URL) to bytes."""
    _mime, data = strip_data_url(payload)
    try:
        return base64.b64decode(data, validate=True)
    except Exception as e:
        raise ValidationError(f"Invalid base64 image data: {e}", field="image") from e


def load_image(source: ImageSource, format_hint: str | None = None) -> Image.Image:
    """
    Load an image from a path, raw bytes, a data URL or an existing PIL image.

    Args:
        source: File path, bytes, data URL string, or PIL Image
        format_hint: Optional format for bytes input (e.g. 'PNG', 'image/jpeg')

    Returns:
        Loaded PIL Image (pixel data read)

    Raises:
        ValidationError: If the source is empty or in an unsupported format
        ImageProcessingError: If decoding fails
        FileNotFoundError: If a path does not exist
    """
    if isinstance(source, Image.Image):
        return source

    if isinstance(source, str) and source.strip().startswith("data:"):
        mime, _ = parse_data_url(source)
        return load_image(decode_base64_image(source), format_hint=format_hint or mime)

    if isinstance(source, bytes):
        if not source:
            raise ValidationError("Image data is empty", field="image")
        fmt = _normalize_format(format_hint) or _normalize_format(
            _infer_format_from_magic(source)
        )
        if not fmt:
            raise ValidationError(
                "Could not determine image format from bytes. "
                "Pass format_hint (e.g. 'PNG', 'JPEG', 'image/jpeg').",
                field="image_format",
            )
        _register_heif()
        try:
            image = Image.open(io.BytesIO(source))
            image.load()
            return _upright(image)
        except Exception as e:
            raise ImageProcessingError(f"Failed to load image from bytes: {str(e)}") from e

    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(f"Image file not found: {path}")
    suffix = _normalize_format(path.suffix.lstrip("."))
    if suffix is None:
        raise ValidationError(
            f"Unsupported image format: {path.suffix.upper().lstrip('.')}. "
            f"Supported formats: {', '.join(sorted(SUPPORTED_FORMATS))}",
            field="image_format",
        )
    _register_heif()
    try:
        image = Image.open(path)
        image.load()
        return _upright(image)
    except Exception as e:
        raise ImageProcessingError(f"Failed to load image: {str(e)}", image_path=str(path)) from e


def limit_pixels(image: Image.Image, max_pixels: int) -> Image.Image:
    """Downscale image (aspect preserved) so width * height <= max_pixels."""
    width, height = image.size
    current = width * height
    if current <= max_pixels:
        return image
    scale = (max_pixels / current) ** 0.5
    out_w = max(1, int(width * scale))
    out_h = max(1, int(height * scale))
    logger.debug(
        "Downscaling %dx%d -> %dx%d max_pixels=%s", width, height, out_w, out_h, max_pixels
    )
    return image.resize((out_w, out_h), Image.Resampling.LANCZOS)


def encode_image_base64(image: Image.Image, format: str = "PNG") -> str:
    """
    Encode a PIL Image to a base64 string.

    Raises:
        ImageProcessingError: If encoding fails
    """
    try:
        buffer = io.BytesIO()
        if format.upper() in ("JPEG", "JPG") and image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        image.save(buffer, format=format)
        return base64.b64encode(buffer.getvalue()).decode("utf-8")
    except Exception as e:
        raise ImageProcessingError(f"Failed to encode image: {str(e)}") from e


def image_to_data_url(image: Image.Image) -> str:
    """Encode image as a PNG data URL (the wire format for relay requests)."""
    return create_image_data_url(encode_image_base64(image, format="PNG"), "image/png")


def data_url_to_image(data_url: str) -> Image.Image:
    """Decode a data URL (or bare base64) returned by the model into a PIL image."""
    mime, _ = strip_data_url(data_url)
    return load_image(decode_base64_image(data_url), format_hint=mime)
