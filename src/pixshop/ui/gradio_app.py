"""
Gradio web UI for pixshop.

Single canvas: upload a photo, click it to choose a point, then retouch,
place an object, filter, adjust, expand, crop or build a scene from a mood
board. Each result replaces the working image.
"""

import os
import threading
from collections.abc import Callable
from typing import Any, cast

import gradio as gr
from PIL import Image

from pixshop import (
    APIError,
    CancellationError,
    Config,
    ConfigurationError,
    EditResult,
    ImageProcessingError,
    NetworkError,
    PixshopError,
    RequestTimeoutError,
    ValidationError,
    __version__,
    crop_region,
    display_to_image_point,
    generate_adjusted_image,
    generate_edited_image,
    generate_expanded_image,
    generate_filtered_image,
    generate_from_grid,
    generate_placed_image,
    placeholder_image,
)
from pixshop.core.canvas import DIRECTIONS
from pixshop.core.editor import DEFAULT_GRID_SIZE
from pixshop.logging_config import get_logger

logger = get_logger(__name__)

# Default server port; overridable via PIXSHOP_UI_PORT
DEFAULT_UI_PORT = 7860
DEFAULT_UI_HOST = "127.0.0.1"

PAGE_TITLE = "pixshop – AI photo retouching"

# Shared cancellation event: each operation clears it at start, Stop sets it
_cancel_event = threading.Event()


def _cancel_check() -> bool:
    return _cancel_event.is_set()


def _exception_to_message(exc: BaseException) -> str:
    """Map library and known exceptions to a short user-facing message (same as CLI)."""
    if isinstance(exc, ValidationError):
        return exc.args[0] if exc.args else "Validation failed."
    if isinstance(exc, ConfigurationError):
        return exc.args[0] if exc.args else "Invalid configuration."
    if isinstance(exc, (ImageProcessingError, FileNotFoundError)):
        return str(exc.args[0]) if exc.args else "Image processing failed."
    if isinstance(exc, CancellationError):
        return "Cancelled."
    if isinstance(exc, (APIError, NetworkError, RequestTimeoutError)):
        return exc.args[0] if exc.args else "API or network error."
    if isinstance(exc, PixshopError):
        return exc.args[0] if exc.args else "An error occurred."
    return str(exc) if exc.args else "An unexpected error occurred."


def _format_status(message: str, status_type: str = "info") -> str:
    """
    Format a status message with color and icon.

    Args:
        message: The status message text.
        status_type: One of "info", "success", "error", "warning", "idle".
    """
    styles = {
        "success": ("✅", "#10b981", "#d1fae5"),
        "error": ("❌", "#ef4444", "#fee2e2"),
        "warning": ("⚠️", "#f59e0b", "#fef3c7"),
        "info": ("ℹ️", "#3b82f6", "#dbeafe"),
    }
    if status_type not in styles:
        return ""
    icon, color, bg_color = styles[status_type]
    # Inline styles work across themes
    return f"""<div style="padding: 12px 16px; border-radius: 8px; background-color: {bg_color}; border-left: 4px solid {color}; margin: 8px 0;">
    <span style="font-size: 16px; margin-right: 8px;">{icon}</span>
    <span style="color: {color}; font-weight: 500;">{message}</span>
</div>"""


def _file_paths(files: Any) -> list[str]:
    """Normalize a gr.File value (paths, tempfile wrappers or dicts) to a list of paths."""
    if not files:
        return []
    if not isinstance(files, (list, tuple)):
        files = [files]
    paths = []
    for f in files:
        if isinstance(f, dict):
            path = f.get("path") or f.get("name")
        else:
            path = getattr(f, "name", f)
        if path:
            paths.append(str(path))
    return paths


def _run_operation(
    image: Image.Image | None,
    hotspot: dict[str, float] | None,
    operation: Callable[[Config], EditResult],
    label: str,
) -> tuple[Image.Image | None, dict[str, float] | None, str]:
    """
    Run one edit operation against a fresh config.

    Returns:
        (canvas_image, hotspot_state, status_html). On failure the canvas and
        hotspot are left unchanged and the status carries the error.
    """
    _cancel_event.clear()
    try:
        config = Config.from_env()
        config.validate()
        result = operation(config)
    except CancellationError as e:
        return image, hotspot, _format_status(_exception_to_message(e), "warning")
    except (PixshopError, FileNotFoundError) as e:
        logger.warning("%s failed: %s", label, e)
        return image, hotspot, _format_status(_exception_to_message(e), "error")

    width, height = result.image.size
    status = f"{label} done in {result.elapsed:.1f}s ({width}x{height})"
    return result.image, None, _format_status(status, "success")


def _upload_handler(image: Image.Image | None) -> tuple[None, str]:
    """New image: forget the selected point."""
    if image is None:
        return None, ""
    return None, _format_status(
        f"Loaded {image.width}x{image.height}. Click the image to choose a point.", "info"
    )


def _select_handler(
    image: Image.Image | None, evt: gr.SelectData
) -> tuple[dict[str, float] | None, str]:
    """Record the clicked point in image pixel coordinates."""
    if image is None:
        return None, _format_status("Upload an image first.", "warning")
    x, y = evt.index[0], evt.index[1]
    # Gradio reports natural-size coordinates; clamp to the image bounds
    point = display_to_image_point(x, y, image.size, image.size)
    return point.as_dict(), _format_status(
        f"Point selected at ({point.x:g}, {point.y:g}).", "info"
    )


def _require_image(image: Image.Image | None) -> Image.Image:
    if image is None:
        raise ValidationError("Upload an image first.", field="image")
    return image


def _require_hotspot(hotspot: dict[str, float] | None, action: str) -> tuple[float, float]:
    if not hotspot:
        raise ValidationError(
            f"Please click on the image to select an area to {action}.", field="hotspot"
        )
    return (hotspot["x"], hotspot["y"])


def _retouch_handler(
    image: Image.Image | None, hotspot: dict[str, float] | None, prompt: str
) -> tuple[Image.Image | None, dict[str, float] | None, str]:
    def op(config: Config) -> EditResult:
        return generate_edited_image(
            _require_image(image),
            prompt,
            _require_hotspot(hotspot, "edit"),
            config=config,
            cancel_check=_cancel_check,
        )

    return _run_operation(image, hotspot, op, "Retouch")


def _place_handler(
    image: Image.Image | None,
    hotspot: dict[str, float] | None,
    object_image: Image.Image | None,
    prompt: str,
) -> tuple[Image.Image | None, dict[str, float] | None, str]:
    def op(config: Config) -> EditResult:
        if object_image is None:
            raise ValidationError(
                "Please upload an image of the object to place.", field="object_image"
            )
        return generate_placed_image(
            _require_image(image),
            object_image,
            prompt,
            _require_hotspot(hotspot, "place the object"),
            config=config,
            cancel_check=_cancel_check,
        )

    return _run_operation(image, hotspot, op, "Placement")


def _filter_handler(
    image: Image.Image | None, hotspot: dict[str, float] | None, prompt: str
) -> tuple[Image.Image | None, dict[str, float] | None, str]:
    return _run_operation(
        image,
        hotspot,
        lambda config: generate_filtered_image(
            _require_image(image), prompt, config=config, cancel_check=_cancel_check
        ),
        "Filter",
    )


def _adjust_handler(
    image: Image.Image | None, hotspot: dict[str, float] | None, prompt: str
) -> tuple[Image.Image | None, dict[str, float] | None, str]:
    return _run_operation(
        image,
        hotspot,
        lambda config: generate_adjusted_image(
            _require_image(image), prompt, config=config, cancel_check=_cancel_check
        ),
        "Adjustment",
    )


def _expand_handler(
    image: Image.Image | None,
    hotspot: dict[str, float] | None,
    direction: str,
    prompt: str,
) -> tuple[Image.Image | None, dict[str, float] | None, str]:
    return _run_operation(
        image,
        hotspot,
        lambda config: generate_expanded_image(
            _require_image(image),
            direction,
            prompt or "",
            config=config,
            cancel_check=_cancel_check,
        ),
        "Expand",
    )


def _grid_handler(
    image: Image.Image | None,
    hotspot: dict[str, float] | None,
    files: Any,
    prompt: str,
    width: float,
    height: float,
) -> tuple[Image.Image | None, dict[str, float] | None, str]:
    return _run_operation(
        image,
        hotspot,
        lambda config: generate_from_grid(
            _file_paths(files),
            prompt,
            (int(width), int(height)),
            config=config,
            cancel_check=_cancel_check,
        ),
        "Scene",
    )


def _crop_handler(
    image: Image.Image | None,
    x: float,
    y: float,
    width: float,
    height: float,
) -> tuple[Image.Image | None, None, str]:
    """Local crop; no model call."""
    try:
        cropped = crop_region(_require_image(image), (int(x), int(y), int(width), int(height)))
    except PixshopError as e:
        return image, None, _format_status(_exception_to_message(e), "error")
    return cropped, None, _format_status(f"Cropped to {cropped.width}x{cropped.height}.", "success")


def _blank_canvas_handler() -> tuple[Image.Image, None, str]:
    """Start from the placeholder canvas (grid mode without an upload)."""
    width, height = DEFAULT_GRID_SIZE
    return placeholder_image(width, height), None, _format_status(
        "Blank canvas ready. Use the Grid tab to build a scene.", "info"
    )


def _stop_click_handler() -> str:
    _cancel_event.set()
    return _format_status("Stopping...", "warning")


def _build_blocks() -> gr.Blocks:
    with gr.Blocks(title=PAGE_TITLE) as app:
        gr.Markdown(f"## pixshop\nAI photo retouching (v{__version__})")
        hotspot_state = gr.State(value=None)

        with gr.Row():
            with gr.Column(scale=3):
                canvas = gr.Image(
                    label="Image (click to choose a point)",
                    type="pil",
                    sources=["upload", "clipboard"],
                    interactive=True,
                )
                status_html = gr.HTML(value="")
                with gr.Row():
                    blank_btn = gr.Button("Blank canvas")
                    stop_btn = gr.Button("Stop")

            with gr.Column(scale=2):
                with gr.Tabs():
                    with gr.Tab("Retouch"):
                        retouch_prompt = gr.Textbox(
                            label="What to change at the selected point",
                            placeholder="e.g. 'change the shirt color to blue'",
                        )
                        retouch_btn = gr.Button("Retouch", variant="primary")
                    with gr.Tab("Place"):
                        object_image = gr.Image(label="Object", type="pil")
                        place_prompt = gr.Textbox(
                            label="How to place it",
                            placeholder="e.g. 'put this lamp on the table'",
                        )
                        place_btn = gr.Button("Place", variant="primary")
                    with gr.Tab("Filter"):
                        filter_prompt = gr.Textbox(
                            label="Filter style", placeholder="e.g. '80s synthwave'"
                        )
                        filter_btn = gr.Button("Apply filter", variant="primary")
                    with gr.Tab("Adjust"):
                        adjust_prompt = gr.Textbox(
                            label="Adjustment", placeholder="e.g. 'warmer golden hour light'"
                        )
                        adjust_btn = gr.Button("Apply adjustment", variant="primary")
                    with gr.Tab("Expand"):
                        direction = gr.Radio(
                            choices=list(DIRECTIONS), value="right", label="Direction"
                        )
                        expand_prompt = gr.Textbox(
                            label="New area (optional)", placeholder="e.g. 'more beach'"
                        )
                        expand_btn = gr.Button("Expand", variant="primary")
                    with gr.Tab("Grid"):
                        grid_files = gr.File(
                            label="Mood board items", file_count="multiple", file_types=["image"]
                        )
                        grid_prompt = gr.Textbox(
                            label="Scene", placeholder="e.g. 'a cozy reading corner'"
                        )
                        with gr.Row():
                            grid_width = gr.Number(
                                value=DEFAULT_GRID_SIZE[0], label="Width", precision=0
                            )
                            grid_height = gr.Number(
                                value=DEFAULT_GRID_SIZE[1], label="Height", precision=0
                            )
                        grid_btn = gr.Button("Generate scene", variant="primary")
                    with gr.Tab("Crop"):
                        with gr.Row():
                            crop_x = gr.Number(value=0, label="X", precision=0)
                            crop_y = gr.Number(value=0, label="Y", precision=0)
                        with gr.Row():
                            crop_w = gr.Number(value=0, label="Width", precision=0)
                            crop_h = gr.Number(value=0, label="Height", precision=0)
                        crop_btn = gr.Button("Crop", variant="primary")

        outputs = [canvas, hotspot_state, status_html]

        canvas.upload(_upload_handler, inputs=[canvas], outputs=[hotspot_state, status_html])
        canvas.select(_select_handler, inputs=[canvas], outputs=[hotspot_state, status_html])
        retouch_btn.click(
            _retouch_handler, inputs=[canvas, hotspot_state, retouch_prompt], outputs=outputs
        )
        place_btn.click(
            _place_handler,
            inputs=[canvas, hotspot_state, object_image, place_prompt],
            outputs=outputs,
        )
        filter_btn.click(
            _filter_handler, inputs=[canvas, hotspot_state, filter_prompt], outputs=outputs
        )
        adjust_btn.click(
            _adjust_handler, inputs=[canvas, hotspot_state, adjust_prompt], outputs=outputs
        )
        expand_btn.click(
            _expand_handler,
            inputs=[canvas, hotspot_state, direction, expand_prompt],
            outputs=outputs,
        )
        grid_btn.click(
            _grid_handler,
            inputs=[canvas, hotspot_state, grid_files, grid_prompt, grid_width, grid_height],
            outputs=outputs,
        )
        crop_btn.click(
            _crop_handler, inputs=[canvas, crop_x, crop_y, crop_w, crop_h], outputs=outputs
        )
        blank_btn.click(_blank_canvas_handler, outputs=outputs)
        stop_btn.click(_stop_click_handler, outputs=[status_html])

    return cast(gr.Blocks, app)


def launch(
    server_name: str | None = None,
    server_port: int | None = None,
    share: bool = False,
) -> None:
    """
    Build the Gradio app and launch the server.

    Args:
        server_name: Host to bind (default: PIXSHOP_UI_HOST or 127.0.0.1).
        server_port: Port (default: PIXSHOP_UI_PORT or 7860).
        share: If True, create a public share link (e.g. gradio.live).
    """
    host = server_name or os.getenv("PIXSHOP_UI_HOST", DEFAULT_UI_HOST)
    port = server_port
    if port is None:
        try:
            port = int(os.getenv("PIXSHOP_UI_PORT", str(DEFAULT_UI_PORT)))
        except ValueError:
            port = DEFAULT_UI_PORT
    print(f"pixshop ui is starting (v{__version__}) on http://{host}:{port}...")
    app = _build_blocks()
    app.launch(server_name=host, server_port=port, share=share, inbrowser=True)
