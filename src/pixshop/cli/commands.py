"""
Click command definitions for the pixshop CLI.

This module contains the Click command group and all CLI commands
(retouch, filter, adjust, place, expand, grid, crop, serve, ui).
"""

import os
from collections.abc import Callable
from pathlib import Path

import click

from pixshop import (
    Config,
    EditResult,
    __version__,
    crop_region,
    generate_adjusted_image,
    generate_edited_image,
    generate_expanded_image,
    generate_filtered_image,
    generate_from_grid,
    generate_placed_image,
    load_image,
)
from pixshop.cli import progress
from pixshop.cli.handlers import (
    cancel_check,
    install_sigint_handler,
    reset_cancellation,
    restore_sigint_handler,
    run_with_error_handling,
)
from pixshop.cli.utils import default_output_path, save_image
from pixshop.core.canvas import DIRECTIONS
from pixshop.core.config import KNOWN_TRANSPORTS
from pixshop.core.editor import DEFAULT_GRID_SIZE
from pixshop.logging_config import (
    configure_logging,
    get_verbosity_from_env,
    uvicorn_log_level,
)

IMAGE_PATH = click.Path(exists=True, dir_okay=False, path_type=Path)

_out_option = click.option(
    "--out", "-o", type=click.Path(path_type=Path), help="Output file path."
)
_quiet_option = click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Minimize progress messages; only print result path or errors.",
)
_verbose_option = click.option(
    "--verbose",
    "-v",
    "verbose_count",
    count=True,
    help="Increase verbosity: -v also show prompts, -vv show request detail.",
)
_api_key_option = click.option(
    "--api-key",
    envvar="GEMINI_API_KEY",
    help="Gemini API key (overrides GEMINI_API_KEY environment variable).",
)
_debug_api_option = click.option(
    "--debug-api",
    is_flag=True,
    help="Log raw request and response bodies (image data truncated) for debugging.",
)


def edit_options(fn: Callable) -> Callable:
    """Options shared by every command that sends an edit request."""
    decorators = [
        _out_option,
        click.option(
            "--transport",
            type=click.Choice(KNOWN_TRANSPORTS, case_sensitive=False),
            default=None,
            help="Send the request via the relay or call Gemini directly (default from config).",
        ),
        click.option(
            "--relay-url",
            envvar="PIXSHOP_RELAY_URL",
            help="Relay endpoint (default: http://127.0.0.1:8000/api/generate).",
        ),
        _api_key_option,
        _quiet_option,
        _verbose_option,
        _debug_api_option,
    ]
    for decorator in reversed(decorators):
        fn = decorator(fn)
    return fn


def _apply_verbosity(verbose_count: int, quiet: bool) -> int:
    # CLI flags override PIXSHOP_VERBOSITY
    verbose_level = min(verbose_count, 2) if verbose_count > 0 else get_verbosity_from_env()
    configure_logging(verbose_level=verbose_level, quiet=quiet)
    return verbose_level


def _load_config(
    api_key: str | None,
    relay_url: str | None = None,
    transport: str | None = None,
    debug_api: bool = False,
) -> Config:
    config = Config.from_env()
    if api_key is not None:
        config.set_api_key(api_key)
    if relay_url:
        config.relay_url = relay_url
    if transport:
        config.default_transport = transport.lower()
    if debug_api:
        config.debug_api = True
    return config


def _finish(
    out_path: Path,
    operation: str,
    size: tuple[int, int],
    quiet: bool,
    **details: object,
) -> None:
    if not quiet:
        progress.print_success_result(
            output_path=out_path, operation=operation, size=size, **details
        )
    # Path always goes to stdout for scriptability
    click.echo(str(out_path))


def _execute(
    operation: str,
    run: Callable[[Config], EditResult],
    *,
    out: Path | None,
    transport: str | None,
    relay_url: str | None,
    api_key: str | None,
    quiet: bool,
    verbose_count: int,
    debug_api: bool,
    prompt: str | None = None,
) -> None:
    """Load config, run one edit operation with progress and save the result."""
    reset_cancellation()
    _apply_verbosity(verbose_count, quiet)
    context: dict[str, str] = {}

    def do_run() -> None:
        config = _load_config(api_key, relay_url, transport, debug_api)
        config.validate()
        transport_id = config.default_transport
        context["transport"] = transport_id
        model = config.image_model if transport_id == "direct" else None

        if quiet:
            result = run(config)
        else:
            with progress.operation_progress(operation, transport=transport_id, model=model):
                result = run(config)

        out_path = out if out is not None else Path(default_output_path(operation))
        save_image(result.image, out_path)
        _finish(
            out_path,
            operation,
            result.image.size,
            quiet,
            elapsed=result.elapsed,
            transport=result.transport,
            prompt=prompt,
        )

    old_sigint = install_sigint_handler()
    try:
        run_with_error_handling(do_run, quiet=quiet, debug=debug_api, context=context)
    finally:
        restore_sigint_handler(old_sigint)


@click.group(
    help=f"""AI photo retouching with Gemini: retouch, filter, adjust, place, expand, grid.

\b
Version: {__version__}
Requests go through the pixshop relay by default (start one with `pixshop serve`)
or directly to Gemini with --transport direct.
"""
)
@click.version_option(version=__version__, package_name="pixshop")
@click.pass_context
def cli(ctx: click.Context) -> None:
    ctx.color = True


@cli.command()
@click.argument("image", type=IMAGE_PATH)
@click.option("--prompt", "-p", required=True, help="What to change at the chosen point.")
@click.option(
    "--at",
    "hotspot",
    type=(float, float),
    required=True,
    metavar="X Y",
    help="Point to retouch, in image pixel coordinates.",
)
@edit_options
def retouch(image: Path, prompt: str, hotspot: tuple[float, float], **common) -> None:
    """Retouch IMAGE at a single point following a text instruction."""
    _execute(
        "edit",
        lambda config: generate_edited_image(
            image, prompt, hotspot, config=config, cancel_check=cancel_check
        ),
        prompt=prompt,
        **common,
    )


@cli.command(name="filter")
@click.argument("image", type=IMAGE_PATH)
@click.option("--prompt", "-p", required=True, help="Style to apply (e.g. 'synthwave').")
@edit_options
def filter_cmd(image: Path, prompt: str, **common) -> None:
    """Apply a stylistic filter to the whole of IMAGE."""
    _execute(
        "filter",
        lambda config: generate_filtered_image(
            image, prompt, config=config, cancel_check=cancel_check
        ),
        prompt=prompt,
        **common,
    )


@cli.command()
@click.argument("image", type=IMAGE_PATH)
@click.option("--prompt", "-p", required=True, help="Adjustment to apply (e.g. 'warmer light').")
@edit_options
def adjust(image: Path, prompt: str, **common) -> None:
    """Apply a photorealistic global adjustment to IMAGE."""
    _execute(
        "adjustment",
        lambda config: generate_adjusted_image(
            image, prompt, config=config, cancel_check=cancel_check
        ),
        prompt=prompt,
        **common,
    )


@cli.command()
@click.argument("image", type=IMAGE_PATH)
@click.option(
    "--object",
    "-O",
    "object_image",
    type=IMAGE_PATH,
    required=True,
    help="Image of the object to place into the scene.",
)
@click.option("--prompt", "-p", required=True, help="How the object should be placed.")
@click.option(
    "--at",
    "hotspot",
    type=(float, float),
    required=True,
    metavar="X Y",
    help="Where to place the object, in image pixel coordinates.",
)
@edit_options
def place(
    image: Path,
    object_image: Path,
    prompt: str,
    hotspot: tuple[float, float],
    **common,
) -> None:
    """Place an object into IMAGE at a point."""
    _execute(
        "placement",
        lambda config: generate_placed_image(
            image, object_image, prompt, hotspot, config=config, cancel_check=cancel_check
        ),
        prompt=prompt,
        **common,
    )


@cli.command()
@click.argument("image", type=IMAGE_PATH)
@click.option(
    "--direction",
    "-d",
    type=click.Choice(DIRECTIONS, case_sensitive=False),
    required=True,
    help="Side of the canvas to extend.",
)
@click.option("--prompt", "-p", default="", help="Optional description of the new area.")
@click.option(
    "--no-preserve",
    is_flag=True,
    help="Keep the model's version of the original area instead of the source pixels.",
)
@edit_options
def expand(image: Path, direction: str, prompt: str, no_preserve: bool, **common) -> None:
    """Extend IMAGE towards one side and fill the new area."""
    _execute(
        "expand",
        lambda config: generate_expanded_image(
            image,
            direction.lower(),
            prompt,
            preserve_original=not no_preserve,
            config=config,
            cancel_check=cancel_check,
        ),
        prompt=prompt or None,
        **common,
    )


@cli.command()
@click.argument("images", type=IMAGE_PATH, nargs=-1, required=True)
@click.option("--prompt", "-p", required=True, help="Scene to build from the items.")
@click.option(
    "--size",
    "target_size",
    type=(int, int),
    default=DEFAULT_GRID_SIZE,
    show_default=True,
    metavar="W H",
    help="Size of the generated scene.",
)
@edit_options
def grid(
    images: tuple[Path, ...],
    prompt: str,
    target_size: tuple[int, int],
    **common,
) -> None:
    """Generate a scene from a mood board of IMAGES."""
    _execute(
        "grid",
        lambda config: generate_from_grid(
            list(images), prompt, target_size, config=config, cancel_check=cancel_check
        ),
        prompt=prompt,
        **common,
    )


@cli.command()
@click.argument("image", type=IMAGE_PATH)
@click.option(
    "--box",
    type=(int, int, int, int),
    required=True,
    metavar="X Y W H",
    help="Crop rectangle.",
)
@click.option(
    "--display-size",
    type=(int, int),
    default=None,
    metavar="W H",
    help="Size the box was measured on, if not the image's own pixels.",
)
@_out_option
@_quiet_option
@_verbose_option
def crop(
    image: Path,
    box: tuple[int, int, int, int],
    display_size: tuple[int, int] | None,
    out: Path | None,
    quiet: bool,
    verbose_count: int,
) -> None:
    """Crop IMAGE locally (no model call)."""
    _apply_verbosity(verbose_count, quiet)

    def do_crop() -> None:
        result = crop_region(load_image(image), box, display_size=display_size)
        out_path = out if out is not None else Path(default_output_path("crop"))
        save_image(result, out_path)
        _finish(out_path, "crop", result.size, quiet)

    run_with_error_handling(do_crop, quiet=quiet)


@cli.command()
@click.option(
    "--host",
    type=str,
    default=None,
    help="Host to bind (default: 127.0.0.1 or PIXSHOP_RELAY_HOST).",
)
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    help="Port to listen on (default: 8000 or PIXSHOP_RELAY_PORT).",
)
@click.option(
    "--cors-origin",
    "cors_origins",
    multiple=True,
    help="Allowed CORS origin; repeat for several (default: PIXSHOP_CORS_ORIGINS or '*').",
)
@_api_key_option
@_verbose_option
@_debug_api_option
def serve(
    host: str | None,
    port: int | None,
    cors_origins: tuple[str, ...],
    api_key: str | None,
    verbose_count: int,
    debug_api: bool,
) -> None:
    """Run the relay that forwards edit requests to Gemini."""
    from pixshop.relay import run_server

    verbose_level = _apply_verbosity(verbose_count, quiet=False)

    def do_serve() -> None:
        config = _load_config(api_key, debug_api=debug_api)
        if cors_origins:
            config.cors_origins = tuple(cors_origins)
        config.validate()
        run_server(
            config, host=host, port=port, log_level=uvicorn_log_level(verbose_level)
        )

    run_with_error_handling(do_serve, debug=debug_api)


@cli.command()
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    envvar="PIXSHOP_UI_PORT",
    help="Port for the Gradio server (default: 7860 or PIXSHOP_UI_PORT).",
)
@click.option(
    "--host",
    "host",
    type=str,
    default=None,
    envvar="PIXSHOP_UI_HOST",
    help="Host to bind (default: 127.0.0.1 or PIXSHOP_UI_HOST). Use 0.0.0.0 for LAN.",
)
@click.option(
    "--share",
    is_flag=True,
    default=None,
    envvar="PIXSHOP_UI_SHARE",
    help="Create a public share link (e.g. gradio.live).",
)
@click.option(
    "--transport",
    type=click.Choice(KNOWN_TRANSPORTS, case_sensitive=False),
    default=None,
    help="Transport used by the UI (default from config).",
)
@click.option("--relay-url", help="Relay endpoint used by the UI.")
@_api_key_option
@_debug_api_option
def ui(
    port: int | None,
    host: str | None,
    share: bool | None,
    transport: str | None,
    relay_url: str | None,
    api_key: str | None,
    debug_api: bool,
) -> None:
    """Launch the Gradio web UI."""
    from pixshop.ui.gradio_app import launch as launch_ui

    # Apply logging verbosity from env so UI logs respect PIXSHOP_VERBOSITY
    configure_logging(verbose_level=get_verbosity_from_env(), quiet=False)

    # The UI builds its config from the environment; pass CLI overrides through it
    if api_key is not None:
        os.environ["GEMINI_API_KEY"] = api_key
    if transport is not None:
        os.environ["PIXSHOP_TRANSPORT"] = transport.lower()
    if relay_url is not None:
        os.environ["PIXSHOP_RELAY_URL"] = relay_url
    if debug_api:
        os.environ["PIXSHOP_DEBUG_API"] = "1"

    share_val = share
    if share_val is None:
        env_share = os.environ.get("PIXSHOP_UI_SHARE", "").lower()
        share_val = env_share in ("1", "true", "yes")
    launch_ui(server_name=host, server_port=port, share=share_val)


def main() -> None:
    """Entry point for the pixshop console script."""
    cli()


__all__ = [
    "cli",
    "main",
    "retouch",
    "filter_cmd",
    "adjust",
    "place",
    "expand",
    "grid",
    "crop",
    "serve",
    "ui",
]
