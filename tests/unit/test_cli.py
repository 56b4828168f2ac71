"""Unit tests for the pixshop CLI."""

import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner, Result
from PIL import Image

from pixshop import __version__
from pixshop.cli import cli
from pixshop.cli.handlers import map_exception_to_exit
from pixshop.cli.utils import (
    EXIT_API_OR_NETWORK,
    EXIT_CANCELLED,
    EXIT_VALIDATION_OR_CONFIG,
    default_output_path,
    save_image,
)
from pixshop.core.editor import EditResult
from pixshop.utils.exceptions import (
    APIError,
    CancellationError,
    ConfigurationError,
    ContentBlockedError,
    GenerationRefusedError,
    ImageProcessingError,
    NetworkError,
    ValidationError,
)


def _run_cli(*args: str) -> Result:
    return CliRunner().invoke(cli, list(args))


def _result(operation: str, size=(8, 6)) -> EditResult:
    return EditResult(
        image=Image.new("RGB", size, (1, 2, 3)),
        operation=operation,
        elapsed=1.25,
        transport="relay",
    )


@pytest.fixture
def photo(tmp_path: Path) -> Path:
    path = tmp_path / "photo.png"
    Image.new("RGB", (20, 10), (200, 10, 10)).save(path)
    return path


@pytest.mark.unit
class TestEditCommands:
    @patch("pixshop.cli.commands.generate_filtered_image")
    def test_filter_saves_and_prints_path(
        self, mock_filter: MagicMock, photo: Path, tmp_path: Path
    ) -> None:
        mock_filter.return_value = _result("filter")
        out = tmp_path / "out.png"
        result = _run_cli("filter", str(photo), "-p", "synthwave", "-o", str(out), "-q")
        assert result.exit_code == 0, result.output
        assert result.output.strip().splitlines()[-1] == str(out)
        assert Image.open(out).size == (8, 6)
        args, kwargs = mock_filter.call_args
        assert args == (photo, "synthwave")
        assert kwargs["config"].default_transport == "relay"
        assert callable(kwargs["cancel_check"])

    @patch("pixshop.cli.commands.generate_edited_image")
    def test_retouch_passes_hotspot(self, mock_edit: MagicMock, photo: Path, tmp_path: Path):
        mock_edit.return_value = _result("edit")
        out = tmp_path / "edited.png"
        result = _run_cli(
            "retouch", str(photo), "-p", "remove the cup", "--at", "10", "4.5", "-o", str(out), "-q"
        )
        assert result.exit_code == 0, result.output
        args, _ = mock_edit.call_args
        assert args == (photo, "remove the cup", (10.0, 4.5))

    @patch("pixshop.cli.commands.generate_edited_image")
    def test_retouch_requires_point(self, mock_edit: MagicMock, photo: Path) -> None:
        result = _run_cli("retouch", str(photo), "-p", "remove the cup")
        assert result.exit_code == 2
        mock_edit.assert_not_called()

    @patch("pixshop.cli.commands.generate_placed_image")
    def test_place(self, mock_place: MagicMock, photo: Path, tmp_path: Path) -> None:
        mock_place.return_value = _result("placement")
        lamp = tmp_path / "lamp.png"
        Image.new("RGB", (4, 4)).save(lamp)
        result = _run_cli(
            "place",
            str(photo),
            "--object",
            str(lamp),
            "-p",
            "on the table",
            "--at",
            "3",
            "4",
            "-o",
            str(tmp_path / "placed.png"),
            "-q",
        )
        assert result.exit_code == 0, result.output
        args, _ = mock_place.call_args
        assert args == (photo, lamp, "on the table", (3.0, 4.0))

    @patch("pixshop.cli.commands.generate_adjusted_image")
    def test_adjust_default_output_name(
        self, mock_adjust: MagicMock, photo: Path, tmp_path: Path, monkeypatch
    ) -> None:
        mock_adjust.return_value = _result("adjustment")
        monkeypatch.chdir(tmp_path)
        result = _run_cli("adjust", str(photo), "-p", "warmer light", "-q")
        assert result.exit_code == 0, result.output
        saved = list(tmp_path.glob("pixshop_adjustment_*.png"))
        assert len(saved) == 1

    @patch("pixshop.cli.commands.generate_expanded_image")
    def test_expand(self, mock_expand: MagicMock, photo: Path, tmp_path: Path) -> None:
        mock_expand.return_value = _result("expand")
        result = _run_cli(
            "expand", str(photo), "-d", "LEFT", "--no-preserve", "-o", str(tmp_path / "e.png"), "-q"
        )
        assert result.exit_code == 0, result.output
        args, kwargs = mock_expand.call_args
        assert args == (photo, "left", "")
        assert kwargs["preserve_original"] is False

    def test_expand_rejects_unknown_direction(self, photo: Path) -> None:
        result = _run_cli("expand", str(photo), "-d", "diagonal")
        assert result.exit_code == 2

    @patch("pixshop.cli.commands.generate_from_grid")
    def test_grid(self, mock_grid: MagicMock, photo: Path, tmp_path: Path) -> None:
        mock_grid.return_value = _result("grid", size=(64, 48))
        second = tmp_path / "second.png"
        Image.new("RGB", (4, 4)).save(second)
        out = tmp_path / "scene.png"
        result = _run_cli(
            "grid", str(photo), str(second), "-p", "a cozy kitchen", "--size", "64", "48",
            "-o", str(out), "-q",
        )
        assert result.exit_code == 0, result.output
        args, _ = mock_grid.call_args
        assert args == ([photo, second], "a cozy kitchen", (64, 48))
        assert Image.open(out).size == (64, 48)

    @patch("pixshop.cli.commands.generate_filtered_image")
    def test_transport_and_relay_url_options(
        self, mock_filter: MagicMock, photo: Path, tmp_path: Path
    ) -> None:
        mock_filter.return_value = _result("filter")
        result = _run_cli(
            "filter",
            str(photo),
            "-p",
            "noir",
            "--transport",
            "direct",
            "--api-key",
            "cli-key",
            "--relay-url",
            "http://relay.test/api/generate",
            "-o",
            str(tmp_path / "f.png"),
            "-q",
        )
        assert result.exit_code == 0, result.output
        config = mock_filter.call_args.kwargs["config"]
        assert config.default_transport == "direct"
        assert config.gemini_api_key == "cli-key"
        assert config.relay_url == "http://relay.test/api/generate"

    @patch("pixshop.cli.commands.generate_filtered_image")
    def test_direct_without_key_is_config_error(self, mock_filter: MagicMock, photo: Path):
        result = _run_cli("filter", str(photo), "-p", "noir", "--transport", "direct", "-q")
        assert result.exit_code == EXIT_VALIDATION_OR_CONFIG
        assert "Gemini API key is required" in result.output
        mock_filter.assert_not_called()

    @patch("pixshop.cli.commands.generate_filtered_image")
    def test_relay_down_message(self, mock_filter: MagicMock, photo: Path) -> None:
        mock_filter.side_effect = NetworkError("Failed to connect to pixshop relay.")
        result = _run_cli("filter", str(photo), "-p", "noir", "-q")
        assert result.exit_code == EXIT_API_OR_NETWORK
        assert "pixshop serve" in result.output

    def test_missing_input_file(self, tmp_path: Path) -> None:
        result = _run_cli("filter", str(tmp_path / "nope.png"), "-p", "noir")
        assert result.exit_code == 2

    @pytest.mark.parametrize(
        "exc,code",
        [
            (ValidationError("Prompt cannot be empty", field="filter_prompt"), 2),
            (APIError("Internal server error: blocked", status_code=500), 1),
            (NetworkError("Failed to connect to pixshop relay."), 1),
            (CancellationError("Image generation was cancelled."), 130),
        ],
    )
    @patch("pixshop.cli.commands.generate_filtered_image")
    def test_error_exit_codes(self, mock_filter: MagicMock, exc, code, photo: Path) -> None:
        mock_filter.side_effect = exc
        result = _run_cli("filter", str(photo), "-p", "noir", "-q")
        assert result.exit_code == code


@pytest.mark.unit
class TestCropCommand:
    def test_crop(self, photo: Path, tmp_path: Path) -> None:
        out = tmp_path / "crop.png"
        result = _run_cli("crop", str(photo), "--box", "2", "1", "5", "4", "-o", str(out), "-q")
        assert result.exit_code == 0, result.output
        cropped = Image.open(out)
        assert cropped.size == (5, 4)
        assert cropped.convert("RGB").getpixel((0, 0)) == (200, 10, 10)

    def test_crop_with_display_size(self, photo: Path, tmp_path: Path) -> None:
        out = tmp_path / "crop.png"
        result = _run_cli(
            "crop", str(photo), "--box", "0", "0", "5", "5", "--display-size", "10", "5",
            "-o", str(out), "-q",
        )
        assert result.exit_code == 0, result.output
        assert Image.open(out).size == (10, 10)

    def test_empty_box(self, photo: Path, tmp_path: Path) -> None:
        result = _run_cli("crop", str(photo), "--box", "0", "0", "0", "5", "-q")
        assert result.exit_code == EXIT_VALIDATION_OR_CONFIG
        assert "select an area" in result.output


@pytest.mark.unit
class TestServeAndUi:
    @patch("pixshop.relay.run_server")
    def test_serve(self, mock_run: MagicMock) -> None:
        result = _run_cli(
            "serve",
            "--host",
            "0.0.0.0",
            "--port",
            "9000",
            "--api-key",
            "server-key",
            "--cors-origin",
            "http://a.test",
            "--cors-origin",
            "http://b.test",
        )
        assert result.exit_code == 0, result.output
        config = mock_run.call_args.args[0]
        assert config.gemini_api_key == "server-key"
        assert config.cors_origins == ("http://a.test", "http://b.test")
        assert mock_run.call_args.kwargs == {
            "host": "0.0.0.0",
            "port": 9000,
            "log_level": "info",
        }

    @patch("pixshop.ui.gradio_app.launch")
    def test_ui(self, mock_launch: MagicMock, monkeypatch) -> None:
        # Registered so the values the command writes are undone after the test
        monkeypatch.setenv("PIXSHOP_TRANSPORT", "relay")
        monkeypatch.setenv("GEMINI_API_KEY", "")
        result = _run_cli("ui", "--port", "7999", "--transport", "direct", "--api-key", "k")
        assert result.exit_code == 0, result.output
        mock_launch.assert_called_once_with(server_name=None, server_port=7999, share=False)
        assert os.environ["PIXSHOP_TRANSPORT"] == "direct"
        assert os.environ["GEMINI_API_KEY"] == "k"


@pytest.mark.unit
class TestVersionAndHelp:
    def test_version(self) -> None:
        result = _run_cli("--version")
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self) -> None:
        result = _run_cli("--help")
        for name in ("retouch", "filter", "adjust", "place", "expand", "grid", "crop", "serve"):
            assert name in result.output


@pytest.mark.unit
class TestExitMapping:
    def test_validation_includes_field(self) -> None:
        code, msg = map_exception_to_exit(ValidationError("bad", field="hotspot"))
        assert code == EXIT_VALIDATION_OR_CONFIG
        assert msg == "bad (field: hotspot)"

    def test_configuration(self) -> None:
        assert map_exception_to_exit(ConfigurationError("x"))[0] == EXIT_VALIDATION_OR_CONFIG

    def test_image_processing(self) -> None:
        assert map_exception_to_exit(ImageProcessingError("x"))[0] == EXIT_VALIDATION_OR_CONFIG

    def test_cancelled(self) -> None:
        assert map_exception_to_exit(CancellationError("x")) == (EXIT_CANCELLED, "Cancelled.")

    def test_api_error_adds_status(self) -> None:
        code, msg = map_exception_to_exit(APIError("Rate limit exceeded", status_code=429))
        assert code == EXIT_API_OR_NETWORK
        assert msg == "Rate limit exceeded (HTTP 429)"

    def test_blocked_suggests_rephrasing(self) -> None:
        code, msg = map_exception_to_exit(ContentBlockedError("Request was blocked."))
        assert code == EXIT_API_OR_NETWORK
        assert msg == "Request was blocked. Try rephrasing the instruction."

    def test_refused_suggests_rephrasing(self) -> None:
        exc = GenerationRefusedError("The AI model did not return an image.", finish_reason="")
        assert map_exception_to_exit(exc)[1].endswith("Try rephrasing the instruction.")

    def test_relay_connection_failure_hints_at_serve(self) -> None:
        exc = NetworkError("Failed to connect to pixshop relay.")
        code, msg = map_exception_to_exit(exc, transport="relay")
        assert code == EXIT_API_OR_NETWORK
        assert "pixshop serve" in msg

    def test_direct_connection_failure_has_no_relay_hint(self) -> None:
        exc = NetworkError("Failed to connect to Gemini API.")
        _, msg = map_exception_to_exit(exc, transport="direct")
        assert msg == "Failed to connect to Gemini API."

    def test_relay_without_key_hints_at_server_env(self) -> None:
        exc = APIError("Gemini API key is not configured", status_code=500)
        _, msg = map_exception_to_exit(exc, transport="relay")
        assert msg == (
            "Gemini API key is not configured (HTTP 500) Set GEMINI_API_KEY where the relay runs."
        )

    def test_unexpected(self) -> None:
        assert map_exception_to_exit(RuntimeError("boom")) == (EXIT_API_OR_NETWORK, "boom")


@pytest.mark.unit
class TestCliUtils:
    def test_default_output_path(self) -> None:
        path = default_output_path("filter")
        assert path.startswith("pixshop_filter_")
        assert path.endswith(".png")
        assert len(path) == len("pixshop_filter_YYYYMMDD_HHMMSS.png")

    def test_save_jpeg_drops_alpha(self, tmp_path: Path) -> None:
        out = tmp_path / "nested" / "out.jpg"
        save_image(Image.new("RGBA", (3, 3)), out)
        assert Image.open(out).format == "JPEG"

    def test_unknown_suffix_saves_png(self, tmp_path: Path) -> None:
        out = tmp_path / "out.result"
        save_image(Image.new("RGB", (3, 3)), out)
        assert Image.open(out).format == "PNG"
