"""Tests for the command handlers and the CLI error boundary (cli/app.py).

The media toolkit is replaced with a mock so no tool is provisioned and
no process is spawned; ``compress`` runs for real on a generated image.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from blossom_media.cli import exit_codes
from blossom_media.cli.app import cli, main
from blossom_media.core.models import CropRegion, FrameQuality
from blossom_media.exceptions import ProvisioningError, ResolutionError

from conftest import encode, noise_image


@pytest.fixture(autouse=True)
def _data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    monkeypatch.setenv("BLOSSOM_DATA_DIR", str(tmp_path / "data"))
    return tmp_path / "data"


@pytest.fixture
def toolkit() -> MagicMock:
    fake = MagicMock()
    with patch("blossom_media.toolkit.MediaToolkit.from_config", return_value=fake):
        yield fake


# ---------------------------------------------------------------------------
# provision
# ---------------------------------------------------------------------------

class TestProvision:
    def test_video_tools_only(self, toolkit: MagicMock) -> None:
        toolkit.video_tools.paths.return_value = {"ffmpeg": Path("/d/bin/ffmpeg")}

        assert main(["provision"]) == exit_codes.SUCCESS
        toolkit.ensure_native_libraries.assert_not_called()

    def test_native_flag(self, toolkit: MagicMock) -> None:
        toolkit.video_tools.paths.return_value = {}
        toolkit.ensure_native_libraries.return_value = {"libvips": Path("/d/native/x")}

        assert main(["provision", "--native"]) == exit_codes.SUCCESS
        toolkit.ensure_native_libraries.assert_called_once_with()

    def test_failure_propagates_to_boundary(self, toolkit: MagicMock) -> None:
        toolkit.video_tools.paths.side_effect = ProvisioningError("offline")

        with pytest.raises(ProvisioningError):
            main(["provision"])


# ---------------------------------------------------------------------------
# frame
# ---------------------------------------------------------------------------

class TestFrame:
    def test_saves_into_frame_store(self, toolkit: MagicMock) -> None:
        toolkit.capture_frame.return_value = "abc-1000-1.png"
        toolkit.frames.path_for.return_value = Path("/d/frames/abc-1000-1.png")

        assert main(["frame", "abc", "1"]) == exit_codes.SUCCESS
        toolkit.capture_frame.assert_called_once_with("abc", 1.0, FrameQuality.ARCHIVAL, None)

    def test_output_path_writes_bytes(self, toolkit: MagicMock, tmp_path: Path) -> None:
        toolkit.extractor.extract_frame.return_value = b"jpeg bytes"
        out = tmp_path / "frame.jpg"

        code = main(["frame", "abc", "2.5", "--quality", "api", "-o", str(out)])

        assert code == exit_codes.SUCCESS
        assert out.read_bytes() == b"jpeg bytes"
        toolkit.extractor.extract_frame.assert_called_once_with("abc", 2.5, FrameQuality.API)
        toolkit.cropper.crop.assert_not_called()

    def test_output_path_with_crop(self, toolkit: MagicMock, tmp_path: Path) -> None:
        toolkit.extractor.extract_frame.return_value = b"full"
        toolkit.cropper.crop.return_value = b"cropped"
        out = tmp_path / "frame.png"

        main(["frame", "abc", "3", "--crop", "0.25,0.25,0.5,0.5", "-o", str(out)])

        assert out.read_bytes() == b"cropped"
        toolkit.cropper.crop.assert_called_once_with(b"full", CropRegion(0.25, 0.25, 0.5, 0.5))


# ---------------------------------------------------------------------------
# compress
# ---------------------------------------------------------------------------

class TestCompress:
    def test_compresses_and_caches(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        source = tmp_path / "shot.png"
        source.write_bytes(encode(noise_image(300, 300), "PNG"))
        limit = source.stat().st_size // 10

        assert main(["compress", str(source), "--limit", str(limit)]) == exit_codes.SUCCESS
        assert "Compressed" in capsys.readouterr().err

        main(["compress", str(source), "--limit", str(limit)])
        assert "Cached artifact" in capsys.readouterr().err

    def test_small_image(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        source = tmp_path / "tiny.png"
        source.write_bytes(encode(noise_image(4, 4), "PNG"))

        main(["compress", str(source)])

        assert "Already within budget" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# Error boundary
# ---------------------------------------------------------------------------

class TestErrorBoundary:
    def test_success_exit(self) -> None:
        with patch("blossom_media.cli.app.main", return_value=exit_codes.SUCCESS):
            with pytest.raises(SystemExit) as exc_info:
                cli()
        assert exc_info.value.code == exit_codes.SUCCESS

    def test_domain_error_prints_hint(self, capsys: pytest.CaptureFixture[str]) -> None:
        error = ResolutionError("Failed to get video stream URL", hint="try again")
        with patch("blossom_media.cli.app.main", side_effect=error):
            with pytest.raises(SystemExit) as exc_info:
                cli()

        assert exc_info.value.code == exit_codes.GENERAL_ERROR
        err = capsys.readouterr().err
        assert "Failed to get video stream URL" in err
        assert "try again" in err

    def test_keyboard_interrupt(self) -> None:
        with patch("blossom_media.cli.app.main", side_effect=KeyboardInterrupt):
            with pytest.raises(SystemExit) as exc_info:
                cli()
        assert exc_info.value.code == exit_codes.KEYBOARD_INTERRUPT

    def test_unexpected_error(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("blossom_media.cli.app.main", side_effect=RuntimeError("kaboom")):
            with pytest.raises(SystemExit) as exc_info:
                cli()

        assert exc_info.value.code == exit_codes.UNEXPECTED_ERROR
        assert "RuntimeError: kaboom" in capsys.readouterr().err

    def test_missing_image_is_clean_error(self, tmp_path: Path) -> None:
        with patch("sys.argv", ["blossom-media", "compress", str(tmp_path / "nope.png")]):
            with pytest.raises(SystemExit) as exc_info:
                cli()
        assert exc_info.value.code == exit_codes.GENERAL_ERROR
