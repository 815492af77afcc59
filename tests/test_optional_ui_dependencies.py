"""Regression tests for the optional rich dependency.

Bootstrap commands must keep working when rich is missing; only the
progress display fails, and it fails with a typed error.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from blossom_media.cli import exit_codes
from blossom_media.cli.app import main
from blossom_media.cli.console import configure_logging, console
from blossom_media.core.platforms import LINUX_X64
from blossom_media.exceptions import MissingDependencyError


def _hide_rich(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("rich", "rich.console", "rich.table", "rich.progress", "rich.logging"):
        monkeypatch.setitem(sys.modules, name, None)


def test_help_works_without_rich(monkeypatch: pytest.MonkeyPatch) -> None:
    _hide_rich(monkeypatch)

    with pytest.raises(SystemExit) as exc_info:
        main(["--help"])
    assert exc_info.value.code == 0


def test_version_works_without_rich(monkeypatch: pytest.MonkeyPatch) -> None:
    _hide_rich(monkeypatch)

    with pytest.raises(SystemExit) as exc_info:
        main(["--version"])
    assert exc_info.value.code == 0


def test_doctor_works_without_rich(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    _hide_rich(monkeypatch)
    monkeypatch.setenv("BLOSSOM_DATA_DIR", str(tmp_path))

    with patch("blossom_media.cli.doctor.detect_platform", return_value=LINUX_X64):
        code = main(["doctor"])

    assert code == exit_codes.SUCCESS
    err = capsys.readouterr().err
    assert "blossom-media doctor" in err
    assert "WARN" in err


def test_console_falls_back_to_plain_print(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    _hide_rich(monkeypatch)

    console.print("plain message")

    assert "plain message" in capsys.readouterr().err


def test_logging_falls_back_without_rich(monkeypatch: pytest.MonkeyPatch) -> None:
    _hide_rich(monkeypatch)
    basic_config = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: basic_config.append(kw))

    configure_logging(verbose=True)

    assert basic_config[0]["level"] == logging.DEBUG
    assert "handlers" not in basic_config[0]


def test_progress_hook_errors_cleanly_when_rich_missing(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _hide_rich(monkeypatch)
    from blossom_media.cli.progress import RichProgressHook

    with pytest.raises(MissingDependencyError, match="rich is not installed"):
        RichProgressHook()
