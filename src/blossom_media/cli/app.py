"""CLI application entry point and command routing for blossom-media.

This module is the **sole error boundary** of the command line.  It
catches :class:`~blossom_media.exceptions.BlossomMediaError`,
``KeyboardInterrupt`` and any unexpected ``Exception``, renders a short
message and returns a well-defined exit code.

Commands
--------
* ``blossom-media provision [--native]``
* ``blossom-media frame VIDEO_ID TIMESTAMP [--quality] [--crop] [--output]``
* ``blossom-media compress PATH [--limit]``
* ``blossom-media doctor``
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from blossom_media.cli import exit_codes
from blossom_media.cli.console import configure_logging, console
from blossom_media.core.models import CropRegion, FrameQuality
from blossom_media.exceptions import BlossomMediaError
from blossom_media.version import __version__


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def parse_crop(text: str) -> CropRegion:
    """Parse ``"x,y,w,h"`` in the unit interval into a :class:`CropRegion`."""
    parts = [part.strip() for part in text.split(",")]
    if len(parts) != 4:
        raise argparse.ArgumentTypeError("crop must be four numbers: x,y,width,height")
    try:
        x, y, width, height = (float(part) for part in parts)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid crop value: {exc}") from exc
    try:
        return CropRegion(x, y, width, height)
    except BlossomMediaError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blossom-media",
        description="Provision media tools, capture video frames and compress images.",
    )
    parser.add_argument(
        "-V", "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging.",
    )
    sub = parser.add_subparsers(dest="command")

    provision = sub.add_parser("provision", help="Download yt-dlp and ffmpeg if needed.")
    provision.add_argument(
        "--native", action="store_true", help="Also provision native imaging libraries.",
    )

    frame = sub.add_parser("frame", help="Capture one frame of a video.")
    frame.add_argument("video_id", help="YouTube video identifier.")
    frame.add_argument("timestamp", type=float, help="Position in seconds.")
    frame.add_argument(
        "--quality",
        choices=[q.value for q in FrameQuality],
        default=FrameQuality.ARCHIVAL.value,
        help="archival (lossless PNG) or api (compact JPEG).",
    )
    frame.add_argument("--crop", type=parse_crop, default=None, help="x,y,width,height in 0..1.")
    frame.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Write the frame here instead of the frames directory.",
    )

    compress = sub.add_parser("compress", help="Compress an image below the API budget.")
    compress.add_argument("path", type=Path)
    compress.add_argument("--limit", type=int, default=None, help="Byte budget.")

    sub.add_parser("doctor", help="Run environment diagnostics.")
    return parser


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------

def _handle_provision(native: bool) -> int:
    from blossom_media.cli.progress import RichProgressHook
    from blossom_media.config import MediaConfig
    from blossom_media.toolkit import MediaToolkit

    config = MediaConfig.from_env()
    with RichProgressHook() as hook:
        toolkit = MediaToolkit.from_config(config, progress_callback=hook)
        paths = dict(toolkit.video_tools.paths())
        if native:
            paths.update(toolkit.ensure_native_libraries())

    for name, path in paths.items():
        console.print(f"[bold]{name}[/bold]  {path}")
    return exit_codes.SUCCESS


def _handle_frame(
    video_id: str,
    timestamp: float,
    quality: FrameQuality,
    region: CropRegion | None,
    output: Path | None,
) -> int:
    from blossom_media.config import MediaConfig
    from blossom_media.toolkit import MediaToolkit

    toolkit = MediaToolkit.from_config(MediaConfig.from_env())
    console.print(f"[bold]Capturing[/bold] {video_id} at {timestamp}s ({quality.value})")

    if output is None:
        filename = toolkit.capture_frame(video_id, timestamp, quality, region)
        console.print(f"[bold green]Saved[/bold green] {toolkit.frames.path_for(filename)}")
        return exit_codes.SUCCESS

    data = toolkit.extractor.extract_frame(video_id, timestamp, quality)
    if region is not None:
        data = toolkit.cropper.crop(data, region)
    try:
        output.write_bytes(data)
    except OSError as exc:
        raise BlossomMediaError(f"Cannot write {output}: {exc}") from exc
    console.print(f"[bold green]Saved[/bold green] {output}")
    return exit_codes.SUCCESS


def _handle_compress(path: Path, limit: int | None) -> int:
    from blossom_media.config import MediaConfig
    from blossom_media.infra.image_compressor import ImageCompressor
    from blossom_media.infra.pillow_codec import PillowImageCodec

    config = MediaConfig.from_env()
    compressor = ImageCompressor(PillowImageCodec(), size_limit=config.image_size_limit)
    data, media_type, result = compressor.compress_file(path, limit)

    if result is None:
        console.print(f"Cached artifact: {len(data)} bytes ({media_type.value})")
    elif not result.was_compressed:
        console.print(f"Already within budget: {len(data)} bytes ({media_type.value})")
    else:
        console.print(
            f"Compressed {result.original_size} -> {len(data)} bytes ({media_type.value})"
        )
        if not result.within_limit:
            console.print("[yellow]Still over budget after the last-resort encode.[/yellow]")
    return exit_codes.SUCCESS


def _handle_doctor() -> int:
    from blossom_media.cli.doctor import run_doctor

    return run_doctor()


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Run the blossom-media CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.

    Returns
    -------
    int
        OS process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return exit_codes.SUCCESS

    configure_logging(args.verbose)

    if args.command == "provision":
        return _handle_provision(args.native)
    if args.command == "frame":
        return _handle_frame(
            args.video_id,
            args.timestamp,
            FrameQuality(args.quality),
            args.crop,
            args.output,
        )
    if args.command == "compress":
        return _handle_compress(args.path, args.limit)
    return _handle_doctor()


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point."""
    try:
        code = main()
        sys.exit(code)
    except BlossomMediaError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {exc.hint}")
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {exc}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
