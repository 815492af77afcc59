"""``blossom-media doctor`` — environment diagnostics command.

Gathers host information and renders a table summarising whether the
runtime environment can provision and run the media tools.  No
provisioning or downloading happens here; manifests are only read.
"""

from __future__ import annotations

import platform
import sys

from blossom_media.cli import exit_codes
from blossom_media.cli.console import console
from blossom_media.config import MediaConfig
from blossom_media.core.models import PlatformKey, ToolSet
from blossom_media.core.platforms import NATIVE_LIBRARIES, VIDEO_TOOLS, detect_platform
from blossom_media.exceptions import UnsupportedPlatformError
from blossom_media.infra.asset_provisioner import AssetProvisioner
from blossom_media.infra.http_downloader import RequestsDownloader
from blossom_media.infra.process_runner import SubprocessRunner
from blossom_media.version import __version__

Check = tuple[str, str, str]


# ---------------------------------------------------------------------------
# Diagnostic collectors
# ---------------------------------------------------------------------------

def _python_version_check() -> Check:
    version = platform.python_version()
    ok = sys.version_info[:2] >= (3, 10)
    status = "[green]OK[/green]" if ok else "[red]FAIL (>=3.10 required)[/red]"
    return "Python", version, status


def _pillow_check() -> Check:
    try:
        from PIL import __version__ as pil_version
    except ImportError:
        return "Pillow", "NOT INSTALLED", "[red]FAIL[/red]"
    return "Pillow", pil_version, "[green]OK[/green]"


def _platform_check() -> tuple[Check, PlatformKey | None]:
    try:
        key = detect_platform()
    except UnsupportedPlatformError as exc:
        return ("Platform", str(exc), "[red]FAIL[/red]"), None
    return ("Platform", str(key), "[green]OK[/green]"), key


def _tool_set_checks(
    provisioner: AssetProvisioner,
    tool_set: ToolSet,
    key: PlatformKey,
    *,
    required: bool,
) -> list[Check]:
    """One row per tool: installed version versus required version."""
    missing_status = "[red]FAIL[/red]" if required else "[yellow]WARN[/yellow]"
    unsupported = [tool.name for tool in tool_set.tools if not tool.supports(key)]
    if unsupported:
        return [(name, "unsupported on this platform", missing_status) for name in unsupported]

    manifest = provisioner.read_manifest(tool_set)
    paths = provisioner.expected_paths(tool_set)
    rows: list[Check] = []
    for tool in tool_set.tools:
        installed = manifest.tool_versions.get(tool.name) if manifest else None
        present = paths[tool.name].is_file()
        if installed == tool.version and present:
            rows.append((tool.name, tool.version, "[green]OK[/green]"))
        elif present and installed:
            rows.append((tool.name, f"{installed} (need {tool.version})", "[yellow]STALE[/yellow]"))
        else:
            rows.append((tool.name, "not provisioned", "[yellow]WARN[/yellow]"))
    return rows


def _status_plain(status: str) -> str:
    """Convert rich-markup status to plain text."""
    for word in ("FAIL", "STALE", "WARN", "OK"):
        if word in status:
            return word
    return status


def _print_plain_table(checks: list[Check]) -> None:
    print("\nblossom-media doctor", file=sys.stderr)
    print("=" * 64, file=sys.stderr)
    print(f"{'Component':<14} {'Value':<38} {'Status':<8}", file=sys.stderr)
    print("-" * 64, file=sys.stderr)
    for label, value, status in checks:
        print(f"{label:<14} {value:<38} {_status_plain(status):<8}", file=sys.stderr)
    print(file=sys.stderr)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def run_doctor(config: MediaConfig | None = None) -> int:
    """Execute all diagnostic checks and render a summary table.

    Unprovisioned tools are only a warning: they download on first use.

    Returns
    -------
    int
        :data:`exit_codes.SUCCESS` when no check failed,
        :data:`exit_codes.GENERAL_ERROR` otherwise.
    """
    config = config or MediaConfig.from_env()
    platform_row, key = _platform_check()
    checks: list[Check] = [
        ("blossom-media", __version__, "[green]OK[/green]"),
        _python_version_check(),
        _pillow_check(),
        platform_row,
        ("Data dir", str(config.data_dir), "[green]OK[/green]"),
    ]

    if key is not None:
        provisioner = AssetProvisioner(
            config.data_dir, RequestsDownloader(), SubprocessRunner(), platform=key,
        )
        checks += _tool_set_checks(provisioner, VIDEO_TOOLS, key, required=True)
        checks += _tool_set_checks(provisioner, NATIVE_LIBRARIES, key, required=False)

    has_failure = any("FAIL" in status for _, _, status in checks)

    try:
        from rich.table import Table
    except ModuleNotFoundError:
        _print_plain_table(checks)
    else:
        table = Table(
            title="blossom-media doctor",
            show_header=True,
            header_style="bold cyan",
            border_style="dim",
        )
        table.add_column("Component", style="bold", min_width=14)
        table.add_column("Value", min_width=20)
        table.add_column("Status", justify="center", min_width=8)
        for label, value, status in checks:
            table.add_row(label, value, status)
        console.print()
        console.print(table)
        console.print()

    if has_failure:
        console.print("[bold red]Some checks failed.[/bold red]")
        return exit_codes.GENERAL_ERROR

    console.print("[bold green]All checks passed.[/bold green]")
    return exit_codes.SUCCESS
