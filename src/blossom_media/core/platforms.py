"""Static catalogue of provisioned tools and supported platforms.

Every download URL and file name is spelled out in a lookup table keyed
by :class:`PlatformKey`.  An unsupported host is a missing key, which fails loudly
and early, rather than a malformed URL assembled at runtime.
"""

from __future__ import annotations

import platform as _platform
import sys

from blossom_media.core.models import (
    ArchiveFormat,
    ArtifactSource,
    AssetKind,
    PlatformKey,
    ToolSet,
    ToolSpec,
)
from blossom_media.exceptions import UnsupportedPlatformError


# ---------------------------------------------------------------------------
# Platform keys
# ---------------------------------------------------------------------------

DARWIN_ARM64 = PlatformKey("darwin", "arm64")
DARWIN_X64 = PlatformKey("darwin", "x64")
LINUX_ARM64 = PlatformKey("linux", "arm64")
LINUX_X64 = PlatformKey("linux", "x64")
WIN32_X64 = PlatformKey("win32", "x64")

SUPPORTED_PLATFORMS: tuple[PlatformKey, ...] = (
    DARWIN_ARM64,
    DARWIN_X64,
    LINUX_ARM64,
    LINUX_X64,
    WIN32_X64,
)

SIGNATURE_ENFORCING_OS = "darwin"

_ARCH_ALIASES: dict[str, str] = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "arm64": "arm64",
    "aarch64": "arm64",
}

_OS_ALIASES: dict[str, str] = {
    "darwin": "darwin",
    "linux": "linux",
    "win32": "win32",
    "cygwin": "win32",
}


def detect_platform(
    sys_platform: str | None = None,
    machine: str | None = None,
) -> PlatformKey:
    """Return the :class:`PlatformKey` of the running interpreter.

    Both inputs are overridable for tests.

    Raises
    ------
    UnsupportedPlatformError
        When the OS or architecture is not in the catalogue.
    """
    raw_os = sys_platform if sys_platform is not None else sys.platform
    raw_arch = machine if machine is not None else _platform.machine()

    os_name = _OS_ALIASES.get(raw_os.lower())
    if os_name is None and raw_os.lower().startswith("linux"):
        os_name = "linux"
    arch = _ARCH_ALIASES.get(raw_arch.lower())

    if os_name is None or arch is None:
        raise UnsupportedPlatformError(
            f"Unsupported platform: {raw_os}-{raw_arch}",
            hint="Supported: " + ", ".join(str(p) for p in SUPPORTED_PLATFORMS),
        )

    key = PlatformKey(os_name, arch)
    if key not in SUPPORTED_PLATFORMS:
        raise UnsupportedPlatformError(
            f"Unsupported platform: {key}",
            hint="Supported: " + ", ".join(str(p) for p in SUPPORTED_PLATFORMS),
        )
    return key


# ---------------------------------------------------------------------------
# Video tools: yt-dlp + ffmpeg
# ---------------------------------------------------------------------------

YTDLP_VERSION = "2024.12.13"
FFMPEG_VERSION = "6.1.1"

_YTDLP_RELEASES = f"https://github.com/yt-dlp/yt-dlp/releases/download/{YTDLP_VERSION}"
_FFMPEG_RELEASES = (
    f"https://github.com/eugeneware/ffmpeg-static/releases/download/b{FFMPEG_VERSION}"
)

YTDLP = ToolSpec(
    name="yt-dlp",
    version=YTDLP_VERSION,
    kind=AssetKind.EXECUTABLE,
    sources={
        DARWIN_ARM64: ArtifactSource(f"{_YTDLP_RELEASES}/yt-dlp_macos"),
        DARWIN_X64: ArtifactSource(f"{_YTDLP_RELEASES}/yt-dlp_macos"),
        LINUX_ARM64: ArtifactSource(f"{_YTDLP_RELEASES}/yt-dlp_linux_aarch64"),
        LINUX_X64: ArtifactSource(f"{_YTDLP_RELEASES}/yt-dlp_linux"),
        WIN32_X64: ArtifactSource(f"{_YTDLP_RELEASES}/yt-dlp.exe"),
    },
)

FFMPEG = ToolSpec(
    name="ffmpeg",
    version=FFMPEG_VERSION,
    kind=AssetKind.EXECUTABLE,
    sources={
        DARWIN_ARM64: ArtifactSource(
            f"{_FFMPEG_RELEASES}/ffmpeg-darwin-arm64.gz", ArchiveFormat.GZIP,
        ),
        DARWIN_X64: ArtifactSource(
            f"{_FFMPEG_RELEASES}/ffmpeg-darwin-x64.gz", ArchiveFormat.GZIP,
        ),
        LINUX_ARM64: ArtifactSource(
            f"{_FFMPEG_RELEASES}/ffmpeg-linux-arm64.gz", ArchiveFormat.GZIP,
        ),
        LINUX_X64: ArtifactSource(
            f"{_FFMPEG_RELEASES}/ffmpeg-linux-x64.gz", ArchiveFormat.GZIP,
        ),
        WIN32_X64: ArtifactSource(
            f"{_FFMPEG_RELEASES}/ffmpeg-win32-x64.gz", ArchiveFormat.GZIP,
        ),
    },
)

VIDEO_TOOLS = ToolSet(name="video tools", directory="bin", tools=(YTDLP, FFMPEG))


# ---------------------------------------------------------------------------
# Native imaging library: libvips
# ---------------------------------------------------------------------------

LIBVIPS_VERSION = "1.1.0"
_LIBVIPS_SONAME_VERSION = "8.16.1"

_LIBVIPS_FILENAMES: dict[PlatformKey, str] = {
    DARWIN_ARM64: f"libvips-cpp.{_LIBVIPS_SONAME_VERSION}.dylib",
    DARWIN_X64: f"libvips-cpp.{_LIBVIPS_SONAME_VERSION}.dylib",
    LINUX_ARM64: f"libvips-cpp.so.{_LIBVIPS_SONAME_VERSION}",
    LINUX_X64: f"libvips-cpp.so.{_LIBVIPS_SONAME_VERSION}",
}


def _libvips_source(platform: PlatformKey) -> ArtifactSource:
    pkg = f"sharp-libvips-{platform}"
    return ArtifactSource(
        url=f"https://registry.npmjs.org/@img/{pkg}/-/{pkg}-{LIBVIPS_VERSION}.tgz",
        archive=ArchiveFormat.TARBALL,
        member=f"package/lib/{_LIBVIPS_FILENAMES[platform]}",
    )


LIBVIPS = ToolSpec(
    name="libvips",
    version=LIBVIPS_VERSION,
    kind=AssetKind.LIBRARY,
    sources={key: _libvips_source(key) for key in _LIBVIPS_FILENAMES},
    filenames=_LIBVIPS_FILENAMES,
    package="sharp-libvips",
)

NATIVE_LIBRARIES = ToolSet(name="native libraries", directory="native", tools=(LIBVIPS,))

TOOL_SETS: tuple[ToolSet, ...] = (VIDEO_TOOLS, NATIVE_LIBRARIES)
