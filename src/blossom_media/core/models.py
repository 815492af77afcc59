"""Domain models for blossom-media.

All models are **frozen** dataclasses or string enums: immutable value
objects with no behaviour beyond validation and data access.  They carry
zero I/O and no dependencies on external packages.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from blossom_media.exceptions import InvalidCropRegionError


# ---------------------------------------------------------------------------
# Platform
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class PlatformKey:
    """Host operating system and CPU architecture.

    ``os`` follows :data:`sys.platform` naming (``darwin``, ``linux``,
    ``win32``); ``arch`` is normalised to ``x64`` or ``arm64``.
    """

    os: str
    arch: str

    def __str__(self) -> str:
        return f"{self.os}-{self.arch}"

    @property
    def executable_suffix(self) -> str:
        """``".exe"`` on Windows, empty elsewhere."""
        return ".exe" if self.os == "win32" else ""


# ---------------------------------------------------------------------------
# Provisioned assets
# ---------------------------------------------------------------------------

class AssetKind(str, Enum):
    """What a provisioned file is used as."""

    EXECUTABLE = "executable"
    LIBRARY = "library"


class ArchiveFormat(str, Enum):
    """How a downloaded artifact is packed."""

    NONE = "none"
    GZIP = "gzip"
    TARBALL = "tarball"


@dataclass(frozen=True, slots=True)
class ArtifactSource:
    """Where one platform's artifact is downloaded from."""

    url: str
    """Direct download URL."""

    archive: ArchiveFormat = ArchiveFormat.NONE
    """Packing of the downloaded payload."""

    member: str | None = None
    """Path of the single file to extract when ``archive`` is a tarball."""


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """A versioned executable or native library and its per-platform sources."""

    name: str
    """Logical tool name, also the manifest key."""

    version: str
    """Version currently required by the application."""

    kind: AssetKind
    """Executable or dynamic library."""

    sources: Mapping[PlatformKey, ArtifactSource]
    """Static lookup table from platform to artifact source."""

    filenames: Mapping[PlatformKey, str] = field(default_factory=dict)
    """Per-platform file name of a library inside its ``lib`` directory."""

    package: str | None = None
    """Package directory name for libraries (``<dir>/<package>/lib/...``)."""

    def supports(self, platform: PlatformKey) -> bool:
        return platform in self.sources


@dataclass(frozen=True, slots=True)
class ToolSet:
    """A group of tools provisioned, versioned and replaced together."""

    name: str
    """Human-readable label used in logs."""

    directory: str
    """Sub-directory of the data dir holding the assets and manifest."""

    tools: tuple[ToolSpec, ...]

    @property
    def required_versions(self) -> dict[str, str]:
        return {tool.name: tool.version for tool in self.tools}


@dataclass(frozen=True, slots=True)
class VersionManifest:
    """Tool name → installed version, persisted as a flat JSON object."""

    tool_versions: Mapping[str, str]

    def matches(self, required: Mapping[str, str]) -> bool:
        """Return ``True`` when every required tool is recorded at its version."""
        return all(
            self.tool_versions.get(name) == version
            for name, version in required.items()
        )

    def to_json(self) -> str:
        return json.dumps(dict(self.tool_versions), indent=2, sort_keys=True)

    @classmethod
    def from_json(cls, text: str) -> VersionManifest:
        """Parse a manifest.

        Raises
        ------
        ValueError
            When *text* is not a JSON object of string values.
        """
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("manifest must be a JSON object")
        if not all(
            isinstance(key, str) and isinstance(value, str)
            for key, value in data.items()
        ):
            raise ValueError("manifest entries must be strings")
        return cls(tool_versions=dict(data))


# ---------------------------------------------------------------------------
# Stream URLs and frames
# ---------------------------------------------------------------------------

class QualityTier(str, Enum):
    """Target resolution when resolving a stream URL."""

    API = "api"
    ARCHIVAL = "archival"

    @property
    def format_selector(self) -> str:
        """yt-dlp ``-f`` selector yielding a single direct URL."""
        if self is QualityTier.API:
            return "best[height<=720]/bestvideo[height<=720]"
        return "bestvideo[height<=1080]/best[height<=1080]/best"


class FrameQuality(str, Enum):
    """Encoding profile of an extracted frame."""

    API = "api"
    ARCHIVAL = "archival"

    @property
    def tier(self) -> QualityTier:
        return QualityTier(self.value)

    @property
    def media_type(self) -> str:
        return "image/jpeg" if self is FrameQuality.API else "image/png"

    @property
    def extension(self) -> str:
        return "jpg" if self is FrameQuality.API else "png"


@dataclass(frozen=True, slots=True)
class StreamUrlCacheEntry:
    """A resolved URL and the wall-clock second it stops being usable."""

    url: str
    expires_at: float

    def is_fresh(self, now: float) -> bool:
        return now < self.expires_at


class FailureKind(str, Enum):
    """Classification of a transcoder failure."""

    AUTH_EXPIRED = "auth_expired"
    OTHER = "other"


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

class ImageMediaType(str, Enum):
    """Image media types accepted by the upstream API."""

    JPEG = "image/jpeg"
    PNG = "image/png"
    GIF = "image/gif"
    WEBP = "image/webp"

    @property
    def extension(self) -> str:
        return self.value.split("/", 1)[1]


@dataclass(frozen=True, slots=True)
class CompressionAttempt:
    """One ``(scale, quality)`` point of the compression search."""

    scale: float
    quality: int


@dataclass(frozen=True, slots=True)
class CompressionResult:
    """Outcome of :meth:`ImageCompressor.compress`."""

    data: bytes
    media_type: ImageMediaType
    original_size: int
    attempt: CompressionAttempt | None
    """The winning attempt, or ``None`` when the input was returned as-is."""

    within_limit: bool
    """``False`` only when the last-resort encode is still over budget."""

    last_resort: bool = False

    @property
    def was_compressed(self) -> bool:
        return self.attempt is not None


_EDGE_TOLERANCE = 1e-9
"""Float slack for regions that end exactly on the right or bottom edge."""


@dataclass(frozen=True, slots=True)
class CropRegion:
    """A sub-rectangle expressed in the unit interval of an image's size."""

    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        for name in ("x", "y", "width", "height"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise InvalidCropRegionError(
                    f"Crop {name} must be within [0, 1], got {value}.",
                )
        if self.width <= 0 or self.height <= 0:
            raise InvalidCropRegionError(
                "Crop width and height must be greater than zero.",
            )
        if (
            self.x + self.width > 1.0 + _EDGE_TOLERANCE
            or self.y + self.height > 1.0 + _EDGE_TOLERANCE
        ):
            raise InvalidCropRegionError(
                f"Crop region runs past the image edge: x+width={self.x + self.width:g}, "
                f"y+height={self.y + self.height:g}.",
                hint="Keep x+width and y+height at most 1.",
            )

    @classmethod
    def full(cls) -> CropRegion:
        return cls(0.0, 0.0, 1.0, 1.0)


@dataclass(frozen=True, slots=True)
class ApiImage:
    """Base64 image payload handed to the upstream LLM client."""

    base64: str
    media_type: ImageMediaType
    was_compressed: bool
    original_size: int
    """Source size in bytes; ``0`` when served from the artifact cache."""

    final_size: int
