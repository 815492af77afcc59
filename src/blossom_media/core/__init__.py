"""Core layer — pure models, static tables and search logic.

Rules
-----
* No ``print()`` calls.
* No subprocess, network or filesystem I/O.
* No imports from ``cli`` or ``infra``.
"""

from blossom_media.core.failure_classifier import classify_failure
from blossom_media.core.models import (
    ApiImage,
    CompressionAttempt,
    CompressionResult,
    CropRegion,
    FailureKind,
    FrameQuality,
    ImageMediaType,
    PlatformKey,
    QualityTier,
    ToolSet,
    ToolSpec,
    VersionManifest,
)
from blossom_media.core.platforms import NATIVE_LIBRARIES, VIDEO_TOOLS, detect_platform
from blossom_media.core.url_cache import StreamUrlCache

__all__: list[str] = [
    "ApiImage",
    "CompressionAttempt",
    "CompressionResult",
    "CropRegion",
    "FailureKind",
    "FrameQuality",
    "ImageMediaType",
    "NATIVE_LIBRARIES",
    "PlatformKey",
    "QualityTier",
    "StreamUrlCache",
    "ToolSet",
    "ToolSpec",
    "VIDEO_TOOLS",
    "VersionManifest",
    "classify_failure",
    "detect_platform",
]
