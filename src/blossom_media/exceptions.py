"""Custom exception hierarchy for blossom-media.

All exceptions that cross layer boundaries must inherit from
:class:`BlossomMediaError`.  Raw third-party exceptions (``requests``,
``PIL``, ``subprocess``, ``tarfile``) must NEVER propagate beyond the
infrastructure layer; they are caught and re-raised as a typed
subclass defined here.

Hierarchy
---------
BlossomMediaError
├── ProvisioningError
│   └── UnsupportedPlatformError
├── ProcessExecutionError
├── ResolutionError
├── ExtractionError
│   └── AuthorizationExpiredError
├── InvalidTimestampError
├── MissingDependencyError
└── ImageProcessingError
    ├── InvalidCropRegionError
    └── ImageSourceMissingError
"""

from __future__ import annotations

RETRY_HINT = "Translation unavailable right now, try again."


class BlossomMediaError(Exception):
    """Base exception for all blossom-media errors.

    Every failure surfaced to the application boundary maps to a subclass
    of this exception so the caller can render a clean message without
    leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Provisioning ----------------------------------------------------------

class ProvisioningError(BlossomMediaError):
    """Raised when a binary or native library cannot be provisioned."""


class UnsupportedPlatformError(ProvisioningError):
    """Raised when the host OS / architecture has no catalogued artifact."""


# --- Subprocess execution --------------------------------------------------

class ProcessExecutionError(BlossomMediaError):
    """Raised when a child process cannot be launched or times out."""


# --- Stream URL resolution -------------------------------------------------

class ResolutionError(BlossomMediaError):
    """Raised when yt-dlp exits non-zero or prints no URL."""


# --- Frame extraction ------------------------------------------------------

class ExtractionError(BlossomMediaError):
    """Raised when ffmpeg fails to produce a frame."""

    def __init__(
        self,
        message: str,
        *,
        stderr: str = "",
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.stderr: str = stderr
        """Verbatim diagnostic output of the transcoder."""


class AuthorizationExpiredError(ExtractionError):
    """Raised when the signed stream URL was rejected by the remote host."""


class InvalidTimestampError(BlossomMediaError, ValueError):
    """Raised when a negative timestamp is requested."""


# --- Environment ---------------------------------------------------------

class MissingDependencyError(BlossomMediaError):
    """Raised when an optional runtime dependency is not installed."""


# --- Images ----------------------------------------------------------------

class ImageProcessingError(BlossomMediaError):
    """Raised when an image buffer cannot be decoded or encoded."""


class InvalidCropRegionError(ImageProcessingError, ValueError):
    """Raised when a crop region is out of range or has zero area."""


class ImageSourceMissingError(ImageProcessingError):
    """Raised when the image file to compress does not exist."""
