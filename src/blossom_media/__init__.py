"""blossom-media — media tool provisioning and frame capture for Blossom.

Provisions yt-dlp, ffmpeg and native imaging libraries, resolves signed
stream URLs, extracts single frames and compresses images for API payloads.
"""

from blossom_media.version import __version__

__all__: list[str] = ["__version__"]
