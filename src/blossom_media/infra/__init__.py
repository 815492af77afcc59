"""Infrastructure layer — external system integration.

This layer wraps every interaction with the network (``requests``), child
processes (yt-dlp, ffmpeg, codesign), the image library (Pillow) and the
filesystem.  Every raw third-party exception is caught here and re-raised
as a :class:`~blossom_media.exceptions.BlossomMediaError` subclass.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
* Diagnostics go through :mod:`logging` only.
"""

from blossom_media.infra.asset_provisioner import AssetProvisioner, ProvisionedTools
from blossom_media.infra.frame_extractor import FrameExtractor
from blossom_media.infra.frame_store import FrameStore
from blossom_media.infra.http_downloader import RequestsDownloader
from blossom_media.infra.image_compressor import (
    ImageCompressor,
    compressed_path,
    media_type_from_filename,
)
from blossom_media.infra.pillow_codec import PillowImageCodec
from blossom_media.infra.process_runner import SubprocessRunner
from blossom_media.infra.region_cropper import RegionCropper
from blossom_media.infra.stream_resolver import StreamUrlResolver

__all__: list[str] = [
    "AssetProvisioner",
    "FrameExtractor",
    "FrameStore",
    "ImageCompressor",
    "PillowImageCodec",
    "ProvisionedTools",
    "RegionCropper",
    "RequestsDownloader",
    "StreamUrlResolver",
    "SubprocessRunner",
    "compressed_path",
    "media_type_from_filename",
]
