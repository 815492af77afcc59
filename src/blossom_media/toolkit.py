"""Wire every component from one :class:`~blossom_media.config.MediaConfig`.

The surrounding application builds a single :class:`MediaToolkit` per
process, so the stream-URL cache and the validated tool paths are shared
by all request handlers.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from blossom_media.config import MediaConfig
from blossom_media.core.models import CropRegion, FrameQuality, PlatformKey
from blossom_media.core.platforms import NATIVE_LIBRARIES, VIDEO_TOOLS
from blossom_media.core.protocols import Downloader, ProcessRunner, ProgressCallback
from blossom_media.core.url_cache import StreamUrlCache
from blossom_media.infra.asset_provisioner import AssetProvisioner, ProvisionedTools
from blossom_media.infra.frame_extractor import FrameExtractor
from blossom_media.infra.frame_store import FrameStore
from blossom_media.infra.http_downloader import RequestsDownloader
from blossom_media.infra.image_compressor import ImageCompressor
from blossom_media.infra.pillow_codec import PillowImageCodec
from blossom_media.infra.process_runner import SubprocessRunner
from blossom_media.infra.region_cropper import RegionCropper
from blossom_media.infra.stream_resolver import StreamUrlResolver


@dataclass(frozen=True, slots=True)
class MediaToolkit:
    """All media components sharing one config, cache and tool set."""

    config: MediaConfig
    provisioner: AssetProvisioner
    video_tools: ProvisionedTools
    resolver: StreamUrlResolver
    extractor: FrameExtractor
    compressor: ImageCompressor
    cropper: RegionCropper
    frames: FrameStore

    @classmethod
    def from_config(
        cls,
        config: MediaConfig,
        *,
        downloader: Downloader | None = None,
        runner: ProcessRunner | None = None,
        platform: PlatformKey | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> MediaToolkit:
        runner = runner or SubprocessRunner()
        provisioner = AssetProvisioner(
            config.data_dir,
            downloader or RequestsDownloader(),
            runner,
            platform=platform,
            download_timeout=config.download_timeout,
            progress_callback=progress_callback,
        )
        video_tools = ProvisionedTools(provisioner, VIDEO_TOOLS)
        resolver = StreamUrlResolver(
            lambda: video_tools.path("yt-dlp"),
            runner,
            StreamUrlCache(ttl=config.stream_url_ttl),
            timeout=config.resolve_timeout,
        )
        extractor = FrameExtractor(
            lambda: video_tools.path("ffmpeg"),
            resolver,
            runner,
            timeout=config.process_timeout,
        )
        codec = PillowImageCodec()
        return cls(
            config=config,
            provisioner=provisioner,
            video_tools=video_tools,
            resolver=resolver,
            extractor=extractor,
            compressor=ImageCompressor(codec, size_limit=config.image_size_limit),
            cropper=RegionCropper(codec),
            frames=FrameStore(config.frames_dir),
        )

    def ensure_native_libraries(self) -> dict[str, Path]:
        return self.provisioner.ensure(NATIVE_LIBRARIES)

    def capture_frame(
        self,
        video_id: str,
        timestamp_seconds: float,
        quality: FrameQuality = FrameQuality.ARCHIVAL,
        region: CropRegion | None = None,
    ) -> str:
        """Extract, optionally crop, and store a frame; return its file name."""
        data = self.extractor.extract_frame(video_id, timestamp_seconds, quality)
        if region is not None:
            data = self.cropper.crop(data, region)
        return self.frames.save(video_id, timestamp_seconds, data, quality=quality)
