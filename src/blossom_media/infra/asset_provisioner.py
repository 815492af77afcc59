"""Provision versioned executables and native libraries on the host.

A :class:`~blossom_media.core.models.ToolSet` is always handled as a
unit: when any tool is missing or at the wrong version, every tool in the
set is downloaded again and the manifest is rewritten last.  A failure
part-way leaves the previous manifest in place, so the next run retries
from scratch instead of trusting a half-provisioned directory.

Rules
-----
* No partial manifest updates.
* The manifest is replaced atomically, only after every tool succeeded.
* Temporary download files never survive a run.
"""

from __future__ import annotations

import gzip
import logging
import os
import tarfile
import zlib
from pathlib import Path

from blossom_media.core.models import (
    ArchiveFormat,
    ArtifactSource,
    AssetKind,
    PlatformKey,
    ToolSet,
    ToolSpec,
    VersionManifest,
)
from blossom_media.core.platforms import SIGNATURE_ENFORCING_OS, detect_platform
from blossom_media.core.protocols import Downloader, ProcessRunner, ProgressCallback
from blossom_media.exceptions import (
    ProcessExecutionError,
    ProvisioningError,
    UnsupportedPlatformError,
)

logger = logging.getLogger(__name__)

MANIFEST_NAME = "versions.json"
_EXECUTABLE_MODE = 0o755
_CODESIGN_TIMEOUT = 30.0


class AssetProvisioner:
    """Guarantee that a tool set exists on disk at its required versions.

    Parameters
    ----------
    root:
        Application data directory; each tool set lives in its own
        sub-directory below it.
    downloader:
        Any object satisfying the :class:`Downloader` protocol.
    runner:
        Process runner used for ``codesign`` on macOS.
    platform:
        Host platform; detected from the interpreter when omitted.
    download_timeout:
        Per-download timeout in seconds.
    progress_callback:
        Optional hook forwarded to every download.
    """

    def __init__(
        self,
        root: Path,
        downloader: Downloader,
        runner: ProcessRunner,
        *,
        platform: PlatformKey | None = None,
        download_timeout: float = 120.0,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self._root: Path = root
        self._downloader: Downloader = downloader
        self._runner: ProcessRunner = runner
        self._platform: PlatformKey | None = platform
        self._download_timeout: float = download_timeout
        self._progress_callback: ProgressCallback | None = progress_callback

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def platform(self) -> PlatformKey:
        if self._platform is None:
            self._platform = detect_platform()
        return self._platform

    def ensure(self, tool_set: ToolSet) -> dict[str, Path]:
        """Return tool name → path, provisioning the whole set if needed.

        Raises
        ------
        UnsupportedPlatformError
            Before any download, when a tool has no artifact for this host.
        ProvisioningError
            When any download, unpack, write or signing step fails.
        """
        platform = self.platform
        self._check_supported(tool_set, platform)

        paths = self.expected_paths(tool_set)
        if self.is_current(tool_set):
            logger.debug("%s up to date in %s", tool_set.name, self.directory_for(tool_set))
            return paths

        self._provision(tool_set, paths, platform)
        return paths

    def expected_paths(self, tool_set: ToolSet) -> dict[str, Path]:
        """Deterministic on-disk location of every tool in *tool_set*."""
        directory = self.directory_for(tool_set)
        return {tool.name: self._path_for(tool, directory) for tool in tool_set.tools}

    def directory_for(self, tool_set: ToolSet) -> Path:
        return self._root / tool_set.directory

    def manifest_path(self, tool_set: ToolSet) -> Path:
        return self.directory_for(tool_set) / MANIFEST_NAME

    def read_manifest(self, tool_set: ToolSet) -> VersionManifest | None:
        """Load the manifest, or ``None`` when absent or unreadable."""
        path = self.manifest_path(tool_set)
        try:
            return VersionManifest.from_json(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable manifest %s: %s", path, exc)
            return None

    def is_current(self, tool_set: ToolSet) -> bool:
        """Whether the manifest matches and every expected file exists."""
        manifest = self.read_manifest(tool_set)
        if manifest is None or not manifest.matches(tool_set.required_versions):
            return False
        return all(path.is_file() for path in self.expected_paths(tool_set).values())

    # ------------------------------------------------------------------
    # Path layout
    # ------------------------------------------------------------------

    def _path_for(self, tool: ToolSpec, directory: Path) -> Path:
        platform = self.platform
        if tool.kind is AssetKind.EXECUTABLE:
            return directory / f"{tool.name}{platform.executable_suffix}"
        package = f"{tool.package or tool.name}-{platform}"
        filename = tool.filenames.get(platform)
        if filename is None:
            raise UnsupportedPlatformError(
                f"No {tool.name} library file is catalogued for {platform}.",
            )
        return directory / package / "lib" / filename

    @staticmethod
    def _check_supported(tool_set: ToolSet, platform: PlatformKey) -> None:
        missing = [tool.name for tool in tool_set.tools if not tool.supports(platform)]
        if missing:
            raise UnsupportedPlatformError(
                f"Unsupported platform {platform} for {', '.join(missing)}.",
                hint=f"{tool_set.name.capitalize()} are not available for this system.",
            )

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    def _provision(
        self,
        tool_set: ToolSet,
        paths: dict[str, Path],
        platform: PlatformKey,
    ) -> None:
        logger.info("Provisioning %s for %s", tool_set.name, platform)
        directory = self.directory_for(tool_set)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ProvisioningError(f"Cannot create {directory}: {exc}") from exc

        for tool in tool_set.tools:
            logger.info("  %s %s", tool.name, tool.version)
            self._install(tool, tool.sources[platform], paths[tool.name], platform)

        self._write_manifest(tool_set)
        logger.info("Provisioned %s", tool_set.name)

    def _install(
        self,
        tool: ToolSpec,
        source: ArtifactSource,
        destination: Path,
        platform: PlatformKey,
    ) -> None:
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ProvisioningError(f"Cannot create {destination.parent}: {exc}") from exc

        download_path = destination.with_name(destination.name + ".download")
        staged_path = destination.with_name(destination.name + ".partial")
        try:
            self._downloader.fetch(
                source.url,
                download_path,
                timeout=self._download_timeout,
                progress_callback=self._progress_callback,
            )
            payload = _unpack(download_path, source)
            if not payload:
                raise ProvisioningError(f"Unpacked {tool.name} artifact is empty.")
            staged_path.write_bytes(payload)
            os.chmod(staged_path, _EXECUTABLE_MODE)
            os.replace(staged_path, destination)
        except OSError as exc:
            raise ProvisioningError(
                f"Failed to install {tool.name} to {destination}: {exc}",
            ) from exc
        finally:
            download_path.unlink(missing_ok=True)
            staged_path.unlink(missing_ok=True)

        if tool.kind is AssetKind.LIBRARY and platform.os == SIGNATURE_ENFORCING_OS:
            self._codesign(destination)

    def _codesign(self, path: Path) -> None:
        """Ad-hoc sign *path* so a signed host process may load it."""
        try:
            result = self._runner.run(
                ["codesign", "--force", "--sign", "-", str(path)],
                timeout=_CODESIGN_TIMEOUT,
            )
        except ProcessExecutionError as exc:
            raise ProvisioningError(f"codesign failed for {path}: {exc}") from exc
        if not result.ok:
            raise ProvisioningError(
                f"codesign failed for {path} (exit {result.returncode}): "
                f"{result.stderr.strip() or 'no output'}",
            )

    def _write_manifest(self, tool_set: ToolSet) -> None:
        manifest = VersionManifest(tool_versions=tool_set.required_versions)
        path = self.manifest_path(tool_set)
        tmp = path.with_name(path.name + ".tmp")
        try:
            tmp.write_text(manifest.to_json(), encoding="utf-8")
            os.replace(tmp, path)
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            raise ProvisioningError(f"Cannot write manifest {path}: {exc}") from exc


# ---------------------------------------------------------------------------
# Lazy, once-per-process access
# ---------------------------------------------------------------------------

class ProvisionedTools:
    """Memoized view of one provisioned tool set.

    The first :meth:`path` call runs :meth:`AssetProvisioner.ensure`;
    later calls reuse the validated paths without touching the disk.
    """

    def __init__(self, provisioner: AssetProvisioner, tool_set: ToolSet) -> None:
        self._provisioner = provisioner
        self._tool_set = tool_set
        self._paths: dict[str, Path] | None = None

    def paths(self) -> dict[str, Path]:
        if self._paths is None:
            self._paths = self._provisioner.ensure(self._tool_set)
        return self._paths

    def path(self, name: str) -> Path:
        try:
            return self.paths()[name]
        except KeyError:
            raise ProvisioningError(
                f"{name!r} is not part of {self._tool_set.name}.",
            ) from None


# ---------------------------------------------------------------------------
# Archive handling
# ---------------------------------------------------------------------------

def _unpack(path: Path, source: ArtifactSource) -> bytes:
    """Return the payload bytes of a downloaded artifact."""
    if source.archive is ArchiveFormat.NONE:
        return path.read_bytes()

    if source.archive is ArchiveFormat.GZIP:
        try:
            with gzip.open(path, "rb") as fh:
                return fh.read()
        except (gzip.BadGzipFile, EOFError, zlib.error) as exc:
            raise ProvisioningError(f"Failed to decompress {source.url}: {exc}") from exc

    if source.member is None:
        raise ProvisioningError(f"No archive member configured for {source.url}.")
    try:
        with tarfile.open(path, "r:gz") as archive:
            member = archive.extractfile(source.member)
            if member is None:
                raise ProvisioningError(
                    f"{source.member} in {source.url} is not a regular file.",
                )
            with member:
                return member.read()
    except KeyError as exc:
        raise ProvisioningError(
            f"{source.member} not found in {source.url}.",
        ) from exc
    except (tarfile.TarError, EOFError, zlib.error) as exc:
        raise ProvisioningError(f"Failed to extract {source.url}: {exc}") from exc
