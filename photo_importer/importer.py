"""Import orchestration: locate, scan, match, group, transfer."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from tqdm import tqdm

from .config import Config
from .dedup import DeduplicationMatcher
from .grouping import DateGrouper, utc_day
from .scanner import ImageFile, ImageFileScanner
from .transfer import FolderProvisioner, Transferer, TransferOutcome, TransferStatus
from .utils import format_bytes, get_available_space, get_current_timestamp
from . import volumes
from .volumes import InteractiveVolumeSelector, MediaVolumeLocator, Volume, VolumeSelector

logger = logging.getLogger(__name__)


@dataclass
class ImportStats:
    """Statistics for one import run."""
    source_root: str = ''
    library_root: str = ''
    dry_run: bool = False
    images_found: int = 0
    library_images: int = 0
    new_images: int = 0
    groups: int = 0
    folders_created: int = 0
    moved: int = 0
    copied: int = 0
    failed: int = 0
    skipped_groups: int = 0
    planned: int = 0
    errors: List[str] = field(default_factory=list)
    outcomes: List[TransferOutcome] = field(default_factory=list)
    timestamp: str = field(default_factory=get_current_timestamp)

    @property
    def transferred(self) -> int:
        return self.moved + self.copied

    @property
    def success(self) -> bool:
        return not self.errors

    def record(self, outcome: TransferOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.status is TransferStatus.MOVED:
            self.moved += 1
        elif outcome.status is TransferStatus.COPIED:
            self.copied += 1
        else:
            self.failed += 1
            self.errors.append(f"Failed to import {outcome.file.path}: {outcome.reason}")


class PhotoImporter:
    """Imports new photos from a media volume into the photo library."""

    def __init__(self, config: Config, selector: Optional[VolumeSelector] = None,
                 candidate_finder: Optional[Callable[[Config], Sequence[Volume]]] = None):
        """
        Initialize importer with configuration.

        Args:
            config: Configuration instance
            selector: Chooses between several candidate volumes (interactive by default)
            candidate_finder: Returns the candidate volumes (mounted-volume discovery by default)
        """
        self.config = config
        self.library_root = config.get_library_root()
        self.selector = selector or InteractiveVolumeSelector()
        self.candidate_finder = candidate_finder
        self.locator = MediaVolumeLocator()
        self.scanner = ImageFileScanner.from_config(config)
        self.matcher = DeduplicationMatcher()
        self.grouper = DateGrouper(config.get_folder_prefix())
        self.provisioner = FolderProvisioner()
        self.transferer = Transferer()

    def locate_volume(self, volume_root: Optional[Path] = None) -> Volume:
        """Find the source volume, or wrap an explicitly given root."""
        if volume_root is not None:
            logger.info(f"Using volume root given explicitly: {volume_root}")
            return Volume(path=Path(volume_root))

        logger.info("Looking for SD card...")
        finder = self.candidate_finder or volumes.find_candidate_volumes
        candidates = finder(self.config)
        return self.locator.locate(candidates, self.selector)

    def run(self, dry_run: Optional[bool] = None, volume_root: Optional[Path] = None) -> ImportStats:
        """
        Run a complete import.

        Every listing is taken before the first transfer. Per-file and
        per-folder failures are recorded in the returned stats; only volume
        location and scan failures raise.

        Args:
            dry_run: Whether to perform dry run (defaults to config setting)
            volume_root: Use this directory as the volume instead of discovery

        Returns:
            ImportStats for the run
        """
        if dry_run is None:
            dry_run = self.config.is_dry_run()

        volume = self.locate_volume(volume_root)
        self.provisioner = FolderProvisioner()
        source_root = volume.path / self.config.get_source_subdir()

        stats = ImportStats(
            source_root=str(source_root),
            library_root=str(self.library_root),
            dry_run=dry_run,
        )

        logger.info(f"{'DRY RUN: ' if dry_run else ''}Scanning SD card {volume.path} for pictures...")
        source_files = self.scanner.scan(source_root)
        stats.images_found = len(source_files)

        logger.info(f"Found {stats.images_found:,} images on SD card. "
                    f"Building list of existing pictures in {self.library_root}...")
        library_files = self._scan_library()
        stats.library_images = len(library_files)

        new_files = self.matcher.diff(source_files, library_files)
        groups = self.grouper.group(new_files)
        stats.new_images = len(new_files)
        stats.groups = len(groups)

        logger.info(f"Importing {stats.new_images:,} new files into {stats.groups} folders...")
        if new_files and not dry_run:
            self._check_free_space(new_files)

        # Oldest day first
        for key, files in sorted(groups.items(), key=lambda item: utc_day(item[1][0].created)):
            self._import_group(key, files, stats, dry_run)

        if not dry_run:
            stats.folders_created = len(self.provisioner.created)
        logger.info(
            f"{'DRY RUN: ' if dry_run else ''}Import complete: "
            f"{stats.moved:,} moved, {stats.copied:,} copied, {stats.failed:,} failed, "
            f"{stats.folders_created} folders created"
        )
        return stats

    def _scan_library(self) -> List[ImageFile]:
        if not self.library_root.is_dir():
            logger.warning(f"Library root {self.library_root} does not exist yet, treating it as empty")
            return []
        return self.scanner.scan(self.library_root)

    def _check_free_space(self, new_files: List[ImageFile]) -> None:
        needed = sum(f.size for f in new_files)
        reserve = self.config.get_min_free_space_mb() * 1024 * 1024
        available = get_available_space(self.library_root)
        if needed + reserve > available:
            logger.warning(
                f"Library may run out of space: need {format_bytes(needed + reserve)}, "
                f"have {format_bytes(available)}"
            )

    def _import_group(self, key: str, files: List[ImageFile], stats: ImportStats, dry_run: bool):
        folder = self.library_root / key

        if dry_run:
            for image in files:
                logger.info(f"DRY RUN: would import {image.name} into {folder}")
            stats.planned += len(files)
            if not folder.is_dir():
                stats.folders_created += 1
            return

        if not self.provisioner.ensure(folder):
            failure = self.provisioner.failures[folder]
            logger.error(f"Skipping {len(files)} files for {key}: {failure}")
            stats.skipped_groups += 1
            stats.errors.append(str(failure))
            for image in files:
                outcome = TransferOutcome(image, TransferStatus.FAILED, None, str(failure))
                stats.outcomes.append(outcome)
                stats.failed += 1
            return

        with tqdm(files, desc=key, unit="files") as pbar:
            for image in pbar:
                stats.record(self.transferer.transfer(image, folder))
