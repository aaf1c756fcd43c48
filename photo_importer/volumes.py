"""Discovery and selection of the source media volume."""

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import click
import psutil

from .config import Config
from .errors import NoVolumeFound, VolumeSelectionFailed

logger = logging.getLogger(__name__)

NETWORK_FSTYPES = {'nfs', 'nfs4', 'cifs', 'smbfs', 'smb2', 'afpfs', 'webdav', 'sshfs', 'fuse.sshfs'}
SYS_CLASS_BLOCK = Path('/sys/class/block')


@dataclass(frozen=True)
class Volume:
    """A mounted storage root."""
    path: Path
    device: str = ''
    fstype: str = ''
    media_type: str = 'unknown'
    ready: bool = True

    @property
    def label(self) -> str:
        return self.path.name or str(self.path)

    def __str__(self) -> str:
        return f"{self.path} ({self.media_type}, {self.fstype or 'unknown fs'})"


def _linux_media_type(device: str) -> Optional[str]:
    """Classify a Linux block device using the sysfs removable flag."""
    entry = SYS_CLASS_BLOCK / Path(device).name
    if not entry.exists():
        return None
    disk = entry.resolve()
    if (disk / 'partition').exists():
        disk = disk.parent
    try:
        removable = (disk / 'removable').read_text().strip()
    except OSError as e:
        logger.debug(f"Could not read removable flag for {device}: {e}")
        return None
    return 'removable' if removable == '1' else 'fixed'


def classify_partition(partition) -> str:
    """Classify a psutil partition as removable, fixed, cdrom, network or unknown."""
    opts = {opt.strip().lower() for opt in (partition.opts or '').split(',')}
    # Windows reports the drive type in the mount options
    for media_type in ('cdrom', 'removable', 'fixed'):
        if media_type in opts:
            return media_type
    if (partition.fstype or '').lower() in NETWORK_FSTYPES:
        return 'network'
    if sys.platform.startswith('linux') and partition.device.startswith('/dev/'):
        media_type = _linux_media_type(partition.device)
        if media_type:
            return media_type
    if partition.device.startswith('/dev/'):
        return 'fixed'
    return 'unknown'


def is_volume_ready(mountpoint: str) -> bool:
    """A volume is ready when it can be read and reports its usage."""
    if not os.access(mountpoint, os.R_OK | os.X_OK):
        return False
    try:
        psutil.disk_usage(mountpoint)
    except OSError as e:
        logger.debug(f"Volume {mountpoint} not ready: {e}")
        return False
    return True


def discover_volumes() -> List[Volume]:
    """List currently mounted volumes."""
    volumes = []
    for partition in psutil.disk_partitions(all=False):
        volumes.append(Volume(
            path=Path(partition.mountpoint),
            device=partition.device,
            fstype=partition.fstype,
            media_type=classify_partition(partition),
            ready=is_volume_ready(partition.mountpoint),
        ))
    logger.debug(f"Discovered {len(volumes)} mounted volumes")
    return volumes


def _under_prefix(path: Path, prefixes: Iterable[str]) -> bool:
    for prefix in prefixes:
        prefix_path = Path(prefix)
        if path == prefix_path or prefix_path in path.parents:
            return True
    return False


def filter_candidates(volumes: Iterable[Volume], mount_prefixes: Sequence[str],
                      media_types: Sequence[str], label: Optional[str] = None) -> List[Volume]:
    """
    Keep only volumes that can be an import source.

    Args:
        volumes: Mounted volumes
        mount_prefixes: Accepted mount-path prefixes (e.g. /Volumes)
        media_types: Accepted media classifications
        label: Optional volume label that must match, ignoring case

    Returns:
        Ready volumes of an accepted media type mounted under a prefix
    """
    candidates = []
    for volume in volumes:
        if not volume.ready:
            continue
        if volume.media_type not in media_types:
            continue
        if not _under_prefix(volume.path, mount_prefixes):
            continue
        if label and volume.label.lower() != label.lower():
            continue
        candidates.append(volume)
    return candidates


def find_candidate_volumes(config: Config) -> List[Volume]:
    return filter_candidates(
        discover_volumes(),
        config.get_mount_prefixes(),
        config.get_media_types(),
        config.get_volume_label(),
    )


class VolumeSelector:
    """Chooses one volume when several candidates qualify."""

    def choose(self, candidates: Sequence[Volume]) -> Volume:
        raise NotImplementedError


class FirstVolumeSelector(VolumeSelector):
    """Picks the first candidate."""

    def choose(self, candidates: Sequence[Volume]) -> Volume:
        if not candidates:
            raise VolumeSelectionFailed("No volumes to choose from")
        return candidates[0]


class LabelVolumeSelector(VolumeSelector):
    """Picks the candidate with a given label (case-insensitive)."""

    def __init__(self, label: str):
        self.label = label

    def choose(self, candidates: Sequence[Volume]) -> Volume:
        matches = [v for v in candidates if v.label.lower() == self.label.lower()]
        if len(matches) != 1:
            raise VolumeSelectionFailed(
                f"Expected one volume labelled {self.label!r}, found {len(matches)}"
            )
        return matches[0]


class InteractiveVolumeSelector(VolumeSelector):
    """Asks the user which volume to import from."""

    def choose(self, candidates: Sequence[Volume]) -> Volume:
        click.echo("Several possible SD cards were found:")
        for index, volume in enumerate(candidates, 1):
            click.echo(f"  [{index}] {volume}")
        try:
            choice = click.prompt(
                "Please select SD card",
                type=click.IntRange(1, len(candidates)),
            )
        except click.Abort as e:
            raise VolumeSelectionFailed("No SD card selected") from e
        return candidates[choice - 1]


class MediaVolumeLocator:
    """Resolves the candidate volumes to exactly one source volume."""

    def locate(self, candidates: Sequence[Volume], selector: VolumeSelector) -> Volume:
        """
        Pick the source volume.

        Raises:
            NoVolumeFound: If there are no candidates
            VolumeSelectionFailed: If the selector cannot resolve a choice
        """
        if not candidates:
            raise NoVolumeFound("No SD card found!")

        if len(candidates) == 1:
            volume = candidates[0]
            logger.info(f"Found SD card at {volume.path}")
            return volume

        logger.info(f"Found {len(candidates)} candidate volumes, asking selector")
        volume = selector.choose(candidates)
        if volume not in candidates:
            raise VolumeSelectionFailed(f"Selected volume is not a candidate: {volume}")
        logger.info(f"Selected SD card at {volume.path}")
        return volume
