"""Image file scanning with hidden-file exclusion."""

import os
import stat
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .config import Config
from .errors import UnexpectedScanError
from .utils import extract_photo_datetime, get_creation_time

logger = logging.getLogger(__name__)

# Hidden flags exist only where the platform reports them in stat results
_HAS_ST_FLAGS = hasattr(os.stat_result, 'st_flags')
_HAS_FILE_ATTRIBUTES = hasattr(os.stat_result, 'st_file_attributes')


@dataclass(frozen=True)
class ImageFile:
    """Snapshot of one image file taken at scan time."""
    path: Path
    created: datetime
    size: int = 0

    @property
    def name(self) -> str:
        """Get filename without path."""
        return self.path.name

    @property
    def extension(self) -> str:
        return self.path.suffix


def is_hidden_entry(path: Path, stat_result: Optional[os.stat_result] = None) -> bool:
    """
    Check whether a single file or directory is hidden.

    An entry is hidden when its name starts with a dot, or when the platform
    marks it hidden (BSD/macOS ``UF_HIDDEN`` flag, Windows hidden attribute).
    """
    if path.name.startswith('.'):
        return True
    if not (_HAS_ST_FLAGS or _HAS_FILE_ATTRIBUTES):
        return False
    st = stat_result or path.lstat()
    if _HAS_ST_FLAGS and st.st_flags & stat.UF_HIDDEN:
        return True
    if _HAS_FILE_ATTRIBUTES and st.st_file_attributes & stat.FILE_ATTRIBUTE_HIDDEN:
        return True
    return False


def has_hidden_ancestor(path: Path, boundary_names: Iterable[str]) -> bool:
    """
    Check whether any directory containing ``path`` is hidden.

    The ascent stops at the first directory whose name is a mount boundary
    (e.g. ``Volumes``); that directory and everything above it are ignored.
    """
    boundaries = set(boundary_names)
    directory = path.parent
    while directory != directory.parent:
        if directory.name in boundaries:
            break
        if is_hidden_entry(directory):
            return True
        directory = directory.parent
    return False


def is_hidden_path(path: Path, boundary_names: Iterable[str]) -> bool:
    """See if a file is hidden, or is in a hidden directory structure."""
    return is_hidden_entry(path) or has_hidden_ancestor(path, boundary_names)


class ImageFileScanner:
    """Recursively lists visible image files under a root directory."""

    def __init__(self, extensions: Sequence[str], boundary_names: Sequence[str],
                 date_source: str = 'filesystem'):
        """
        Initialize scanner.

        Args:
            extensions: Accepted extensions, compared case-insensitively
            boundary_names: Mount-boundary directory names for the hidden-ancestor check
            date_source: 'filesystem' or 'exif' for the creation timestamp
        """
        self.extensions = {'.' + ext.lower().lstrip('.') for ext in extensions}
        self.boundary_names = list(boundary_names)
        self.date_source = date_source

    @classmethod
    def from_config(cls, config: Config) -> 'ImageFileScanner':
        return cls(
            config.get_supported_extensions(),
            config.get_boundary_names(),
            config.get_date_source(),
        )

    def is_image_file(self, path: Path) -> bool:
        """Determine if the path has an accepted image extension."""
        return path.suffix.lower() in self.extensions

    def scan(self, root: Path) -> List[ImageFile]:
        """
        Scan a directory tree for image files.

        Args:
            root: Directory to scan

        Returns:
            ImageFile snapshots for every visible image under root

        Raises:
            UnexpectedScanError: If any part of the tree cannot be enumerated
        """
        root = Path(os.path.abspath(root))
        logger.info(f"Scanning {root} for images...")

        def _on_error(error: OSError):
            raise UnexpectedScanError(f"Failed to scan {root}: {error}") from error

        try:
            if is_hidden_path(root, self.boundary_names):
                logger.info(f"Skipping hidden directory tree: {root}")
                return []

            images: List[ImageFile] = []
            for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
                current = Path(dirpath)
                # Prune hidden directories; nothing below them is eligible
                dirnames[:] = [d for d in dirnames if not is_hidden_entry(current / d)]

                for filename in filenames:
                    image = self._snapshot(current / filename)
                    if image is not None:
                        images.append(image)
        except OSError as e:
            raise UnexpectedScanError(f"Failed to scan {root}: {e}") from e

        logger.info(f"Scanned {root}: found {len(images):,} image files")
        return images

    def _snapshot(self, path: Path) -> Optional[ImageFile]:
        if not self.is_image_file(path):
            return None
        try:
            st = path.stat()
        except FileNotFoundError:
            logger.warning(f"Skipping unreadable entry (vanished or broken link): {path}")
            return None
        if not stat.S_ISREG(st.st_mode):
            return None
        if is_hidden_entry(path):
            logger.debug(f"Skipping hidden file: {path}")
            return None
        return ImageFile(path=path, created=self._creation_time(path, st), size=st.st_size)

    def _creation_time(self, path: Path, st: os.stat_result) -> datetime:
        if self.date_source == 'exif':
            taken = extract_photo_datetime(path)
            if taken is not None:
                return taken
            logger.debug(f"No EXIF date in {path}, using filesystem timestamp")
        return get_creation_time(path, st)
