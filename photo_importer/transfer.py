"""Folder provisioning and move-with-copy-fallback transfers."""

import enum
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from .errors import CopyFailed, FolderCreationFailed, MoveFailed
from .scanner import ImageFile
from .utils import ensure_directory, exclusive_copy_file

logger = logging.getLogger(__name__)


class TransferStatus(enum.Enum):
    MOVED = 'moved'
    COPIED = 'copied'
    FAILED = 'failed'


@dataclass
class TransferOutcome:
    """Result of transferring one file."""
    file: ImageFile
    status: TransferStatus
    destination: Optional[Path] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is not TransferStatus.FAILED


class FolderProvisioner:
    """Creates destination folders on demand."""

    def __init__(self):
        self.created: List[Path] = []
        self.failures: Dict[Path, FolderCreationFailed] = {}

    def ensure(self, folder: Path) -> bool:
        """
        Create a folder if necessary.

        Args:
            folder: Folder to create

        Returns:
            True if the folder exists when complete
        """
        folder = Path(folder)
        try:
            created = ensure_directory(folder)
        except OSError as e:
            failure = FolderCreationFailed(f"Unable to create folder {folder}: {e}")
            logger.error(str(failure))
            self.failures[folder] = failure
            return False
        if created:
            logger.info(f"Created folder {folder}")
            self.created.append(folder)
        return True


class Transferer:
    """Moves a file into a folder, copying instead when the move fails.

    The source is only ever removed by a successful rename. A copy leaves the
    source in place, and a failed copy leaves no file at the destination.
    """

    def transfer(self, image: ImageFile, destination_folder: Path) -> TransferOutcome:
        destination = Path(destination_folder) / image.name

        logger.info(f"  Moving {image.name} to {destination}...")
        try:
            self._move(image.path, destination)
            return TransferOutcome(image, TransferStatus.MOVED, destination)
        except MoveFailed as move_error:
            logger.warning(f"Error moving file {image.name}: {move_error}")
            try:
                self._copy(image.path, destination)
            except CopyFailed as copy_error:
                logger.error(f"Unable to copy file {image.name}: {copy_error}")
                return TransferOutcome(image, TransferStatus.FAILED, None, str(copy_error))
            logger.info(f"File {image.name} copied instead; original left at {image.path}")
            return TransferOutcome(image, TransferStatus.COPIED, destination, str(move_error))

    def _move(self, source: Path, destination: Path) -> None:
        # os.rename replaces existing files on POSIX; refuse instead
        if destination.exists():
            raise MoveFailed(f"destination exists: {destination}")
        try:
            os.rename(source, destination)
        except OSError as e:
            raise MoveFailed(str(e)) from e

    def _copy(self, source: Path, destination: Path) -> None:
        try:
            exclusive_copy_file(source, destination)
        except FileExistsError as e:
            raise CopyFailed(f"destination exists: {destination}") from e
        except OSError as e:
            raise CopyFailed(str(e)) from e
