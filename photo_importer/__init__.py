"""
Photo Import Tool

Imports new photos from a camera SD card into a local photo library,
sorted into one folder per capture day. Images already in the library
(matched by file name) are skipped.
"""

__version__ = "1.0.0"
__author__ = "Homelab Team"

from .config import Config
from .errors import (
    PhotoImportError,
    NoVolumeFound,
    VolumeSelectionFailed,
    UnexpectedScanError,
    FolderCreationFailed,
    MoveFailed,
    CopyFailed,
)
from .scanner import ImageFile, ImageFileScanner
from .dedup import DeduplicationMatcher, name_key
from .grouping import DateGrouper, date_group_key
from .transfer import FolderProvisioner, Transferer, TransferOutcome, TransferStatus
from .volumes import (
    Volume,
    VolumeSelector,
    FirstVolumeSelector,
    LabelVolumeSelector,
    InteractiveVolumeSelector,
    MediaVolumeLocator,
)
from .importer import PhotoImporter, ImportStats
from .reporter import ImportReporter

__all__ = [
    'Config',
    'PhotoImportError',
    'NoVolumeFound',
    'VolumeSelectionFailed',
    'UnexpectedScanError',
    'FolderCreationFailed',
    'MoveFailed',
    'CopyFailed',
    'ImageFile',
    'ImageFileScanner',
    'DeduplicationMatcher',
    'name_key',
    'DateGrouper',
    'date_group_key',
    'FolderProvisioner',
    'Transferer',
    'TransferOutcome',
    'TransferStatus',
    'Volume',
    'VolumeSelector',
    'FirstVolumeSelector',
    'LabelVolumeSelector',
    'InteractiveVolumeSelector',
    'MediaVolumeLocator',
    'PhotoImporter',
    'ImportStats',
    'ImportReporter',
]
