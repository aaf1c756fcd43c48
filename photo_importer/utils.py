"""Utility functions for photo import."""

import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
import logging

import exifread
import psutil

logger = logging.getLogger(__name__)

EXIF_DATE_TAGS = ('EXIF DateTimeOriginal', 'EXIF DateTimeDigitized', 'Image DateTime')


def format_bytes(bytes_value: int) -> str:
    """
    Format bytes as human-readable string.

    Args:
        bytes_value: Size in bytes

    Returns:
        Formatted string like "1.2GB"
    """
    if bytes_value == 0:
        return "0B"

    units = ['B', 'KB', 'MB', 'GB', 'TB']
    unit_index = 0
    size = float(bytes_value)

    while size >= 1024.0 and unit_index < len(units) - 1:
        size /= 1024.0
        unit_index += 1

    return f"{size:.1f}{units[unit_index]}"


def get_available_space(path: Path) -> int:
    """
    Get available disk space for a path in bytes.

    The nearest existing ancestor is measured when the path itself does not
    exist yet (a library root that is created on demand).

    Args:
        path: Path to check

    Returns:
        Available space in bytes
    """
    existing = path
    while not existing.exists() and existing.parent != existing:
        existing = existing.parent
    try:
        usage = psutil.disk_usage(str(existing))
        return usage.free
    except OSError as e:
        logger.error(f"Failed to get disk space for {path}: {e}")
        return 0


def ensure_directory(path: Path) -> bool:
    """
    Ensure directory exists, creating it and any parents if necessary.

    Args:
        path: Directory path to ensure

    Returns:
        True if the directory was created, False if it already existed

    Raises:
        OSError: If the directory cannot be created
    """
    if path.is_dir():
        return False
    path.mkdir(parents=True, exist_ok=True)
    return True


def exclusive_copy_file(source: Path, destination: Path) -> None:
    """
    Copy a file to a destination that must not exist yet.

    The destination is opened with exclusive creation, so an existing file is
    never overwritten. If the copy fails after the destination was created the
    partial file is removed before the error is re-raised.

    Args:
        source: Source file path
        destination: Destination file path

    Raises:
        FileExistsError: If the destination already exists
        OSError: If reading the source or writing the destination fails
    """
    with open(source, 'rb') as src:
        dst = open(destination, 'xb')
        try:
            with dst:
                shutil.copyfileobj(src, dst)
        except BaseException:
            _remove_partial(destination)
            raise
    try:
        shutil.copystat(source, destination)
    except OSError as e:
        # Content is complete; only timestamps/permissions were not carried over.
        logger.debug(f"Could not copy metadata {source} -> {destination}: {e}")


def _remove_partial(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error(f"Failed to remove partial copy {path}: {e}")


def get_creation_time(file_path: Path, stat_result: Optional[os.stat_result] = None) -> datetime:
    """
    Get a file's creation timestamp as an aware UTC datetime.

    Uses the birth time where the platform reports one. Otherwise the older of
    the modification and status-change times is used, which is the closest
    approximation on filesystems without a birth time.
    """
    st = stat_result or file_path.stat()
    timestamp = getattr(st, 'st_birthtime', None)
    if timestamp is None:
        timestamp = min(st.st_mtime, st.st_ctime)
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def extract_photo_datetime(file_path: Path) -> Optional[datetime]:
    """
    Extract the capture time from EXIF metadata.

    EXIF timestamps carry no zone; they are interpreted as UTC.

    Args:
        file_path: Path to image file

    Returns:
        Aware datetime or None if no usable date tag was found
    """
    try:
        with open(file_path, 'rb') as f:
            tags = exifread.process_file(f, stop_tag='DateTimeDigitized', details=False)
    except Exception as e:
        logger.debug(f"Could not read EXIF from {file_path}: {e}")
        return None

    for tag_name in EXIF_DATE_TAGS:
        tag = tags.get(tag_name)
        if not tag:
            continue
        # Format: "2020:07:28 11:49:03"
        date_str = str(tag).strip()
        try:
            parsed = datetime.strptime(date_str[:19], '%Y:%m:%d %H:%M:%S')
        except ValueError:
            logger.debug(f"Unparseable EXIF date {date_str!r} in {file_path}")
            continue
        if 1900 <= parsed.year <= 2100:
            return parsed.replace(tzinfo=timezone.utc)
    return None


def get_current_timestamp():
    """Get current timestamp as ISO string."""
    return datetime.now().isoformat()
