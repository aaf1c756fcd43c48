"""Grouping of new images into per-day import folders."""

import logging
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List

from .scanner import ImageFile

logger = logging.getLogger(__name__)

DEFAULT_FOLDER_PREFIX = "SD Card Import"

# Fixed English abbreviations so folder names do not depend on the locale
MONTH_ABBREVIATIONS = ('Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
                       'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec')


def utc_day(created: datetime) -> date:
    """Calendar day of a timestamp in UTC; naive datetimes are treated as UTC."""
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created.astimezone(timezone.utc).date()


def date_group_key(created: datetime, prefix: str = DEFAULT_FOLDER_PREFIX) -> str:
    """
    Generate the date-based folder name for a creation timestamp.

    The calendar day is taken in UTC; naive datetimes are treated as UTC.

    >>> date_group_key(datetime(2023, 5, 1, 23, 59, 59, tzinfo=timezone.utc))
    'SD Card Import 01-May-2023'
    """
    day = utc_day(created)
    return f"{prefix} {day.day:02d}-{MONTH_ABBREVIATIONS[day.month - 1]}-{day.year:04d}"


class DateGrouper:
    """Partitions images into groups keyed by capture day."""

    def __init__(self, prefix: str = DEFAULT_FOLDER_PREFIX):
        self.prefix = prefix

    def key_for(self, image: ImageFile) -> str:
        return date_group_key(image.created, self.prefix)

    def group(self, new_files: Iterable[ImageFile]) -> Dict[str, List[ImageFile]]:
        groups: Dict[str, List[ImageFile]] = defaultdict(list)
        for image in new_files:
            groups[self.key_for(image)].append(image)
        logger.debug(f"Grouped images into {len(groups)} day folders")
        return dict(groups)
