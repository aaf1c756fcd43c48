"""Name-based matching of source images against the existing library."""

import logging
from typing import Iterable, List, Set, Tuple

from .scanner import ImageFile

logger = logging.getLogger(__name__)

NameKey = Tuple[str, int]


def name_key(name: str) -> NameKey:
    """
    Build the comparison key for a file name.

    Two names match when they are equal ignoring case and have the same
    length. The length is kept next to the case-folded text because folding
    can change length (``'ß'`` folds to ``'ss'``), so ``'Straße.jpg'`` and
    ``'STRASSE.jpg'`` do not match.
    """
    return (name.casefold(), len(name))


class DeduplicationMatcher:
    """Finds source images that are not yet present in the library."""

    def diff(self, source_files: Iterable[ImageFile],
             destination_files: Iterable[ImageFile]) -> List[ImageFile]:
        """
        Return every source file whose name matches no destination file.

        Only names are compared; size, content and timestamps are ignored.
        """
        existing: Set[NameKey] = {name_key(f.name) for f in destination_files}

        new_files = []
        skipped = 0
        for image in source_files:
            if name_key(image.name) in existing:
                logger.debug(f"Already in library: {image.name}")
                skipped += 1
            else:
                new_files.append(image)

        logger.info(f"Found {len(new_files):,} new images ({skipped:,} already in library)")
        return new_files


def find_new_files(source_files: Iterable[ImageFile],
                   destination_files: Iterable[ImageFile]) -> List[ImageFile]:
    return DeduplicationMatcher().diff(source_files, destination_files)
