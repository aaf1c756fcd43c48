"""Error types for photo import."""


class PhotoImportError(Exception):
    """Base error for the photo importer."""


class NoVolumeFound(PhotoImportError):
    """No mounted volume qualified as an import source."""


class VolumeSelectionFailed(PhotoImportError):
    """Several candidate volumes were found and none could be chosen."""


class UnexpectedScanError(PhotoImportError):
    """A directory tree could not be enumerated."""


class FolderCreationFailed(PhotoImportError):
    pass


class MoveFailed(PhotoImportError):
    pass


class CopyFailed(PhotoImportError):
    pass
