"""
Custom exception hierarchy for the photo importer.

Per-file failures (decode, metadata, storage) are caught at the unit
boundary by the import pipeline; ScanError and failures raised before
scheduling abort the whole scan.
"""


class PhotoImporterError(Exception):
    """Base exception for all photo importer errors."""
    pass


class ScanError(PhotoImporterError):
    """Raised when the source tree cannot be walked."""
    pass


class DecodeError(PhotoImporterError):
    """Raised when a preview or thumbnail cannot be derived."""
    pass


class MetadataExtractionError(PhotoImporterError):
    """Raised when metadata cannot be extracted from a file."""
    pass


class DatabaseError(PhotoImporterError):
    """Raised when catalog operations fail."""
    pass
