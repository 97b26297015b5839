"""
Configuration constants and runtime settings for the photo importer.
"""
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import FrozenSet, Iterable

# --- File Type Definitions ---
RAW_EXTS = {'.cr2', '.cr3', '.nef', '.arw', '.orf', '.rw2', '.dng', '.raf', '.pef'}
IMAGE_EXTS = {'.jpg', '.jpeg', '.jpe', '.png', '.tif', '.tiff'}
SIDECAR_EXT = '.xmp'

# --- Metadata Parsing ---
# EXIF timestamps are written as "YYYY:MM:DD HH:MM:SS"
EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"
DATE_TAGS = [
    'EXIF DateTimeOriginal',
    'EXIF DateTimeDigitized',
    'Image DateTime',
]
# How far into a file we look for an embedded XMP packet
XMP_SCAN_LIMIT = 4 * 1024 * 1024  # 4 MB

# --- Derivatives ---
WORK_EXT = "jpg"
THUMB_250_SIZE = (250, 250)
THUMB_QUALITY = 100

# --- Library Layout ---
TMP_DIRNAME = "tmp"
THUMBS_DIRNAME = "thumbs"
THUMBS_250_DIRNAME = "thumbs_250"
VERSIONS_DIRNAME = "versions"
CATALOG_FILENAME = "photo_catalog.db"
LOG_FILENAME = "importer.log"

# --- Performance ---
DEFAULT_CONCURRENCY = 3
# Log a progress line every N processed units
PROGRESS_LOG_EVERY = 100


def normalize_exts(exts: Iterable[str]) -> FrozenSet[str]:
    """Lower-cases extensions and makes sure they start with a dot."""
    normalized = set()
    for ext in exts:
        ext = ext.strip().lower()
        if not ext:
            continue
        normalized.add(ext if ext.startswith('.') else f".{ext}")
    return frozenset(normalized)


@dataclass(frozen=True)
class ImporterConfig:
    """
    Options consumed by a scan.

    Directory paths are where derivatives and temporary RAW previews go;
    they are created by ensure_dirs(), not on construction.
    """
    tmp_dir: Path
    thumbs_dir: Path
    thumbs_250_dir: Path
    raw_extensions: FrozenSet[str] = field(default_factory=lambda: normalize_exts(RAW_EXTS))
    image_extensions: FrozenSet[str] = field(default_factory=lambda: normalize_exts(IMAGE_EXTS))
    work_ext: str = WORK_EXT
    concurrency: int = DEFAULT_CONCURRENCY
    # Legacy importers never reported a failed RAW unit, so the bar stalled short of total
    count_failed_raw: bool = True

    def __post_init__(self):
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be a positive integer, got {self.concurrency}")
        object.__setattr__(self, 'raw_extensions', normalize_exts(self.raw_extensions))
        object.__setattr__(self, 'image_extensions', normalize_exts(self.image_extensions))
        object.__setattr__(self, 'work_ext', self.work_ext.lstrip('.'))

    @classmethod
    def for_library(cls, library_root: Path, **overrides) -> "ImporterConfig":
        """Builds the standard layout (<root>/tmp, <root>/thumbs, <root>/thumbs_250)."""
        root = Path(library_root)
        base = cls(
            tmp_dir=root / TMP_DIRNAME,
            thumbs_dir=root / THUMBS_DIRNAME,
            thumbs_250_dir=root / THUMBS_250_DIRNAME,
        )
        return replace(base, **overrides) if overrides else base

    def ensure_dirs(self):
        for d in (self.tmp_dir, self.thumbs_dir, self.thumbs_250_dir):
            d.mkdir(parents=True, exist_ok=True)

    def thumb_path(self, name: str) -> Path:
        return self.thumbs_dir / f"{name}.thumb.{self.work_ext}"

    def thumb_250_path(self, name: str) -> Path:
        return self.thumbs_250_dir / f"{name}.{self.work_ext}"
