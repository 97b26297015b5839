from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

@dataclass
class ImportUnit:
    """
    One logical photo to import: a RAW file (optionally with a rendered
    companion sharing its base name) or a standalone rendered image.
    """
    path: Path              # RAW file if is_raw, else the rendered image
    name: str               # base name; catalog title and derivative key
    is_raw: bool
    companion_path: Optional[Path] = None


@dataclass
class PhotoMetadata:
    """Normalized capture metadata for one source file."""
    created_at: Optional[datetime] = None
    orientation: Optional[int] = None
    exposure_time: Optional[str] = None     # as written by the camera, e.g. "1/250"
    iso: Optional[int] = None
    f_number: Optional[float] = None
    focal_length: Optional[float] = None
    tags: List[str] = field(default_factory=list)


@dataclass
class PhotoRecord:
    id: int
    title: str
    master: str
    thumb: str
    thumb_250: str
    extension: Optional[str] = None
    orientation: Optional[int] = None
    date: Optional[str] = None              # YYYY-MM-DD
    created_at: Optional[str] = None        # ISO timestamp
    exposure_time: Optional[str] = None
    iso: Optional[int] = None
    aperture: Optional[float] = None
    focal_length: Optional[float] = None
    imported_at: Optional[str] = None


@dataclass
class TagRecord:
    id: int
    title: str


@dataclass(frozen=True)
class ProgressSnapshot:
    processed: int
    total: int
    root_path: str


class ImportOutcome(Enum):
    IMPORTED = "imported"
    SKIPPED = "skipped"     # a photo with the same title was already cataloged
    FAILED = "failed"


@dataclass
class ScanReport:
    """Summary of one scan, returned to the caller once every unit is done."""
    root_path: str
    discovered: int = 0
    already_cataloged: int = 0
    imported: int = 0
    skipped: int = 0
    failed: int = 0
    failed_paths: List[str] = field(default_factory=list)

    @property
    def scheduled(self) -> int:
        return self.discovered - self.already_cataloged
