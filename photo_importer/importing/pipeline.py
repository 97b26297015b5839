import logging
import shutil
import tempfile
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ..config import ImporterConfig
from ..database.ops import CatalogOperations
from ..exceptions import DecodeError, MetadataExtractionError, PhotoImporterError
from ..imaging.thumbnails import ThumbnailRenderer
from ..metadata.extract import MetadataExtractor, file_birth_datetime
from ..models import ImportOutcome, ImportUnit, PhotoMetadata, PhotoRecord
from .progress import ProgressAccounter

class ImportPipeline:
    """
    Imports one unit at a time: derive thumbnails, read metadata, persist
    the photo, attach its tags, report progress.

    Any failure is contained to the unit being processed. Safe to call
    from several worker threads at once.
    """
    def __init__(self,
                 cfg: ImporterConfig,
                 catalog: CatalogOperations,
                 progress: ProgressAccounter,
                 renderer: Optional[ThumbnailRenderer] = None,
                 extractor: Optional[MetadataExtractor] = None):
        self.cfg = cfg
        self.catalog = catalog
        self.progress = progress
        self.renderer = renderer or ThumbnailRenderer()
        self.extractor = extractor or MetadataExtractor()
        # Separate from the unit pool so a worker waiting on its two
        # sub-tasks can never starve them
        self._helpers = ThreadPoolExecutor(
            max_workers=cfg.concurrency * 2, thread_name_prefix="import-helper"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        self._helpers.shutdown(wait=True)

    def run(self, unit: ImportUnit) -> ImportOutcome:
        if unit.is_raw:
            return self.import_raw(unit)
        return self.import_image(unit)

    # --- Variants ---

    def import_raw(self, unit: ImportUnit) -> ImportOutcome:
        """
        RAW unit: source bytes come from the companion image, or from the
        preview embedded in the RAW file when there is none.
        """
        workdir: Optional[Path] = None
        try:
            if unit.companion_path is not None:
                source = unit.companion_path
            else:
                # Same-named RAW files from different folders may run at once
                workdir = Path(tempfile.mkdtemp(prefix=f"{unit.name}-", dir=self.cfg.tmp_dir))
                source = self.renderer.extract_preview(unit.path, workdir / unit.name)

            data = self._read_bytes(source)
            thumb = self.renderer.render_full(data, self.cfg.thumb_path(unit.name))
            thumb_250 = self.renderer.render_bounded(thumb, self.cfg.thumb_250_path(unit.name))

            meta = self.extractor.read_tags(unit.path)
            outcome = self._store(unit, meta, thumb=thumb, thumb_250=thumb_250)
        except Exception as e:
            self._log_failure(unit, e)
            if self.cfg.count_failed_raw:
                self.progress.increment()
            return ImportOutcome.FAILED
        finally:
            if workdir is not None:
                shutil.rmtree(workdir, ignore_errors=True)

        self.progress.increment()
        return outcome

    def import_image(self, unit: ImportUnit) -> ImportOutcome:
        """
        Standalone image: the source doubles as the full-size derivative;
        the bounded thumbnail and the metadata are produced concurrently.
        """
        outcome = ImportOutcome.FAILED
        try:
            resize = self._helpers.submit(
                self.renderer.render_bounded, unit.path, self.cfg.thumb_250_path(unit.name)
            )
            read_meta = self._helpers.submit(self.extractor.read_tags, unit.path)
            # Join both before touching the catalog, even if one already failed
            wait([resize, read_meta])
            thumb_250 = resize.result()
            meta = read_meta.result()

            outcome = self._store(unit, meta, thumb=unit.path, thumb_250=thumb_250)
        except Exception as e:
            self._log_failure(unit, e)
        finally:
            self.progress.increment()
        return outcome

    # --- Shared stages ---

    def _store(self, unit: ImportUnit, meta: PhotoMetadata, thumb: Path, thumb_250: Path) -> ImportOutcome:
        created_at = meta.created_at
        if created_at is None:
            try:
                created_at = file_birth_datetime(unit.path)
            except OSError as e:
                raise MetadataExtractionError(f"No capture date and cannot stat {unit.path}: {e}") from e
        photo, created = self.catalog.insert_photo(self._photo_fields(unit, meta, created_at, thumb, thumb_250))
        if created:
            logging.debug(f"Cataloged {unit.path} as '{photo.title}' (id={photo.id})")
        else:
            logging.info(f"Skipped {unit.path}: '{unit.name}' is already in the catalog")

        self._attach_tags(photo, meta.tags)
        return ImportOutcome.IMPORTED if created else ImportOutcome.SKIPPED

    def _attach_tags(self, photo: PhotoRecord, tags: List[str]):
        for tag_name in tags:
            tag = self.catalog.find_or_create_tag(tag_name)
            self.catalog.link_tag_to_photo(tag, photo)

    def _photo_fields(self,
                      unit: ImportUnit,
                      meta: PhotoMetadata,
                      created_at: datetime,
                      thumb: Path,
                      thumb_250: Path) -> dict:
        return {
            "title": unit.name,
            "extension": unit.path.suffix.lstrip('.') or None,
            "orientation": meta.orientation,
            "date": created_at.strftime("%Y-%m-%d"),
            "created_at": created_at.isoformat(),
            "exposure_time": meta.exposure_time,
            "iso": meta.iso,
            "aperture": meta.f_number,
            "focal_length": meta.focal_length,
            "master": str(unit.path),
            "thumb": str(thumb),
            "thumb_250": str(thumb_250),
        }

    def _read_bytes(self, path: Path) -> bytes:
        try:
            return Path(path).read_bytes()
        except OSError as e:
            raise DecodeError(f"Cannot read source image {path}: {e}") from e

    def _log_failure(self, unit: ImportUnit, err: Exception):
        kind = "RAW" if unit.is_raw else "image"
        if isinstance(err, PhotoImporterError):
            logging.warning(f"Failed to import {kind} {unit.path}: {err}")
        else:
            logging.error(f"Unexpected error importing {kind} {unit.path}", exc_info=err)
