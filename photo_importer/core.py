import logging
from pathlib import Path
from typing import Optional

from .config import ImporterConfig
from .database.db import CatalogDatabase
from .importing.dedup import filter_stored
from .importing.pipeline import ImportPipeline
from .importing.progress import ProgressAccounter
from .importing.scheduler import ImportScheduler
from .imaging.thumbnails import ThumbnailRenderer
from .metadata.extract import MetadataExtractor
from .models import ImportOutcome, ScanReport
from .scanning.filesystem import DiskWalker
from .scanning.pairing import prepare_units

class PhotoImporterApp:
    def __init__(self,
                 db_path: Path,
                 cfg: ImporterConfig,
                 walker: Optional[DiskWalker] = None,
                 renderer: Optional[ThumbnailRenderer] = None,
                 extractor: Optional[MetadataExtractor] = None):
        self.database = CatalogDatabase(db_path)
        self.cfg = cfg
        self.walker = walker or DiskWalker()
        self.renderer = renderer or ThumbnailRenderer()
        self.extractor = extractor or MetadataExtractor()

    def scan(self,
             src_root: Path,
             versions_dir: Optional[Path] = None,
             sink=None) -> ScanReport:
        """
        Imports every new photo under src_root.

        1. Walk (skipping the versions folder)
        2. Classify & pair RAW files with their rendered companions
        3. Drop files already in the catalog, fix the total
        4. Import the rest on the worker pool

        Walk and dedup failures abort the scan; per-file failures are
        logged and counted in the report.
        """
        src_root = Path(src_root)
        report = ScanReport(root_path=str(src_root))
        self.cfg.ensure_dirs()

        with self.database as catalog:
            # --- Step 1: Discovery ---
            logging.info(f"Scanning {src_root}...")
            # Our own derivatives must never be picked up as sources
            exclude = [self.cfg.tmp_dir, self.cfg.thumbs_dir, self.cfg.thumbs_250_dir]
            if versions_dir:
                exclude.append(versions_dir)
            paths = self.walker.walk(src_root, exclude)

            # --- Step 2: Pairing ---
            units = prepare_units(paths, self.cfg.raw_extensions, self.cfg.image_extensions)
            report.discovered = len(units)

            # --- Step 3: Dedup ---
            units = filter_stored(units, catalog)
            report.already_cataloged = report.discovered - len(units)

            progress = ProgressAccounter(str(src_root), sink)
            progress.set_total(len(units))

            # --- Step 4: Import ---
            with ImportPipeline(self.cfg, catalog, progress, self.renderer, self.extractor) as pipeline:
                scheduler = ImportScheduler(pipeline.run, self.cfg.concurrency)
                for unit, outcome in scheduler.run(units):
                    if outcome is ImportOutcome.IMPORTED:
                        report.imported += 1
                    elif outcome is ImportOutcome.SKIPPED:
                        report.skipped += 1
                    else:
                        report.failed += 1
                        report.failed_paths.append(str(unit.path))

        logging.info(
            f"Scan complete: {report.imported} imported, {report.skipped} skipped, "
            f"{report.failed} failed, {report.already_cataloged} already cataloged."
        )
        return report
