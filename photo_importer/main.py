import argparse
import logging
import sys
from pathlib import Path

from . import config
from .config import ImporterConfig
from .core import PhotoImporterApp
from .importing.progress import LoggingProgressSink, TqdmProgressSink

def setup_logging(library_root: Path, verbose: bool):
    """Sets up logging to both console and a file in the library."""
    log_level = logging.DEBUG if verbose else logging.INFO

    # Create the library root if it doesn't exist so we can log there
    library_root.mkdir(parents=True, exist_ok=True)
    log_file = library_root / config.LOG_FILENAME

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(threadName)s %(message)s",
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )

    # Silence chatty libraries
    logging.getLogger("exifread").setLevel(logging.ERROR)
    logging.getLogger("PIL").setLevel(logging.WARNING)

def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Photo Importer: catalog new photos and build thumbnails")

    p.add_argument("src", type=Path, help="Directory to import from")
    p.add_argument("library", type=Path, help="Library root (catalog, thumbnails, temp files)")

    p.add_argument("--versions-dir", type=Path, default=None,
                   help="Edited versions folder to skip (default: <src>/versions if it exists)")
    p.add_argument("--db", type=Path, default=None, help="Custom path for SQLite DB (default: library/photo_catalog.db)")
    p.add_argument("-j", "--concurrency", type=int, default=config.DEFAULT_CONCURRENCY,
                   help=f"Number of files imported in parallel (default: {config.DEFAULT_CONCURRENCY})")
    p.add_argument("--raw-ext", action="append", default=None,
                   help="Accepted RAW extension (repeatable, replaces the defaults)")
    p.add_argument("--image-ext", action="append", default=None,
                   help="Accepted image extension (repeatable, replaces the defaults)")
    p.add_argument("--work-ext", default=config.WORK_EXT, help="Extension of generated thumbnails")
    p.add_argument("--keep-failed-raw-silent", action="store_true",
                   help="Do not count failed RAW imports as processed (legacy progress behaviour)")
    p.add_argument("--no-progress", action="store_true", help="Log progress instead of drawing a progress bar")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    args = p.parse_args(argv)
    if args.concurrency < 1:
        p.error("--concurrency must be at least 1")
    return args

def build_config(args) -> ImporterConfig:
    overrides = {
        "concurrency": args.concurrency,
        "work_ext": args.work_ext,
        "count_failed_raw": not args.keep_failed_raw_silent,
    }
    if args.raw_ext:
        overrides["raw_extensions"] = frozenset(args.raw_ext)
    if args.image_ext:
        overrides["image_extensions"] = frozenset(args.image_ext)
    return ImporterConfig.for_library(args.library, **overrides)

def main(argv=None):
    args = parse_args(argv)

    # 1. Setup
    library_root = args.library.resolve()
    src_root = args.src.resolve()
    args.library = library_root

    setup_logging(library_root, args.verbose)

    logging.info("=== Photo Importer Started ===")
    logging.info(f"Source:  {src_root}")
    logging.info(f"Library: {library_root}")

    # 2. Config
    db_path = args.db if args.db else library_root / config.CATALOG_FILENAME
    versions_dir = args.versions_dir
    if versions_dir is None and (src_root / config.VERSIONS_DIRNAME).is_dir():
        versions_dir = src_root / config.VERSIONS_DIRNAME
    cfg = build_config(args)

    sink = LoggingProgressSink() if args.no_progress else TqdmProgressSink()

    # 3. Execution
    app = PhotoImporterApp(db_path, cfg)

    try:
        report = app.scan(src_root, versions_dir=versions_dir, sink=sink)
    except KeyboardInterrupt:
        logging.warning("Import cancelled by user.")
        sys.exit(1)
    except Exception:
        logging.exception("Fatal error during import.")
        sys.exit(1)
    finally:
        if isinstance(sink, TqdmProgressSink):
            sink.close()

    for path in report.failed_paths:
        logging.warning(f"Not imported: {path}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
