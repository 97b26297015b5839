import logging
from typing import List, Sequence

from ..database.ops import CatalogOperations
from ..models import ImportUnit

def filter_stored(units: Sequence[ImportUnit], catalog: CatalogOperations) -> List[ImportUnit]:
    """
    Drops units whose source path is already a photo's master.

    Exact path equality only, so a new file is never skipped. Storage errors
    propagate: without this pass there is no trustworthy unit list.
    """
    fresh = [u for u in units if catalog.find_photo_by_master(str(u.path)) is None]
    dropped = len(units) - len(fresh)
    if dropped:
        logging.info(f"Skipping {dropped} files already in the catalog")
    return fresh
