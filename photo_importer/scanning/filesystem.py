import os
import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Set

from ..exceptions import ScanError

class DiskWalker:
    """Recursive file discovery for the import source tree."""

    def walk(self, root: Path, exclude_dirs: Optional[Iterable[Path]] = None) -> List[Path]:
        """
        Returns absolute paths of every regular file under root, skipping
        the excluded subtrees (typically the library's versions folder).

        Raises ScanError if root cannot be listed at all.
        """
        root = Path(root).resolve()
        if not root.is_dir():
            raise ScanError(f"Source path {root} is not a directory.")

        skip = {Path(d).resolve() for d in (exclude_dirs or []) if d is not None}
        files = list(self._iter_files(root, skip))
        logging.info(f"Found {len(files)} files under {root}")
        return files

    def _iter_files(self, root: Path, skip_dirs: Set[Path]) -> Iterator[Path]:
        """Depth-first walker using os.scandir for speed."""
        stack = [root]
        while stack:
            current = stack.pop()
            if skip_dirs and any(sd == current or sd in current.parents for sd in skip_dirs):
                continue

            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except (OSError, PermissionError) as e:
                if current == root:
                    raise ScanError(f"Cannot list {root}: {e}") from e
                logging.warning(f"Permission denied: {current}")
                continue

            # Sort for stable traversal order
            entries.sort(key=lambda e: e.name.lower())

            dirs = []
            for e in entries:
                if e.is_dir(follow_symlinks=False):
                    dirs.append(Path(e.path))
                elif e.is_file(follow_symlinks=False):
                    yield Path(e.path)

            # Push dirs to stack (reversed so we process A before Z)
            for d in reversed(dirs):
                stack.append(d)
