"""
Turns a flat list of discovered files into import units.

RAW files are paired with a rendered image that shares their base name
(the camera's in-body JPEG, an export, ...). Pairing is first-match-wins
over the image pool in input order, and a claimed image is never reused
or emitted on its own.
"""
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..models import ImportUnit
from ..config import normalize_exts

def _matching_ext(path: Path, exts: Iterable[str]) -> Optional[str]:
    name = path.name.lower()
    # Longest first so ".jpeg" wins over a hypothetical ".peg"
    for ext in sorted(exts, key=len, reverse=True):
        if name.endswith(ext) and len(name) > len(ext):
            return ext
    return None


def classify_paths(paths: Sequence[Path],
                   raw_exts: Iterable[str],
                   image_exts: Iterable[str]) -> Tuple[List[Path], List[Path]]:
    """
    Splits paths into (raw, images) by case-insensitive extension.

    Both lists keep input order. Anything matching neither extension set
    is dropped; unsupported files are normal in an arbitrary tree.
    """
    raw_set = normalize_exts(raw_exts)
    img_set = normalize_exts(image_exts)

    raw_files: List[Path] = []
    img_files: List[Path] = []
    dropped = 0
    for p in paths:
        p = Path(p)
        if _matching_ext(p, raw_set):
            raw_files.append(p)
        elif _matching_ext(p, img_set):
            img_files.append(p)
        else:
            dropped += 1

    if dropped:
        logging.debug(f"Ignored {dropped} files with unsupported extensions")
    return raw_files, img_files


def base_name(path: Path, exts: Iterable[str]) -> str:
    """File name without its final recognized extension ("a.b.CR2" -> "a.b")."""
    path = Path(path)
    ext = _matching_ext(path, normalize_exts(exts))
    if ext is None:
        return path.stem
    return path.name[:-len(ext)]


def pair_import_units(raw_files: Sequence[Path],
                      img_files: Sequence[Path],
                      raw_exts: Iterable[str],
                      image_exts: Iterable[str]) -> List[ImportUnit]:
    """
    Builds import units: RAW-derived units first (input order), then the
    leftover standalone images (input order).
    """
    raw_set = normalize_exts(raw_exts)
    img_set = normalize_exts(image_exts)

    # Index by base name -> positions in the pool, in pool order
    img_names = [base_name(p, img_set) for p in img_files]
    by_name: Dict[str, List[int]] = {}
    for idx, name in enumerate(img_names):
        by_name.setdefault(name, []).append(idx)
    claimed = [False] * len(img_files)

    units: List[ImportUnit] = []
    for raw in raw_files:
        name = base_name(raw, raw_set)
        unit = ImportUnit(path=Path(raw), name=name, is_raw=True)

        for idx in by_name.get(name, ()):
            if not claimed[idx]:
                claimed[idx] = True
                unit.companion_path = Path(img_files[idx])
                break

        units.append(unit)

    paired = sum(claimed)
    for idx, img in enumerate(img_files):
        if not claimed[idx]:
            units.append(ImportUnit(path=Path(img), name=img_names[idx], is_raw=False))

    logging.info(
        f"Prepared {len(units)} import units "
        f"({len(raw_files)} RAW, {paired} with companion, {len(units) - len(raw_files)} standalone images)"
    )
    return units


def prepare_units(paths: Sequence[Path],
                  raw_exts: Iterable[str],
                  image_exts: Iterable[str]) -> List[ImportUnit]:
    """Classify + pair in one step."""
    raw_files, img_files = classify_paths(paths, raw_exts, image_exts)
    return pair_import_units(raw_files, img_files, raw_exts, image_exts)
