import logging
import os
import re
import xml.etree.ElementTree as ET
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

import exifread

from .. import config
from ..exceptions import MetadataExtractionError
from ..models import PhotoMetadata

XMP_START = b"<x:xmpmeta"
XMP_END = b"</x:xmpmeta>"

NS_RDF = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
NS_DC = "http://purl.org/dc/elements/1.1/"


class MetadataExtractor:
    """
    Reads capture metadata and keywords for a photo.

    Strategies:
      - EXIF fields: 'exifread' (fast, Python-native, handles most RAW containers).
      - Keywords: XMP dc:subject, from the packet embedded in the file and
        from an adjacent .xmp sidecar (Lightroom writes those for RAWs).
    """

    def read_tags(self, path: Path) -> PhotoMetadata:
        """
        Extracts metadata from an image file (RAW, JPEG, TIFF).

        A file without EXIF yields an empty PhotoMetadata; a file that
        cannot be opened raises MetadataExtractionError.
        """
        path = Path(path)
        try:
            with path.open('rb') as f:
                # details=False skips MakerNotes, which we never use
                tags = exifread.process_file(f, details=False)
        except OSError as e:
            raise MetadataExtractionError(f"Cannot read {path}: {e}") from e
        except Exception as e:
            # exifread raises assorted errors on truncated/odd containers
            logging.warning(f"ExifRead failed for {path}: {e}")
            tags = {}

        meta = PhotoMetadata(
            created_at=self._parse_exif_date(tags),
            orientation=self._first_int(tags.get('Image Orientation')),
            exposure_time=self._as_text(tags.get('EXIF ExposureTime')),
            iso=self._first_int(tags.get('EXIF ISOSpeedRatings')),
            f_number=self._first_float(tags.get('EXIF FNumber')),
            focal_length=self._first_float(tags.get('EXIF FocalLength')),
        )
        meta.tags = self._read_keywords(path, tags)
        return meta

    # --- Keywords ---

    def _read_keywords(self, path: Path, tags) -> List[str]:
        keywords: List[str] = []

        packet = self._embedded_xmp(path, tags)
        if packet:
            keywords.extend(self._parse_xmp_subjects(packet))

        sidecar = path.with_suffix(config.SIDECAR_EXT)
        if not sidecar.exists():
            sidecar = path.with_suffix(config.SIDECAR_EXT.upper())
        if sidecar.exists():
            try:
                keywords.extend(self._parse_xmp_subjects(sidecar.read_bytes()))
            except OSError as e:
                logging.debug(f"Could not read sidecar {sidecar}: {e}")

        # Keep first occurrence order, drop duplicates and blanks
        seen = set()
        unique = []
        for kw in keywords:
            kw = kw.strip()
            if kw and kw not in seen:
                seen.add(kw)
                unique.append(kw)
        return unique

    def _embedded_xmp(self, path: Path, tags) -> Optional[bytes]:
        # TIFF-based RAWs expose the packet as tag 700 (ApplicationNotes)
        notes = tags.get('Image ApplicationNotes')
        if notes is not None:
            values = notes.values
            if isinstance(values, (bytes, bytearray)):
                return bytes(values)
            if isinstance(values, list) and all(isinstance(v, int) for v in values):
                return bytes(values)

        # JPEG APP1 / anything else: look for the packet near the start of the file
        try:
            with path.open('rb') as f:
                head = f.read(config.XMP_SCAN_LIMIT)
        except OSError:
            return None
        start = head.find(XMP_START)
        if start == -1:
            return None
        end = head.find(XMP_END, start)
        if end == -1:
            return None
        return head[start:end + len(XMP_END)]

    def _parse_xmp_subjects(self, packet: bytes) -> List[str]:
        """Returns the dc:subject bag entries of an XMP packet."""
        packet = packet.strip(b"\x00 \t\r\n")
        try:
            root = ET.fromstring(packet)
        except ET.ParseError:
            # Some writers leave garbage after the closing tag
            match = re.search(rb"<x:xmpmeta.*?</x:xmpmeta>", packet, re.DOTALL)
            if not match:
                logging.debug("Unparseable XMP packet")
                return []
            try:
                root = ET.fromstring(match.group(0))
            except ET.ParseError:
                logging.debug("Unparseable XMP packet")
                return []

        subjects = []
        for subject in root.iter(f"{{{NS_DC}}}subject"):
            for li in subject.iter(f"{{{NS_RDF}}}li"):
                if li.text:
                    subjects.append(li.text)
        return subjects

    # --- EXIF helpers ---

    def _parse_exif_date(self, tags) -> Optional[datetime]:
        """Parses the first usable EXIF date tag ("YYYY:MM:DD HH:MM:SS")."""
        for tag in config.DATE_TAGS:
            if tag in tags:
                try:
                    return datetime.strptime(str(tags[tag]).strip(), config.EXIF_DATETIME_FORMAT)
                except ValueError:
                    continue
        return None

    def _first_value(self, tag) -> Any:
        if tag is None:
            return None
        values = getattr(tag, 'values', None)
        if isinstance(values, (list, tuple)):
            return values[0] if values else None
        return values

    def _first_int(self, tag) -> Optional[int]:
        value = self._first_value(tag)
        try:
            return int(value) if value is not None else None
        except (TypeError, ValueError):
            return None

    def _first_float(self, tag) -> Optional[float]:
        value = self._first_value(tag)
        if value is None:
            return None
        # exifread Ratio: Fraction subclass in 3.x, num/den pair in 2.x
        num = getattr(value, 'num', None)
        den = getattr(value, 'den', None)
        if num is not None and den is not None:
            return float(num) / float(den) if den else None
        try:
            return float(value)
        except (TypeError, ValueError, ZeroDivisionError):
            return None

    def _as_text(self, tag) -> Optional[str]:
        if tag is None:
            return None
        text = str(tag).strip()
        return text or None


def file_birth_datetime(path: Path) -> datetime:
    """
    File creation time, used when a photo carries no EXIF timestamp.
    Falls back to mtime on platforms that do not record a birth time.
    """
    st = os.stat(path)
    ts = getattr(st, 'st_birthtime', None)
    if ts is None:
        ts = st.st_mtime
    return datetime.fromtimestamp(ts)
