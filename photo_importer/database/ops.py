import sqlite3
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, UTC
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ..exceptions import DatabaseError
from ..models import PhotoRecord, TagRecord

PHOTO_COLUMNS = (
    "id", "title", "master", "thumb", "thumb_250", "extension", "orientation",
    "date", "created_at", "exposure_time", "iso", "aperture", "focal_length",
    "imported_at",
)
# Columns a caller may supply on insert
INSERT_FIELDS = PHOTO_COLUMNS[1:-1]


class CatalogOperations:
    """
    Photo/tag catalog access on a single SQLite connection.

    Safe to share between import workers: every method runs under one lock,
    which also makes the title check + insert in insert_photo atomic.
    """
    def __init__(self, conn: sqlite3.Connection, lock: Optional[threading.Lock] = None):
        self.conn = conn
        self._lock = lock or threading.Lock()

    @contextmanager
    def _locked(self, action: str) -> Iterator[sqlite3.Cursor]:
        with self._lock:
            try:
                yield self.conn.cursor()
                self.conn.commit()
            except sqlite3.Error as e:
                self.conn.rollback()
                raise DatabaseError(f"{action} failed: {e}") from e
            except Exception:
                self.conn.rollback()
                raise

    # --- Photos ---

    def find_photo_by_title(self, title: str) -> Optional[PhotoRecord]:
        with self._locked("Photo lookup") as cur:
            cur.execute(f"SELECT {', '.join(PHOTO_COLUMNS)} FROM photos WHERE title = ?", (title,))
            return self._photo(cur.fetchone())

    def find_photo_by_master(self, master: str) -> Optional[PhotoRecord]:
        with self._locked("Photo lookup") as cur:
            cur.execute(f"SELECT {', '.join(PHOTO_COLUMNS)} FROM photos WHERE master = ?", (str(master),))
            return self._photo(cur.fetchone())

    def insert_photo(self, fields: Dict[str, Any]) -> Tuple[PhotoRecord, bool]:
        """
        Inserts a photo unless one with the same title already exists.

        Returns (record, created). When the title is taken the stored record
        is returned unchanged and created is False.
        """
        unknown = set(fields) - set(INSERT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown photo fields: {sorted(unknown)}")
        if not fields.get("title"):
            raise ValueError("A photo needs a title")

        values = {k: fields.get(k) for k in INSERT_FIELDS}
        for key in ("master", "thumb", "thumb_250"):
            if values[key] is not None:
                values[key] = str(values[key])

        with self._locked(f"Insert of photo '{fields['title']}'") as cur:
            cur.execute(f"SELECT {', '.join(PHOTO_COLUMNS)} FROM photos WHERE title = ?", (values["title"],))
            existing = self._photo(cur.fetchone())
            if existing is not None:
                logging.debug(f"Photo '{values['title']}' already cataloged (id={existing.id})")
                return existing, False

            now_iso = datetime.now(UTC).isoformat()
            cur.execute(f"""
                INSERT INTO photos ({', '.join(INSERT_FIELDS)}, imported_at)
                VALUES ({', '.join('?' for _ in INSERT_FIELDS)}, ?)
            """, (*[values[k] for k in INSERT_FIELDS], now_iso))

            if cur.lastrowid is None:
                raise DatabaseError("Database INSERT failed to return a row ID.")
            cur.execute(f"SELECT {', '.join(PHOTO_COLUMNS)} FROM photos WHERE id = ?", (cur.lastrowid,))
            return self._photo(cur.fetchone()), True

    def count_photos(self) -> int:
        with self._locked("Photo count") as cur:
            cur.execute("SELECT COUNT(*) FROM photos")
            return cur.fetchone()[0]

    # --- Tags ---

    def find_or_create_tag(self, title: str) -> TagRecord:
        """Returns the tag with this title, creating it on first use."""
        with self._locked(f"Tag '{title}' lookup") as cur:
            # Unique title + OR IGNORE: concurrent creators end up on the same row
            cur.execute("INSERT OR IGNORE INTO tags (title) VALUES (?)", (title,))
            cur.execute("SELECT id, title FROM tags WHERE title = ?", (title,))
            row = cur.fetchone()
            if row is None:
                raise DatabaseError(f"Tag '{title}' vanished after insert")
            return TagRecord(id=row[0], title=row[1])

    def link_tag_to_photo(self, tag: TagRecord, photo: PhotoRecord):
        """Links tag and photo; linking an already linked pair is a no-op."""
        with self._locked(f"Linking tag '{tag.title}'") as cur:
            cur.execute(
                "INSERT OR IGNORE INTO photos_tags (photo_id, tag_id) VALUES (?, ?)",
                (photo.id, tag.id),
            )

    def tags_for_photo(self, photo_id: int) -> List[str]:
        with self._locked("Tag listing") as cur:
            cur.execute("""
                SELECT t.title FROM tags t
                JOIN photos_tags pt ON pt.tag_id = t.id
                WHERE pt.photo_id = ?
                ORDER BY t.title
            """, (photo_id,))
            return [r[0] for r in cur.fetchall()]

    def _photo(self, row) -> Optional[PhotoRecord]:
        if row is None:
            return None
        return PhotoRecord(**dict(zip(PHOTO_COLUMNS, row)))
