"""
Database schema definitions.
"""
import sqlite3
import logging

CURRENT_SCHEMA_VERSION = 1

def init_schema(conn: sqlite3.Connection):
    """
    Applies the catalog schema to the database.
    Idempotent: safe to run on every startup.
    """
    with conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            );
        """)

        cur = conn.cursor()
        cur.execute("SELECT version FROM schema_version")
        if not cur.fetchone():
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (CURRENT_SCHEMA_VERSION,))

        # 1. Photos
        # title is the file's base name and doubles as the duplicate key
        conn.execute("""
        CREATE TABLE IF NOT EXISTS photos (
            id              INTEGER PRIMARY KEY AUTOINCREMENT,
            title           TEXT NOT NULL UNIQUE,
            master          TEXT NOT NULL,        -- Source file (RAW or image)
            thumb           TEXT NOT NULL,        -- Full-size derivative (== master for images)
            thumb_250       TEXT NOT NULL,
            extension       TEXT,
            orientation     INTEGER,
            date            TEXT,                 -- YYYY-MM-DD
            created_at      TEXT,                 -- ISO capture timestamp
            exposure_time   TEXT,
            iso             INTEGER,
            aperture        REAL,
            focal_length    REAL,
            imported_at     TEXT NOT NULL
        );
        """)

        # 2. Tags
        conn.execute("""
        CREATE TABLE IF NOT EXISTS tags (
            id              INTEGER PRIMARY KEY AUTOINCREMENT,
            title           TEXT NOT NULL UNIQUE
        );
        """)

        # 3. Photo <-> Tag (many-to-many, one row per pair)
        conn.execute("""
        CREATE TABLE IF NOT EXISTS photos_tags (
            photo_id        INTEGER NOT NULL,
            tag_id          INTEGER NOT NULL,
            PRIMARY KEY (photo_id, tag_id),
            FOREIGN KEY(photo_id) REFERENCES photos(id) ON DELETE CASCADE,
            FOREIGN KEY(tag_id) REFERENCES tags(id) ON DELETE CASCADE
        );
        """)

        # 4. Indices for Performance
        conn.execute("CREATE INDEX IF NOT EXISTS idx_photos_master ON photos(master);")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_photos_date ON photos(date);")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_photos_tags_tag ON photos_tags(tag_id);")

    logging.debug("Database schema initialized.")
