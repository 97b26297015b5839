import io
import threading
import pytest
import sqlite3
from PIL import Image
from photo_importer.config import ImporterConfig
from photo_importer.database.schema import init_schema
from photo_importer.database.ops import CatalogOperations

@pytest.fixture
def conn():
    """Returns an in-memory SQLite connection with the schema initialized."""
    # Pipeline tests hit the connection from worker threads
    c = sqlite3.connect(":memory:", check_same_thread=False)
    init_schema(c)
    try:
        yield c
    finally:
        c.close()

@pytest.fixture
def catalog(conn):
    """Returns a CatalogOperations instance attached to the in-memory DB."""
    return CatalogOperations(conn, threading.Lock())

@pytest.fixture
def cfg(tmp_path):
    """Library layout under tmp_path/library, directories created."""
    c = ImporterConfig.for_library(tmp_path / "library", concurrency=2)
    c.ensure_dirs()
    return c

def jpeg_bytes(size=(64, 32), color="red", exif=None) -> bytes:
    buf = io.BytesIO()
    with Image.new("RGB", size, color=color) as im:
        if exif is not None:
            im.save(buf, format="JPEG", exif=exif)
        else:
            im.save(buf, format="JPEG")
    return buf.getvalue()

def write_jpeg(path, size=(64, 32), color="red", exif=None):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(jpeg_bytes(size, color, exif))
    return path
