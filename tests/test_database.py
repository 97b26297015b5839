import threading
import pytest
from photo_importer.database.db import CatalogDatabase
from photo_importer.exceptions import DatabaseError

def photo_fields(title="img_0001", master="/src/img_0001.CR2", **extra):
    fields = {
        "title": title,
        "master": master,
        "thumb": f"/lib/thumbs/{title}.thumb.jpg",
        "thumb_250": f"/lib/thumbs_250/{title}.jpg",
        "extension": "CR2",
        "date": "2022-01-01",
    }
    fields.update(extra)
    return fields

def test_insert_and_lookup(catalog):
    photo, created = catalog.insert_photo(photo_fields(iso=200, aperture=2.8))

    assert created
    assert photo.id is not None
    assert photo.iso == 200
    assert photo.imported_at is not None
    assert catalog.find_photo_by_title("img_0001") == photo
    assert catalog.find_photo_by_master("/src/img_0001.CR2") == photo
    assert catalog.find_photo_by_master("/src/other.CR2") is None

def test_same_title_is_not_inserted_twice(catalog):
    """Second insert short-circuits and hands back the stored record."""
    first, created1 = catalog.insert_photo(photo_fields())
    second, created2 = catalog.insert_photo(photo_fields(master="/elsewhere/img_0001.CR2"))

    assert created1 and not created2
    assert second == first
    assert second.master == "/src/img_0001.CR2"
    assert catalog.count_photos() == 1

def test_concurrent_inserts_same_title(catalog):
    results = []
    barrier = threading.Barrier(8)

    def worker(i):
        barrier.wait()
        results.append(catalog.insert_photo(photo_fields(master=f"/src{i}/img_0001.CR2")))

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert catalog.count_photos() == 1
    assert sum(1 for _, created in results if created) == 1
    assert len({photo.id for photo, _ in results}) == 1

def test_find_or_create_tag_reuses(catalog):
    t1 = catalog.find_or_create_tag("beach")
    t2 = catalog.find_or_create_tag("beach")
    t3 = catalog.find_or_create_tag("family")

    assert t1 == t2
    assert t3.id != t1.id

def test_link_is_idempotent(catalog, conn):
    photo, _ = catalog.insert_photo(photo_fields())
    tag = catalog.find_or_create_tag("beach")

    catalog.link_tag_to_photo(tag, photo)
    catalog.link_tag_to_photo(tag, photo)

    cur = conn.cursor()
    cur.execute("SELECT COUNT(*) FROM photos_tags WHERE photo_id = ? AND tag_id = ?", (photo.id, tag.id))
    assert cur.fetchone()[0] == 1
    assert catalog.tags_for_photo(photo.id) == ["beach"]

def test_unknown_field_rejected(catalog):
    with pytest.raises(ValueError):
        catalog.insert_photo(photo_fields(colour="red"))

def test_sqlite_errors_are_wrapped(catalog):
    # master is NOT NULL
    with pytest.raises(DatabaseError):
        catalog.insert_photo(photo_fields(master=None))
    assert catalog.count_photos() == 0

def test_catalog_database_creates_schema(tmp_path):
    db_path = tmp_path / "lib" / "catalog.db"
    with CatalogDatabase(db_path) as catalog:
        cur = catalog.conn.cursor()
        cur.execute("SELECT name FROM sqlite_master WHERE type='table'")
        tables = {r[0] for r in cur.fetchall()}

    assert {"photos", "tags", "photos_tags", "schema_version"} <= tables
    assert db_path.exists()

def test_catalog_database_shares_one_connection_and_lock(tmp_path):
    db = CatalogDatabase(tmp_path / "catalog.db")
    with db as catalog:
        other = db.open()
        assert other.conn is catalog.conn

        photo, _ = catalog.insert_photo(photo_fields())
        assert other.find_photo_by_title("img_0001").id == photo.id

    # Reopening after close reads what was committed
    with db as catalog:
        assert catalog.count_photos() == 1

def test_unopenable_catalog_raises_database_error(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    with pytest.raises(DatabaseError):
        CatalogDatabase(blocker / "catalog.db").open()
