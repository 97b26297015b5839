import pytest
import numpy as np
import rawpy
from types import SimpleNamespace
from PIL import Image
from conftest import jpeg_bytes, write_jpeg
import photo_importer.imaging.thumbnails as thumbnails_module
from photo_importer.imaging.thumbnails import ThumbnailRenderer
from photo_importer.exceptions import DecodeError

class FakeRaw:
    def __init__(self, thumb):
        self.thumb = thumb

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def extract_thumb(self):
        if isinstance(self.thumb, Exception):
            raise self.thumb
        return self.thumb

def test_bounded_fits_box_and_keeps_aspect(tmp_path):
    src = write_jpeg(tmp_path / "big.jpg", size=(1000, 500))
    dest = tmp_path / "out" / "big.jpg"

    ThumbnailRenderer().render_bounded(src, dest)

    with Image.open(dest) as im:
        assert im.size == (250, 125)

def test_bounded_never_upscales(tmp_path):
    src = write_jpeg(tmp_path / "small.jpg", size=(100, 40))
    dest = tmp_path / "small_250.jpg"

    ThumbnailRenderer().render_bounded(src, dest)

    with Image.open(dest) as im:
        assert im.size == (100, 40)

def test_full_applies_orientation(tmp_path):
    exif = Image.Exif()
    exif[274] = 6  # rotate 90 CW on display
    exif[306] = "2020:01:02 03:04:05"
    data = jpeg_bytes(size=(200, 100), exif=exif.tobytes())
    dest = tmp_path / "thumbs" / "x.thumb.jpg"

    ThumbnailRenderer().render_full(data, dest)

    with Image.open(dest) as im:
        assert im.size == (100, 200)
        out_exif = im.getexif()
        assert out_exif.get(274) in (None, 1)
        assert out_exif.get(306) == "2020:01:02 03:04:05"

def test_garbage_input_raises_decode_error(tmp_path):
    with pytest.raises(DecodeError):
        ThumbnailRenderer().render_full(b"definitely not an image", tmp_path / "x.jpg")

def test_extract_preview_jpeg(monkeypatch, tmp_path):
    preview = jpeg_bytes(size=(30, 20))
    thumb = SimpleNamespace(format=rawpy.ThumbFormat.JPEG, data=preview)
    monkeypatch.setattr(thumbnails_module.rawpy, "imread", lambda path: FakeRaw(thumb))

    out = ThumbnailRenderer().extract_preview(tmp_path / "c.CR2", tmp_path / "tmp" / "c")

    assert out == tmp_path / "tmp" / "c.jpg"
    assert out.read_bytes() == preview

def test_extract_preview_bitmap(monkeypatch, tmp_path):
    pixels = np.zeros((20, 30, 3), dtype=np.uint8)
    thumb = SimpleNamespace(format=rawpy.ThumbFormat.BITMAP, data=pixels)
    monkeypatch.setattr(thumbnails_module.rawpy, "imread", lambda path: FakeRaw(thumb))

    out = ThumbnailRenderer().extract_preview(tmp_path / "c.CR2", tmp_path / "c")

    with Image.open(out) as im:
        assert im.size == (30, 20)

def test_extract_preview_without_thumbnail(monkeypatch, tmp_path):
    monkeypatch.setattr(
        thumbnails_module.rawpy, "imread",
        lambda path: FakeRaw(rawpy.LibRawNoThumbnailError("no thumbnail")),
    )

    with pytest.raises(DecodeError):
        ThumbnailRenderer().extract_preview(tmp_path / "c.CR2", tmp_path / "c")
