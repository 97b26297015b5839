import io
import logging
from pathlib import Path
from typing import Union

import rawpy
from PIL import Image, ImageOps

from .. import config
from ..exceptions import DecodeError

class ThumbnailRenderer:
    """
    Derives the thumbnails stored alongside catalog records.

    RAW previews come from the JPEG (or bitmap) the camera embeds in the
    RAW container via rawpy; all resizing and encoding is Pillow.
    """

    def extract_preview(self, raw_path: Path, dest_stem: Path) -> Path:
        """
        Writes the embedded preview of raw_path next to dest_stem and returns
        the file written (dest_stem + .jpg or .tiff depending on the preview).
        """
        raw_path = Path(raw_path)
        dest_stem = Path(dest_stem)
        try:
            with rawpy.imread(str(raw_path)) as raw:
                thumb = raw.extract_thumb()
        except (rawpy.LibRawNoThumbnailError, rawpy.LibRawUnsupportedThumbnailError) as e:
            raise DecodeError(f"No usable embedded preview in {raw_path}: {e}") from e
        except (rawpy.LibRawError, OSError) as e:
            raise DecodeError(f"Cannot open RAW file {raw_path}: {e}") from e

        dest_stem.parent.mkdir(parents=True, exist_ok=True)
        if thumb.format == rawpy.ThumbFormat.JPEG:
            dest = dest_stem.with_name(f"{dest_stem.name}.jpg")
            dest.write_bytes(thumb.data)
        elif thumb.format == rawpy.ThumbFormat.BITMAP:
            dest = dest_stem.with_name(f"{dest_stem.name}.tiff")
            Image.fromarray(thumb.data).save(dest)
        else:
            raise DecodeError(f"Unknown preview format {thumb.format} in {raw_path}")

        logging.debug(f"Extracted preview {raw_path} -> {dest}")
        return dest

    def render_full(self, source: Union[bytes, Path], dest: Path) -> Path:
        """
        Writes a full-size derivative with the orientation applied to the
        pixels. The EXIF block is carried over so capture data survives.
        """
        dest = Path(dest)
        try:
            with self._open(source) as img:
                exif = img.getexif()
                out = ImageOps.exif_transpose(img)
                if out.mode not in ("RGB", "L"):
                    out = out.convert("RGB")
                dest.parent.mkdir(parents=True, exist_ok=True)
                # exif_transpose already reset the orientation on its copy;
                # mirror that on the block we write back
                if exif.get(0x0112):
                    exif[0x0112] = 1
                out.save(dest, format=self._format_for(dest), exif=exif.tobytes(), quality=95)
        except DecodeError:
            raise
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise DecodeError(f"Failed to render thumbnail {dest}: {e}") from e
        return dest

    def render_bounded(self,
                       source: Union[bytes, Path],
                       dest: Path,
                       max_width: int = config.THUMB_250_SIZE[0],
                       max_height: int = config.THUMB_250_SIZE[1],
                       quality: int = config.THUMB_QUALITY) -> Path:
        """Fits the image inside max_width x max_height, never upscaling."""
        dest = Path(dest)
        try:
            with self._open(source) as img:
                out = ImageOps.exif_transpose(img)
                if out.mode not in ("RGB", "L"):
                    out = out.convert("RGB")
                # thumbnail() keeps the aspect ratio and never enlarges
                out.thumbnail((max_width, max_height), Image.LANCZOS)
                dest.parent.mkdir(parents=True, exist_ok=True)
                out.save(dest, format=self._format_for(dest), quality=quality)
        except DecodeError:
            raise
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise DecodeError(f"Failed to render thumbnail {dest}: {e}") from e
        return dest

    def _open(self, source: Union[bytes, Path]) -> Image.Image:
        try:
            if isinstance(source, (bytes, bytearray)):
                return Image.open(io.BytesIO(source))
            return Image.open(source)
        except (OSError, Image.DecompressionBombError) as e:
            raise DecodeError(f"Unrecognized image data: {e}") from e

    def _format_for(self, dest: Path) -> str:
        ext = dest.suffix.lower().lstrip('.')
        return Image.registered_extensions().get(f".{ext}", "JPEG")
