"""
Pillow Image Transformer Adapter.

Implements ImageTransformerPort with Pillow. Applies EXIF orientation,
resizes per the fit mode, and re-encodes to the requested format.
"""

from __future__ import annotations

from io import BytesIO
from typing import Any

from PIL import Image, ImageOps, UnidentifiedImageError

from src.components.transform import TransformOptions
from src.core.errors import TransformError

# Our format names -> Pillow encoder names
PIL_FORMATS: dict[str, str] = {
    "webp": "WEBP",
    "jpeg": "JPEG",
    "png": "PNG",
    "avif": "AVIF",
    "gif": "GIF",
    "tiff": "TIFF",
}

# Encoders that cannot store an alpha channel
_OPAQUE_FORMATS = {"jpeg"}


def target_size(
    source_size: tuple[int, int],
    width: int | None,
    height: int | None,
) -> tuple[int, int]:
    """Fill in a missing dimension from the source aspect ratio."""
    src_w, src_h = source_size
    if width is None and height is None:
        return src_w, src_h
    if width is None:
        assert height is not None
        width = max(1, round(src_w * height / src_h))
    elif height is None:
        height = max(1, round(src_h * width / src_w))
    return width, height


def resize_image(
    img: Image.Image,
    options: TransformOptions,
    resample: Image.Resampling = Image.Resampling.LANCZOS,
) -> Image.Image:
    if not options.resizes:
        return img

    size = target_size(img.size, options.width, options.height)

    if options.fit == "cover":
        return ImageOps.fit(img, size, method=resample)
    if options.fit == "contain":
        return ImageOps.pad(img, size, method=resample)
    if options.fit == "fill":
        return img.resize(size, resample)
    if options.fit == "inside":
        return ImageOps.contain(img, size, method=resample)
    if options.fit == "outside":
        scale = max(size[0] / img.width, size[1] / img.height)
        scaled = (max(1, round(img.width * scale)), max(1, round(img.height * scale)))
        return img.resize(scaled, resample)

    raise TransformError(f"Unknown fit mode: {options.fit}")


def prepare_mode(img: Image.Image, fmt: str) -> Image.Image:
    """Convert to a mode the target encoder accepts."""
    has_alpha = img.mode in ("RGBA", "LA") or (
        img.mode == "P" and "transparency" in img.info
    )

    if fmt in _OPAQUE_FORMATS:
        if has_alpha:
            rgba = img.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.split()[-1])
            return background
        return img if img.mode in ("RGB", "L") else img.convert("RGB")

    if img.mode in ("RGB", "RGBA", "L", "LA"):
        return img
    return img.convert("RGBA" if has_alpha else "RGB")


class PillowImageTransformer:
    """Resize/reformat images with Pillow."""

    def __init__(
        self,
        *,
        quality: int = 80,
        resample: Image.Resampling = Image.Resampling.LANCZOS,
    ) -> None:
        self.quality = quality
        self.resample = resample

    def _save_kwargs(self, fmt: str) -> dict[str, Any]:
        if fmt == "jpeg":
            return {"quality": self.quality, "optimize": True}
        if fmt == "webp":
            return {"quality": self.quality, "method": 4}
        if fmt == "avif":
            return {"quality": self.quality}
        if fmt == "png":
            return {"optimize": True}
        return {}

    def transform(self, source: bytes, options: TransformOptions) -> bytes:
        encoder = PIL_FORMATS.get(options.format)
        if encoder is None:
            raise TransformError(f"Unsupported format: {options.format}")

        output = BytesIO()
        try:
            with Image.open(BytesIO(source)) as img:
                img.load()
                oriented = ImageOps.exif_transpose(img)
                working = prepare_mode(oriented, "png")
                working = resize_image(working, options, self.resample)
                working = prepare_mode(working, options.format)
                working.save(output, format=encoder, **self._save_kwargs(options.format))
        except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
            raise TransformError(f"Unreadable image: {exc}") from exc
        except (OSError, ValueError, KeyError) as exc:
            # KeyError: Pillow built without the requested encoder
            raise TransformError(f"Could not encode {options.format}: {exc}") from exc

        return output.getvalue()
