"""Thin wrappers around Pillow for decoding and encoding in memory."""
import io
import logging
from typing import Optional

from PIL import Image

logger = logging.getLogger("imagetools.codec")

# Format name (as used in options) -> Pillow encoder name
ENCODERS = {
    "jpeg": "JPEG",
    "jpg": "JPEG",
    "webp": "WEBP",
    "png": "PNG",
}


def decode_image(data: bytes) -> Image.Image:
    """Load image bytes fully into memory. Raises on undecodable input."""
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


def _prepare(img: Image.Image, encoder: str) -> Image.Image:
    if encoder == "JPEG" and img.mode not in ("RGB", "L", "CMYK"):
        return img.convert("RGB")
    if encoder == "WEBP" and img.mode not in ("RGB", "RGBA"):
        return img.convert("RGBA" if _has_alpha(img) else "RGB")
    if encoder == "PNG" and img.mode in ("CMYK", "YCbCr", "LAB", "HSV"):
        return img.convert("RGB")
    return img


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA", "PA") or (img.mode == "P" and "transparency" in img.info)


def _quantize_png(img: Image.Image, quality: int) -> Image.Image:
    """Palette-reduce a PNG so quality below 100 actually shrinks the file."""
    colors = max(2, min(256, round(256 * quality / 100)))
    if img.mode not in ("RGB", "RGBA"):
        img = img.convert("RGBA" if _has_alpha(img) else "RGB")
    method = Image.Quantize.FASTOCTREE if img.mode == "RGBA" else Image.Quantize.MEDIANCUT
    return img.quantize(colors=colors, method=method)


def encode_image(img: Image.Image, fmt: str, quality: Optional[int] = None) -> bytes:
    """Encode to ``fmt`` (jpeg/jpg/webp/png). ``quality`` is ignored by plain PNG."""
    encoder = ENCODERS[fmt.lower()]
    out = _prepare(img, encoder)
    save_kw: dict = {"format": encoder}
    if encoder == "JPEG":
        save_kw["quality"] = quality if quality is not None else 75
        save_kw["optimize"] = True
    elif encoder == "WEBP":
        save_kw["quality"] = quality if quality is not None else 80
    elif encoder == "PNG":
        if quality is not None and quality < 100:
            out = _quantize_png(out, quality)
        save_kw["optimize"] = True
    buf = io.BytesIO()
    out.save(buf, **save_kw)
    data = buf.getvalue()
    logger.debug("Encoded %s (quality=%s) -> %d bytes", encoder, quality, len(data))
    return data
