"""Resize with a "contain" fit: scale inside the box and pad the rest."""
import logging
from typing import Optional, Tuple

from PIL import Image

from imagetools.config import RESIZE_BACKGROUND

logger = logging.getLogger("imagetools.resize")


def resize_contain(
    img: Image.Image,
    target_width: int,
    target_height: int,
    background: Tuple[int, int, int] = RESIZE_BACKGROUND,
) -> Image.Image:
    """
    Produce an image of exactly (target_width, target_height).
    The source is scaled (up or down) to fit inside the box, keeping its aspect
    ratio, centered, and the remainder is filled with an opaque background.
    Transparency inside the source itself is kept.
    """
    w, h = img.size
    tw, th = target_width, target_height
    alpha = img.mode in ("RGBA", "LA", "PA") or (img.mode == "P" and "transparency" in img.info)
    mode = "RGBA" if alpha else "RGB"
    if img.mode != mode:
        img = img.convert(mode)
    if w == tw and h == th:
        return img.copy()

    fill = background + (255,) if mode == "RGBA" else background
    out = Image.new(mode, (tw, th), fill)
    scale = min(tw / w, th / h)
    new_w = max(1, int(round(w * scale)))
    new_h = max(1, int(round(h * scale)))
    resized = img.resize((new_w, new_h), Image.Resampling.LANCZOS)
    out.paste(resized, ((tw - new_w) // 2, (th - new_h) // 2))
    return out


def resize_keep_aspect(
    img: Image.Image,
    target_width: Optional[int] = None,
    target_height: Optional[int] = None,
) -> Image.Image:
    """
    Scale image to the given width or, failing that, the given height.
    The other dimension is computed from the image ratio.
    """
    w, h = img.size
    if target_width is not None:
        scale = target_width / w
    else:
        scale = target_height / h
    new_w = max(1, int(round(w * scale)))
    new_h = max(1, int(round(h * scale)))
    return img.resize((new_w, new_h), Image.Resampling.LANCZOS)


def resize_image(
    img: Image.Image,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> Image.Image:
    """Contain-fit when both dimensions are given, aspect-preserving scale otherwise."""
    if width is not None and height is not None:
        return resize_contain(img, width, height)
    if img.mode == "P":
        img = img.convert("RGBA" if "transparency" in img.info else "RGB")
    logger.debug("Single-dimension resize to width=%s height=%s", width, height)
    return resize_keep_aspect(img, target_width=width, target_height=height)
