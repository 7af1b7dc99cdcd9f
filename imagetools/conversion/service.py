"""Single-image conversion pipeline: compress, resize, re-encode."""
import logging
from typing import Optional

from PIL import Image

from imagetools.config import (
    BLOCKED_INPUT_TYPES,
    JPEG_QUALITY,
    MAX_IMAGE_SIZE_BYTES,
    MIN_QUALITY,
    OUTPUT_FORMATS,
    SIZE_SEARCH_START_QUALITY,
    SIZE_SEARCH_STEP,
    WEBP_QUALITY,
)
from imagetools.conversion import codec
from imagetools.conversion.errors import (
    ConversionError,
    ImageTooLargeError,
    ProcessingError,
    UnsupportedInputFormatError,
    UnsupportedOutputFormatError,
)
from imagetools.conversion.models import (
    CompressionKind,
    CompressionSpec,
    ConversionOptions,
    ConversionRequest,
    ConversionResult,
)
from imagetools.conversion.resize import resize_image

logger = logging.getLogger("imagetools.service")

# Encoders the percentage compression step knows about
COMPRESSIBLE_FORMATS = ("jpeg", "jpg", "webp", "png")


def check_input_type(declared_media_type: str) -> None:
    """Reject blocklisted media types before anything is decoded."""
    label = BLOCKED_INPUT_TYPES.get((declared_media_type or "").lower())
    if label:
        raise UnsupportedInputFormatError(label)


def compress_by_percentage(img: Image.Image, fmt: Optional[str], quality: int) -> Optional[bytes]:
    """Encode at ``quality`` with the encoder for ``fmt``.

    Returns None when ``fmt`` has no encoder here; the caller then skips
    compression entirely.
    """
    fmt = (fmt or "").lower()
    if fmt not in COMPRESSIBLE_FORMATS:
        logger.info("No quality encoder for %r, compression skipped", fmt)
        return None
    return codec.encode_image(img, fmt, quality)


def compress_to_size(img: Image.Image, target_bytes: float) -> tuple[bytes, int]:
    """Search downwards from quality 100 in steps of 5 for a JPEG within budget.

    Returns (jpeg bytes, quality used). Gives up once quality reaches the
    floor, returning the last attempt; at most 20 encodes.
    """
    quality = SIZE_SEARCH_START_QUALITY
    data = b""
    used = quality
    while quality > MIN_QUALITY:
        data = codec.encode_image(img, "jpeg", quality)
        used = quality
        if len(data) <= target_bytes:
            break
        quality = max(MIN_QUALITY, quality - SIZE_SEARCH_STEP)
    logger.info("Size search settled at quality=%s (%d bytes, target %d)", used, len(data), target_bytes)
    return data, used


def encode_output(img: Image.Image, fmt: Optional[str]) -> bytes:
    """Final mandatory re-encode into one of the output formats."""
    if fmt == "png":
        return codec.encode_image(img, "png")
    if fmt == "jpg":
        return codec.encode_image(img, "jpeg", JPEG_QUALITY)
    if fmt == "webp":
        return codec.encode_image(img, "webp", WEBP_QUALITY)
    raise UnsupportedOutputFormatError(fmt)


class ConversionService:
    """Runs the conversion pipeline for one request at a time; holds no state."""

    def __init__(self, max_bytes: int = MAX_IMAGE_SIZE_BYTES):
        self.max_bytes = max_bytes
        logger.info("ConversionService initialized (outputs=%s, max_bytes=%s)", OUTPUT_FORMATS, max_bytes)

    def _compress(self, img: Image.Image, spec: CompressionSpec, fmt: Optional[str]) -> Image.Image:
        if spec.kind == CompressionKind.PERCENTAGE:
            data = compress_by_percentage(img, fmt, spec.quality)
            if data is None:
                return img
        else:
            data, _ = compress_to_size(img, spec.target_bytes)
        return codec.decode_image(data)

    def run(self, request: ConversionRequest) -> tuple[str, bytes]:
        """Run every step in order. Raises ConversionError subclasses on failure."""
        options = request.options
        if self.max_bytes and len(request.image_bytes) > self.max_bytes:
            raise ImageTooLargeError(self.max_bytes)
        check_input_type(request.declared_media_type)

        try:
            img = codec.decode_image(request.image_bytes)

            spec = options.compression_spec
            if spec is not None:
                target = options.format or request.declared_media_type.split("/")[-1]
                img = self._compress(img, spec, target)

            if options.wants_resize:
                img = resize_image(img, options.width, options.height)

            content = encode_output(img, options.format)
        except ConversionError:
            raise
        except Exception as e:
            raise ProcessingError(str(e)) from e
        return f"image/{options.format}", content

    def convert(
        self,
        image_bytes: bytes,
        declared_media_type: str,
        options: ConversionOptions,
        filename: Optional[str] = None,
    ) -> ConversionResult:
        """Convert one image and fold any failure into the result."""
        request = ConversionRequest(
            image_bytes=image_bytes,
            declared_media_type=(declared_media_type or "").lower(),
            options=options,
        )
        try:
            media_type, content = self.run(request)
        except ProcessingError as e:
            logger.exception("Image conversion failed for %s: %s", filename, e.details)
            return ConversionResult(status_code=e.status_code, error=e.message, details=e.details)
        except ConversionError as e:
            logger.warning("Rejected %s: %s", filename, e.message)
            return ConversionResult(status_code=e.status_code, error=e.message, details=e.details)
        logger.info("Converted %s -> %s (%d bytes)", filename, media_type, len(content))
        return ConversionResult(media_type=media_type, content=content)


# Singleton
_conversion_service: Optional[ConversionService] = None


def get_conversion_service() -> ConversionService:
    global _conversion_service
    if _conversion_service is None:
        _conversion_service = ConversionService()
    return _conversion_service
