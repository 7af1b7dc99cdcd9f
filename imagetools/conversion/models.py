"""Conversion request/response models."""
from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, field_validator

from imagetools.config import MAX_QUALITY, MIN_QUALITY

BYTES_PER_MB = 1024 * 1024


class CompressionKind(str, Enum):
    PERCENTAGE = "percentage"
    SIZE = "size"


class Mode(str, Enum):
    CONVERT = "convert"
    RESIZE = "resize"
    COMPRESS = "compress"


@dataclass(frozen=True)
class CompressionSpec:
    """Either an encoder quality or a byte budget for the target-size search."""

    kind: CompressionKind
    quality: Optional[int] = None
    target_bytes: Optional[float] = None

    @classmethod
    def percentage(cls, quality: float) -> "CompressionSpec":
        quality = int(round(min(MAX_QUALITY, max(MIN_QUALITY, quality))))
        return cls(kind=CompressionKind.PERCENTAGE, quality=quality)

    @classmethod
    def size(cls, megabytes: float) -> "CompressionSpec":
        return cls(kind=CompressionKind.SIZE, target_bytes=megabytes * BYTES_PER_MB)


class CompressionOptions(BaseModel):
    """Compression as sent by the client: a quality percentage or a size in MB."""

    type: Literal["percentage", "size"]
    value: float

    @field_validator("value")
    @classmethod
    def _value_positive_for_size(cls, v: float, info):
        if info.data.get("type") == "size" and v <= 0:
            raise ValueError("target size must be positive")
        return v

    def to_spec(self) -> CompressionSpec:
        if self.type == CompressionKind.PERCENTAGE.value:
            return CompressionSpec.percentage(self.value)
        return CompressionSpec.size(self.value)


class ConversionOptions(BaseModel):
    """Options JSON posted alongside the image.

    ``format`` is left as a free string: unknown values are rejected by the
    format step so the client gets the "Unsupported output format" error.
    """

    format: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    compression: Optional[CompressionOptions] = None

    @field_validator("format")
    @classmethod
    def _empty_format(cls, v: Optional[str]) -> Optional[str]:
        # Compared verbatim by the format step; only "" means "not given"
        return v or None

    @field_validator("width", "height")
    @classmethod
    def _dimension(cls, v: Optional[int]) -> Optional[int]:
        # 0 means "not set", same as omitting the field
        if not v:
            return None
        if v < 0:
            raise ValueError("dimensions must be positive")
        return v

    @property
    def compression_spec(self) -> Optional[CompressionSpec]:
        return self.compression.to_spec() if self.compression else None

    @property
    def wants_resize(self) -> bool:
        return self.width is not None or self.height is not None


@dataclass
class ConversionRequest:
    image_bytes: bytes
    declared_media_type: str
    options: ConversionOptions


@dataclass
class ConversionResult:
    """Outcome of one pipeline run: encoded bytes or an error with its status."""

    media_type: Optional[str] = None
    content: Optional[bytes] = None
    status_code: int = 200
    error: Optional[str] = None
    details: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def error_body(self) -> dict:
        body = {"error": self.error}
        if self.details is not None:
            body["details"] = self.details
        return body
