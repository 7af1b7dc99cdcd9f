"""Client side of the converter: HTTP client and the conversion form state."""
import json
import logging
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import httpx
from PIL import Image, UnidentifiedImageError

from imagetools.config import API_URL, CLIENT_TIMEOUT, OUTPUT_FORMATS
from imagetools.conversion.models import CompressionKind, Mode

logger = logging.getLogger("imagetools.client")

# Browsers report these; mimetypes does not know all of them everywhere
mimetypes.add_type("image/webp", ".webp")
mimetypes.add_type("image/avif", ".avif")
mimetypes.add_type("image/heic", ".heic")
mimetypes.add_type("image/x-icon", ".ico")


class ConversionRequestError(Exception):
    """Raised when the API answers a conversion request with an error status."""

    def __init__(self, status_code: int, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"[{self.status_code}] {self.message}: {self.details}"
        return f"[{self.status_code}] {self.message}"


def new_filename(
    original: str,
    new_extension: Optional[str] = None,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> str:
    """Download name: original stem, ``-<w>-<h>`` when both are set, new extension."""
    stem, dot, ext = original.rpartition(".")
    if not dot:
        stem, ext = original, ""
    suffix = f"-{width}-{height}" if width and height else ""
    return f"{stem}{suffix}.{new_extension or ext}"


class ConverterClient:
    """Synchronous client for the conversion API.

    An existing ``httpx.Client`` (for example FastAPI's TestClient) may be
    passed in; it is then left open on ``close()``.
    """

    def __init__(
        self,
        base_url: str = API_URL,
        timeout: float = CLIENT_TIMEOUT,
        http_client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        if response.is_success:
            return
        message = f"HTTP error! status: {response.status_code}"
        details = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("error") or body.get("detail") or message
            details = body.get("details")
        raise ConversionRequestError(response.status_code, str(message), details)

    def health(self) -> Dict[str, Any]:
        response = self._http.get(self._url("health"))
        self._raise_for_error(response)
        return response.json()

    def formats(self) -> Dict[str, Any]:
        response = self._http.get(self._url("formats"))
        self._raise_for_error(response)
        return response.json()

    def convert(
        self,
        filename: str,
        content: bytes,
        media_type: str,
        options: Dict[str, Any],
    ) -> Tuple[bytes, str]:
        """Post one image; returns (converted bytes, response media type)."""
        response = self._http.post(
            self._url("convert"),
            files={"image": (filename, content, media_type)},
            data={"options": json.dumps(options)},
        )
        self._raise_for_error(response)
        return response.content, response.headers.get("content-type", "")


@dataclass
class ConversionForm:
    """State of the conversion form: selected file, mode and option values."""

    mode: Mode = Mode.CONVERT
    format: str = "png"
    width: Optional[int] = None
    height: Optional[int] = None
    compression_type: CompressionKind = CompressionKind.PERCENTAGE
    compression_value: float = 80
    scale: float = 100
    file_name: Optional[str] = None
    file_bytes: Optional[bytes] = None
    file_type: Optional[str] = None
    image_size: Optional[Tuple[int, int]] = None
    status: str = "idle"  # "idle" | "success" | "error"
    error: str = ""
    last_output: Optional[Path] = field(default=None, repr=False)

    def _clear_file(self) -> None:
        self.file_name = None
        self.file_bytes = None
        self.file_type = None
        self.image_size = None

    def select_file(self, path: Union[str, Path]) -> bool:
        """Load a file into the form. Non-image media types are refused."""
        path = Path(path)
        self.error = ""
        media_type, _ = mimetypes.guess_type(path.name)
        if not media_type or not media_type.startswith("image/"):
            self.error = "Please select a valid image file"
            self._clear_file()
            return False
        self.file_name = path.name
        self.file_bytes = path.read_bytes()
        self.file_type = media_type
        self.image_size = None
        try:
            with Image.open(path) as img:
                self.image_size = img.size
        except (UnidentifiedImageError, OSError) as e:
            # The server decides whether it can decode the file
            logger.debug("Could not read dimensions of %s: %s", path.name, e)
        return True

    def set_mode(self, mode: Union[Mode, str]) -> None:
        if mode is None:
            return
        self.mode = Mode(mode)

    def set_format(self, fmt: str) -> None:
        self.format = fmt

    def set_scale(self, percent: float) -> None:
        """Derive width/height from a percentage of the original size."""
        self.scale = percent
        if self.image_size:
            w, h = self.image_size
            self.width = round(w * percent / 100)
            self.height = round(h * percent / 100)

    def set_width(self, width: Optional[int]) -> None:
        """Set width and keep height in proportion when the original size is known."""
        self.width = width
        if width and self.image_size:
            w, h = self.image_size
            self.height = round(width * h / w)

    def set_height(self, height: Optional[int]) -> None:
        self.height = height
        if height and self.image_size:
            w, h = self.image_size
            self.width = round(height * w / h)

    def set_compression(self, kind: Optional[Union[CompressionKind, str]] = None, value: Optional[float] = None) -> None:
        """Update compression settings; out-of-range values are ignored."""
        if kind is not None:
            self.compression_type = CompressionKind(kind)
        if value is None:
            return
        if self.compression_type == CompressionKind.PERCENTAGE:
            if 1 <= value <= 100:
                self.compression_value = value
        elif value > 0:
            self.compression_value = value

    def build_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"format": self.format}
        if self.width:
            options["width"] = self.width
        if self.height:
            options["height"] = self.height
        if self.mode == Mode.COMPRESS:
            options["compression"] = {
                "type": self.compression_type.value,
                "value": self.compression_value,
            }
        return options

    def output_filename(self) -> str:
        return new_filename(self.file_name or "image", self.format, self.width, self.height)

    def submit(self, client: ConverterClient, out_dir: Union[str, Path] = ".") -> Optional[Path]:
        """Send the form; on success write the download and return its path."""
        if not self.file_bytes:
            self.error = "Please select a file first"
            return None
        self.status = "idle"
        self.error = ""
        if self.format not in OUTPUT_FORMATS:
            logger.warning("Submitting unknown output format %r", self.format)
        try:
            content, _ = client.convert(
                self.file_name,
                self.file_bytes,
                self.file_type,
                self.build_options(),
            )
        except ConversionRequestError as e:
            logger.error("Conversion failed: %s", e)
            self.status = "error"
            self.error = e.message
            return None
        except httpx.HTTPError as e:
            logger.error("Conversion request failed: %s", e)
            self.status = "error"
            self.error = str(e) or "Unknown error occurred"
            return None
        target = Path(out_dir) / self.output_filename()
        target.write_bytes(content)
        self.last_output = target
        self.status = "success"
        logger.info("Saved %s (%d bytes)", target, len(content))
        return target
