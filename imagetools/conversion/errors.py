"""Conversion error taxonomy. Each error knows the HTTP status it maps to."""
from typing import Optional


class ConversionError(Exception):
    """Base class for failures reported back to the client."""

    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class MissingFileError(ConversionError):
    status_code = 400

    def __init__(self):
        super().__init__("No file uploaded")


class UnsupportedInputFormatError(ConversionError):
    status_code = 415

    def __init__(self, label: str):
        super().__init__(f"{label} format is not supported")
        self.label = label


class UnsupportedOutputFormatError(ConversionError):
    status_code = 400

    def __init__(self, requested: Optional[str] = None):
        super().__init__("Unsupported output format")
        self.requested = requested


def format_limit(max_bytes: int) -> str:
    """Human readable upload limit: whole or fractional MB, bytes below 1 MB."""
    mb = 1024 * 1024
    if max_bytes < mb:
        return f"{max_bytes} bytes"
    if max_bytes % mb == 0:
        return f"{max_bytes // mb} MB"
    return f"{max_bytes / mb:.2f} MB"


class ImageTooLargeError(ConversionError):
    status_code = 413

    def __init__(self, max_bytes: int):
        super().__init__(f"File too large (max {format_limit(max_bytes)})")
        self.max_bytes = max_bytes


class ProcessingError(ConversionError):
    """Any decode/resize/encode failure, collapsed to one generic error."""

    status_code = 500

    def __init__(self, details: str):
        super().__init__("Image conversion failed", details=details)
