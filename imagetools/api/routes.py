"""API routes for upload and conversion."""
import logging
from typing import Optional

from fastapi import APIRouter, File, Form, UploadFile
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from imagetools.config import (
    ACCEPTED_INPUT_TYPES,
    BLOCKED_INPUT_TYPES,
    MAX_IMAGE_SIZE_BYTES,
    OUTPUT_FORMATS,
    UPLOAD_CHUNK_BYTES,
)
from imagetools.conversion.errors import ConversionError, ImageTooLargeError, MissingFileError, ProcessingError
from imagetools.conversion.models import ConversionOptions
from imagetools.conversion.service import get_conversion_service

logger = logging.getLogger("imagetools.api")
router = APIRouter(prefix="/api", tags=["imagetools"])


def _error_response(err: ConversionError) -> JSONResponse:
    body = {"error": err.message}
    if err.details is not None:
        body["details"] = err.details
    return JSONResponse(status_code=err.status_code, content=body)


def _read_upload(file: UploadFile, max_bytes: int) -> bytes:
    """Read the whole upload into memory, refusing anything over max_bytes."""
    chunks = []
    total = 0
    while chunk := file.file.read(UPLOAD_CHUNK_BYTES):
        total += len(chunk)
        if max_bytes and total > max_bytes:
            raise ImageTooLargeError(max_bytes)
        chunks.append(chunk)
    return b"".join(chunks)


def _parse_options(raw: Optional[str]) -> ConversionOptions:
    try:
        return ConversionOptions.model_validate_json(raw or "")
    except ValidationError as e:
        raise ProcessingError(f"Invalid options: {e.errors(include_url=False)}") from e


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/limits")
def get_limits():
    """Return upload limits for the client."""
    return {
        "max_image_size_mb": MAX_IMAGE_SIZE_BYTES // (1024 * 1024),
        "max_image_size_bytes": MAX_IMAGE_SIZE_BYTES,
    }


@router.get("/formats")
def get_formats():
    return {
        "input": ACCEPTED_INPUT_TYPES,
        "blocked_input": list(BLOCKED_INPUT_TYPES),
        "output": OUTPUT_FORMATS,
    }


@router.post("/convert")
def convert(
    image: Optional[UploadFile] = File(None),
    options: Optional[str] = Form(None),
):
    """Convert one uploaded image according to the JSON ``options`` field.

    Runs synchronously in the request's worker thread and answers with the
    encoded bytes, or a JSON ``{"error": ...}`` body on failure.
    """
    if image is None:
        return _error_response(MissingFileError())
    svc = get_conversion_service()
    try:
        data = _read_upload(image, svc.max_bytes)
        parsed = _parse_options(options)
    except ImageTooLargeError as e:
        logger.warning("Upload rejected for %s: %s", image.filename, e.message)
        return _error_response(e)
    except ProcessingError as e:
        logger.exception("Image conversion failed for %s: %s", image.filename, e.details)
        return _error_response(e)
    except Exception as e:
        logger.exception("Upload failed for %s: %s", image.filename, e)
        return _error_response(ProcessingError(str(e)))

    result = svc.convert(data, image.content_type or "", parsed, filename=image.filename)
    if not result.ok:
        return JSONResponse(status_code=result.status_code, content=result.error_body())
    return Response(content=result.content, media_type=result.media_type)
