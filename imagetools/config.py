"""Application configuration. Loads from environment and .env file."""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
# Load .env from cwd, then project root .env
load_dotenv()
load_dotenv(BASE_DIR / ".env")

# Deployment environment (NODE_ENV kept for parity with the web client build)
APP_ENV = os.getenv("APP_ENV", os.getenv("NODE_ENV", "development")).strip().lower()

# Prebuilt single-page client; served only when the directory exists
STATIC_DIR = Path(os.getenv("STATIC_DIR", str(BASE_DIR / "build")))

# Input media types rejected before decoding (media type -> label used in errors)
BLOCKED_INPUT_TYPES = {
    "image/x-icon": "ICO",
    "image/tiff": "TIFF",
    "image/heic": "HEIC",
}

# Media types the client offers in its file picker
ACCEPTED_INPUT_TYPES = {
    "image/jpeg": [".jpg", ".jpeg", ".jpe", ".jif", ".jfif"],
    "image/png": [".png"],
    "image/webp": [".webp"],
    "image/svg+xml": [".svg"],
    "image/gif": [".gif"],
    "image/bmp": [".bmp"],
    "image/tiff": [".tiff", ".tif"],
    "image/x-icon": [".ico"],
    "image/avif": [".avif"],
    "image/heic": [".heic"],
}

# Output formats accepted by the final encode step
OUTPUT_FORMATS = ["png", "jpg", "webp"]

# Quality used by the final encode step (png has no quality knob)
JPEG_QUALITY = int(os.getenv("JPEG_QUALITY", "90"))
WEBP_QUALITY = int(os.getenv("WEBP_QUALITY", "90"))

# Target-size search: start quality, step and floor
SIZE_SEARCH_START_QUALITY = 100
SIZE_SEARCH_STEP = 5
MIN_QUALITY = 1
MAX_QUALITY = 100

# Contain-fit padding colour
RESIZE_BACKGROUND = (255, 255, 255)

# Limits (env): max size per uploaded image (MB)
MAX_IMAGE_SIZE_MB = int(os.getenv("MAX_IMAGE_SIZE_MB", "20"))
MAX_IMAGE_SIZE_BYTES = MAX_IMAGE_SIZE_MB * 1024 * 1024
UPLOAD_CHUNK_BYTES = 1024 * 1024

# Server (for uvicorn)
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3355"))
# CORS: a single origin per deployment environment
_DEFAULT_CORS_ORIGIN = (
    "https://imagetools.toolworks.dev" if APP_ENV == "production" else "http://localhost:3000"
)
CORS_ORIGIN = os.getenv("CORS_ORIGIN", _DEFAULT_CORS_ORIGIN).strip()
CORS_METHODS = ["GET", "POST", "OPTIONS"]
CORS_HEADERS = ["Content-Type"]

# Client defaults
API_URL = os.getenv("IMAGETOOLS_API_URL", f"http://localhost:{PORT}/api")
CLIENT_TIMEOUT = float(os.getenv("IMAGETOOLS_CLIENT_TIMEOUT", "60"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("imagetools")
