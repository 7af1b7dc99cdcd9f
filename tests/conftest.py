"""Pytest fixtures for image tools tests."""

import io
import os

import pytest
from PIL import Image

# Set test environment variables BEFORE any app imports
os.environ["APP_ENV"] = "development"
os.environ.pop("CORS_ORIGIN", None)
os.environ.setdefault("LOG_LEVEL", "WARNING")


def make_image(size=(100, 100), color="red", mode="RGB"):
    return Image.new(mode, size, color=color)


def image_bytes(img, fmt="PNG", **save_kw):
    buffer = io.BytesIO()
    img.save(buffer, format=fmt, **save_kw)
    return buffer.getvalue()


def noisy_image(size=(800, 600)):
    """Photo-like content that does not compress to nothing."""
    r = Image.effect_noise(size, 64)
    g = Image.linear_gradient("L").resize(size)
    b = Image.radial_gradient("L").resize(size)
    return Image.merge("RGB", (r, g, b))


@pytest.fixture
def client():
    """Create test client."""
    from fastapi.testclient import TestClient

    from imagetools.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def png_bytes():
    return image_bytes(make_image((400, 200), "blue"), "PNG")


@pytest.fixture
def jpeg_bytes():
    return image_bytes(make_image((300, 300), "green"), "JPEG", quality=95)


@pytest.fixture
def webp_bytes():
    return image_bytes(make_image((120, 80), "yellow"), "WEBP")


@pytest.fixture
def sample_images(png_bytes, jpeg_bytes, webp_bytes):
    """(filename, bytes, declared media type) for each supported input."""
    return {
        "png": ("sample.png", png_bytes, "image/png"),
        "jpeg": ("sample.jpg", jpeg_bytes, "image/jpeg"),
        "webp": ("sample.webp", webp_bytes, "image/webp"),
    }


@pytest.fixture
def photo():
    return noisy_image()
