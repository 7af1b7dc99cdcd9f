"""Tests for the conversion form and the HTTP client."""

import io

import httpx
import pytest
from PIL import Image

from conftest import image_bytes, make_image
from imagetools.client import ConversionForm, ConversionRequestError, ConverterClient, new_filename
from imagetools.conversion.models import CompressionKind, Mode


@pytest.fixture
def api(client):
    """ConverterClient talking to the in-process app."""
    return ConverterClient(base_url="http://testserver/api", http_client=client)


@pytest.fixture
def photo_path(tmp_path):
    path = tmp_path / "holiday.photo.png"
    path.write_bytes(image_bytes(make_image((400, 300), "orange"), "PNG"))
    return path


class TestNewFilename:
    def test_new_extension(self):
        assert new_filename("cat.png", "webp") == "cat.webp"

    def test_dimension_suffix_needs_both(self):
        assert new_filename("cat.png", "jpg", 200, 100) == "cat-200-100.jpg"
        assert new_filename("cat.png", "jpg", 200, None) == "cat.jpg"

    def test_keeps_inner_dots(self):
        assert new_filename("my.cat.photo.jpeg", "png") == "my.cat.photo.png"

    def test_falls_back_to_original_extension(self):
        assert new_filename("cat.gif") == "cat.gif"

    def test_no_extension(self):
        assert new_filename("README", "png") == "README.png"


class TestConversionForm:
    def test_select_image(self, photo_path):
        form = ConversionForm()

        assert form.select_file(photo_path)
        assert form.file_type == "image/png"
        assert form.image_size == (400, 300)
        assert form.error == ""

    def test_rejects_non_images(self, tmp_path, photo_path):
        form = ConversionForm()
        form.select_file(photo_path)
        text = tmp_path / "notes.txt"
        text.write_text("hello")

        assert not form.select_file(text)
        assert form.error == "Please select a valid image file"
        assert form.file_bytes is None

    def test_undecodable_image_still_selectable(self, tmp_path):
        path = tmp_path / "broken.jpg"
        path.write_bytes(b"nope")
        form = ConversionForm()

        assert form.select_file(path)
        assert form.image_size is None

    def test_scale(self, photo_path):
        form = ConversionForm()
        form.select_file(photo_path)
        form.set_scale(50)

        assert (form.width, form.height) == (200, 150)

    def test_aspect_locked_dimensions(self, photo_path):
        form = ConversionForm()
        form.select_file(photo_path)

        form.set_width(100)
        assert form.height == 75
        form.set_height(60)
        assert form.width == 80

    def test_compression_values_are_range_checked(self):
        form = ConversionForm()
        form.set_compression(CompressionKind.PERCENTAGE, 150)
        assert form.compression_value == 80
        form.set_compression(value=30)
        assert form.compression_value == 30
        form.set_compression("size", 0)
        assert form.compression_value == 30
        form.set_compression(value=0.5)
        assert form.compression_value == 0.5

    def test_options_only_compress_in_compress_mode(self):
        form = ConversionForm(format="jpg", width=0, height=120)
        assert form.build_options() == {"format": "jpg", "height": 120}

        form.set_mode("compress")
        form.set_compression("size", 2)
        assert form.build_options()["compression"] == {"type": "size", "value": 2}
        assert form.mode == Mode.COMPRESS

    def test_submit_without_file(self, api, tmp_path):
        form = ConversionForm()

        assert form.submit(api, tmp_path) is None
        assert form.error == "Please select a file first"

    def test_submit_downloads_converted_file(self, api, photo_path, tmp_path):
        form = ConversionForm(format="webp")
        form.select_file(photo_path)
        form.set_mode(Mode.RESIZE)
        form.set_width(200)

        saved = form.submit(api, tmp_path)

        assert saved == tmp_path / "holiday.photo-200-150.webp"
        assert form.status == "success"
        img = Image.open(saved)
        assert img.format == "WEBP"
        assert img.size == (200, 150)

    def test_submit_with_compression(self, api, photo_path, tmp_path):
        form = ConversionForm(format="jpg")
        form.select_file(photo_path)
        form.set_mode(Mode.COMPRESS)
        form.set_compression(CompressionKind.PERCENTAGE, 40)

        saved = form.submit(api, tmp_path)

        assert saved.name == "holiday.photo.jpg"
        assert Image.open(saved).format == "JPEG"

    def test_submit_reports_server_error(self, api, photo_path, tmp_path):
        form = ConversionForm(format="bmp")
        form.select_file(photo_path)

        assert form.submit(api, tmp_path) is None
        assert form.status == "error"
        assert form.error == "Unsupported output format"
        assert list(tmp_path.glob("*.bmp")) == []

    def test_submit_reports_blocked_input(self, api, tmp_path):
        path = tmp_path / "scan.tiff"
        path.write_bytes(image_bytes(make_image(), "TIFF"))
        form = ConversionForm()
        form.select_file(path)

        form.submit(api, tmp_path)

        assert form.error == "TIFF format is not supported"

    def test_submit_network_failure(self, photo_path, tmp_path):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport = httpx.MockTransport(refuse)
        offline = ConverterClient(base_url="http://nowhere/api", http_client=httpx.Client(transport=transport))
        form = ConversionForm()
        form.select_file(photo_path)

        assert form.submit(offline, tmp_path) is None
        assert form.status == "error"
        assert "connection refused" in form.error


class TestConverterClient:
    def test_health_and_formats(self, api):
        assert api.health() == {"status": "ok"}
        assert api.formats()["output"] == ["png", "jpg", "webp"]

    def test_convert_returns_bytes_and_type(self, api):
        content, media_type = api.convert(
            "a.png", image_bytes(make_image(), "PNG"), "image/png", {"format": "jpg"}
        )
        assert media_type == "image/jpg"
        assert Image.open(io.BytesIO(content)).format == "JPEG"

    def test_error_carries_status_and_details(self, api):
        with pytest.raises(ConversionRequestError) as exc_info:
            api.convert("a.png", b"garbage", "image/png", {"format": "png"})

        err = exc_info.value
        assert err.status_code == 500
        assert err.message == "Image conversion failed"
        assert err.details
        assert str(err).startswith("[500] Image conversion failed")

    def test_non_json_error_body(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(502, text="bad gateway"))
        api = ConverterClient(base_url="http://proxy/api", http_client=httpx.Client(transport=transport))

        with pytest.raises(ConversionRequestError) as exc_info:
            api.health()
        assert exc_info.value.message == "HTTP error! status: 502"

    def test_context_manager_closes_own_client(self):
        with ConverterClient(base_url="http://localhost:1/api") as api:
            http = api._http
        assert http.is_closed
