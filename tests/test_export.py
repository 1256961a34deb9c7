"""
Tests for background image ingestion and PDF export.

Run with: pytest tests/test_export.py -v
"""
import base64
import io

import pytest
from PIL import Image

from conftest import RecordingRenderer

from codemaker.core.errors import ImageRejectedError
from codemaker.core.geometry import Paper
from codemaker.editor.export import ExportSerializer, FpdfRenderer, hex_to_rgb
from codemaker.editor.images import (
    check_aspect_ratio,
    image_type_from_data_uri,
    load_background_image,
    px_to_mm,
)
from codemaker.editor.scene import GroupPrimitive, ImagePrimitive, RectPrimitive, UnsupportedPrimitive


def _image_bytes(width: int, height: int, fmt: str = "PNG") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), "white").save(buf, format=fmt)
    return buf.getvalue()


def _data_uri(data: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


@pytest.fixture
def serializer():
    RecordingRenderer.instances.clear()
    return ExportSerializer(RecordingRenderer)


class TestImages:
    def test_px_to_mm(self):
        assert px_to_mm(595) == 210
        assert px_to_mm(842) == 297
        assert px_to_mm(300, dpi=150) == 51

    def test_png_document(self):
        image = load_background_image(_image_bytes(595, 842), "scan.png")
        assert (image.width_mm, image.height_mm) == (210, 297)
        assert image.mime_type == "image/png"
        assert image.paper == Paper(210, 297)
        assert image_type_from_data_uri(image.data_uri) == "png"

    def test_jpeg_and_gif_accepted(self):
        assert load_background_image(_image_bytes(400, 400, "JPEG")).mime_type == "image/jpeg"
        assert load_background_image(_image_bytes(400, 400, "GIF")).mime_type == "image/gif"

    def test_unsupported_type(self):
        with pytest.raises(ImageRejectedError) as exc:
            load_background_image(_image_bytes(400, 400, "BMP"), "photo.bmp")
        assert exc.value.reason == 'Sorry, the file type of "photo.bmp" is unsupported'

        with pytest.raises(ImageRejectedError):
            load_background_image(b"not an image", "notes.txt")

    def test_too_small(self):
        with pytest.raises(ImageRejectedError) as exc:
            load_background_image(_image_bytes(100, 400), "tiny.png")
        assert "too small" in exc.value.reason

    def test_ratio_match(self):
        image = load_background_image(_image_bytes(595, 842))
        check_aspect_ratio(image, Paper(210, 297))

    def test_ratio_mismatch(self):
        image = load_background_image(_image_bytes(600, 600))
        with pytest.raises(ImageRejectedError) as exc:
            check_aspect_ratio(image, Paper(210, 297))
        assert exc.value.reason.startswith("Sorry, unable to include that image")


class TestHexToRgb:
    def test_long_and_short(self):
        assert hex_to_rgb("#0096ff") == (0, 150, 255)
        assert hex_to_rgb("#fff") == (255, 255, 255)
        assert hex_to_rgb("000") == (0, 0, 0)

    def test_invalid(self):
        assert hex_to_rgb("red") is None
        assert hex_to_rgb("") is None
        assert hex_to_rgb(None) is None


class TestExportSerializer:
    def test_orientation(self, serializer):
        serializer.export(Paper(297, 210), GroupPrimitive())
        serializer.export(Paper(210, 297), GroupPrimitive())
        serializer.export(Paper(200, 200), GroupPrimitive())
        begins = [r.named("begin")[0] for r in RecordingRenderer.instances]
        assert begins == [("L", 297, 210), ("P", 210, 297), ("P", 200, 200)]

    def test_rect_styles(self, serializer):
        scene = GroupPrimitive(
            [
                RectPrimitive(0, 0, 10, 10, fill="#000"),
                RectPrimitive(10, 0, 10, 10, stroke="#0096ff"),
                RectPrimitive(20, 0, 10, 10, fill="#fff", stroke="#000", stroke_width=0.5),
                RectPrimitive(30, 0, 10, 10, stroke="#000", stroke_width=0),
            ]
        )
        assert serializer.export(Paper(210, 297), scene) == b"%PDF-recorded"

        renderer = RecordingRenderer.instances[0]
        assert [args[4] for args in renderer.named("rect")] == ["F", "D", "DF"]
        assert renderer.named("line_width") == [(1,), (0.5,)]
        assert renderer.named("draw")[0] == (0, 150, 255)

    def test_depth_first_order(self, serializer):
        scene = GroupPrimitive(
            [
                GroupPrimitive([RectPrimitive(1, 1, 1, 1, fill="#000")]),
                RectPrimitive(2, 2, 1, 1, fill="#000"),
                GroupPrimitive([GroupPrimitive([RectPrimitive(3, 3, 1, 1, fill="#000")])]),
            ]
        )
        serializer.export(Paper(210, 297), scene)
        xs = [args[0] for args in RecordingRenderer.instances[0].named("rect")]
        assert xs == [1, 2, 3]

    def test_unsupported_skipped(self, serializer, caplog):
        caplog.set_level("INFO")
        scene = GroupPrimitive(
            [
                UnsupportedPrimitive("ellipse"),
                RectPrimitive(1, 1, 1, 1, fill="#000"),
                ImagePrimitive("data:image/svg+xml;base64,PHN2Zz4=", 0, 0, 5, 5),
            ]
        )
        serializer.export(Paper(210, 297), scene)
        renderer = RecordingRenderer.instances[0]
        assert len(renderer.named("rect")) == 1
        assert renderer.named("image") == []
        assert "ellipse" in caplog.text

    def test_background_drawn_first(self, serializer):
        data = _image_bytes(595, 842)
        scene = GroupPrimitive([RectPrimitive(1, 1, 1, 1, fill="#000")])
        serializer.export(Paper(210, 297), scene, background_image=_data_uri(data))

        calls = [name for name, _ in RecordingRenderer.instances[0].calls]
        assert calls[:3] == ["begin", "image", "fill"]
        assert RecordingRenderer.instances[0].named("image")[0] == (data, 0, 0, 210, 297)

    def test_gif_background_skipped(self, serializer):
        uri = _data_uri(_image_bytes(400, 400, "GIF"), "image/gif")
        serializer.export(Paper(210, 297), GroupPrimitive(), background_image=uri)
        assert RecordingRenderer.instances[0].named("image") == []


class TestFpdfRenderer:
    def test_real_pdf(self, tmp_path):
        scene = GroupPrimitive(
            [
                RectPrimitive(0, 0, 21, 21, fill="#fff"),
                RectPrimitive(2, 2, 5, 5, fill="#000"),
                RectPrimitive(50, 50, 5, 5, fill="#fff", stroke="#000", stroke_width=0.5),
            ]
        )
        serializer = ExportSerializer(FpdfRenderer)
        background = _data_uri(_image_bytes(842, 595))

        pdf = serializer.export(Paper(297, 210), scene, background_image=background)
        assert pdf.startswith(b"%PDF")

        path = serializer.save(tmp_path / "enterise.pdf", Paper(297, 210), scene)
        assert path.read_bytes().startswith(b"%PDF")
