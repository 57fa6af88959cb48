import os

import pytest

from smart_qr_studio.encoder import EncodingError
from smart_qr_studio.export import ExportFormat, export_bytes, export_filename, render_surface, write_export
from smart_qr_studio.model import ValidationError
from smart_qr_studio.symbology import Symbology


def test_png_export_is_deterministic(qr_config) -> None:
    assert export_bytes(qr_config, "png") == export_bytes(qr_config, "png")


def test_pdf_export_is_deterministic(ean_config) -> None:
    assert export_bytes(ean_config, "pdf") == export_bytes(ean_config, "pdf")


@pytest.mark.parametrize(
    "fmt, header",
    [
        (ExportFormat.PNG, b"\x89PNG"),
        (ExportFormat.JPEG, b"\xff\xd8"),
        (ExportFormat.PDF, b"%PDF"),
    ],
)
def test_export_headers(qr_config, fmt, header) -> None:
    assert export_bytes(qr_config, fmt).startswith(header)


def test_svg_export_wraps_png(qr_config) -> None:
    data = export_bytes(qr_config, ExportFormat.SVG).decode("utf-8")
    assert "<svg" in data
    assert "data:image/png;base64," in data
    assert 'width="512"' in data


def test_surface_matches_resolution(ean_config) -> None:
    assert render_surface(ean_config.evolve(resolution=640)).size == (640, 640)


def test_export_rejects_empty_content(qr_config) -> None:
    with pytest.raises(ValidationError):
        export_bytes(qr_config.evolve(content=""))


@pytest.mark.parametrize("value, expected", [("png", ExportFormat.PNG), ("JPEG", ExportFormat.JPEG),
                                             (".jpg", ExportFormat.JPEG), ("pdf", ExportFormat.PDF)])
def test_format_parse(value, expected) -> None:
    assert ExportFormat.parse(value) is expected


def test_format_parse_unknown() -> None:
    with pytest.raises(ValueError):
        ExportFormat.parse("gif")


def test_export_filename() -> None:
    assert export_filename(Symbology.EAN13, "jpeg", 1700000000000) == "smart-qr-ean13-1700000000000.jpg"
    assert export_filename(Symbology.MATRIX2D, ExportFormat.PDF, 1) == "smart-qr-qr-1.pdf"


def test_write_export(tmp_path, qr_config) -> None:
    path = write_export(qr_config, "png", str(tmp_path / "out" / "code.png"))
    assert os.path.exists(path)
    with open(path, "rb") as f:
        assert f.read() == export_bytes(qr_config, "png")


def test_failed_export_leaves_no_file(tmp_path, qr_config) -> None:
    config = qr_config.evolve(content="lowercase", symbology=Symbology.CODE39)
    with pytest.raises(EncodingError):
        write_export(config, "png", str(tmp_path / "code.png"))
    assert os.listdir(tmp_path) == []
