"""Export pipeline: full-resolution composite serialised to a file format."""

import base64
import io
import logging
import os
import tempfile
import time
from enum import Enum

import svgwrite
from PIL import Image
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas as pdf_canvas

from smart_qr_studio import PRODUCT_SLUG
from smart_qr_studio.compositor import LayerCompositor
from smart_qr_studio.encoder import encode
from smart_qr_studio.layout import compute_geometry
from smart_qr_studio.model import Configuration, validate_configuration
from smart_qr_studio.symbology import Symbology

logger = logging.getLogger(__name__)

JPEG_QUALITY = 95


class ExportFormat(Enum):
    """Output containers.

    SVG embeds the composited PNG as its only element: the artifact is pixel
    composited, so the vector container wraps a raster rather than
    re-describing the layers as paths.
    """
    PNG = "png"
    JPEG = "jpg"
    SVG = "svg"
    PDF = "pdf"

    @property
    def extension(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: "str | ExportFormat") -> "ExportFormat":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().lstrip(".")
        if key == "jpeg":
            key = "jpg"
        for member in cls:
            if member.value == key:
                return member
        raise ValueError(f"Unknown export format '{value}'. Choose from: png, jpg, svg, pdf")


def render_surface(config: Configuration, background: Image.Image | None = None) -> Image.Image:
    """Validate, encode, lay out and composite ``config`` at full resolution.

    Raises:
        ValidationError: If the configuration is not exportable.
        EncodingError: If the content is rejected by the symbology.
    """
    validate_configuration(config)
    symbol = encode(config.content, config.symbology, config.error_level)
    geometry = compute_geometry(config, config.resolution)
    logger.debug("Export geometry at %dpx: patch=%s", config.resolution, geometry.patch)
    return LayerCompositor().render(config, geometry, symbol, background)


def _png_bytes(surface: Image.Image) -> bytes:
    buf = io.BytesIO()
    surface.save(buf, format="PNG")
    return buf.getvalue()


def _jpeg_bytes(surface: Image.Image) -> bytes:
    buf = io.BytesIO()
    surface.save(buf, format="JPEG", quality=JPEG_QUALITY, subsampling=0)
    return buf.getvalue()


def _svg_bytes(surface: Image.Image) -> bytes:
    size = surface.width
    href = "data:image/png;base64," + base64.b64encode(_png_bytes(surface)).decode("ascii")
    dwg = svgwrite.Drawing(size=(size, size), profile="full")
    dwg.add(dwg.image(href=href, insert=(0, 0), size=(size, size)))
    return dwg.tostring().encode("utf-8")


def _pdf_bytes(surface: Image.Image) -> bytes:
    size = surface.width
    buf = io.BytesIO()
    # One point per canvas pixel; invariant output keeps repeated exports identical
    pdf = pdf_canvas.Canvas(buf, pagesize=(size, size), invariant=1)
    pdf.drawImage(ImageReader(io.BytesIO(_jpeg_bytes(surface))), 0, 0, width=size, height=size)
    pdf.showPage()
    pdf.save()
    return buf.getvalue()


_SERIALIZERS = {
    ExportFormat.PNG: _png_bytes,
    ExportFormat.JPEG: _jpeg_bytes,
    ExportFormat.SVG: _svg_bytes,
    ExportFormat.PDF: _pdf_bytes,
}


def export_bytes(config: Configuration, fmt: ExportFormat | str = ExportFormat.PNG,
                 background: Image.Image | None = None) -> bytes:
    """Render ``config`` and serialise it.

    Args:
        config: Configuration to export.
        fmt: Output container.
        background: Already-loaded background image, or None.

    Returns:
        Encoded file contents.

    Raises:
        ValidationError: If the configuration is not exportable.
        EncodingError: If the content is rejected by the symbology.
    """
    fmt = ExportFormat.parse(fmt)
    surface = render_surface(config, background)
    return _SERIALIZERS[fmt](surface)


def export_filename(symbology: Symbology, fmt: ExportFormat | str, timestamp_ms: int | None = None) -> str:
    """``smart-qr-<symbology>-<timestamp>.<ext>``."""
    fmt = ExportFormat.parse(fmt)
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{PRODUCT_SLUG}-{symbology.value}-{timestamp_ms}.{fmt.extension}"


def write_export(config: Configuration, fmt: ExportFormat | str, output_path: str,
                 background: Image.Image | None = None) -> str:
    """Export to ``output_path``.

    The file is written to a temporary sibling and renamed into place, so a
    failed export leaves no partial file behind.

    Returns:
        The output path where the file was saved.
    """
    data = export_bytes(config, fmt, background)

    directory = os.path.dirname(output_path) or "."
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".smart_qr_", suffix=".part", dir=directory)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_path, output_path)
    except OSError:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
    logger.info("Exported %s (%d bytes)", output_path, len(data))
    return output_path
