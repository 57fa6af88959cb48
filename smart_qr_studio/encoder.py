"""Encode content into bare symbol bitmaps (modules or bars, no text).

Matrix codes come from python-qrcode; linear codes come from python-barcode's
module patterns. MSI and Pharmacode are not shipped by python-barcode, so they
are provided here as ``barcode.base.Barcode`` subclasses.
"""

import logging

import barcode as pybarcode
import qrcode
from barcode.base import Barcode
from barcode.errors import BarcodeError
from PIL import Image, ImageDraw
from qrcode.exceptions import DataOverflowError

from smart_qr_studio.symbology import ERROR_LEVELS, Symbology

logger = logging.getLogger(__name__)

MATRIX_BOX_SIZE = 10  # Pixels per QR module in the raw bitmap
BAR_MODULE_PX = 4  # Pixels per bar module in the raw bitmap

_QR_ERROR_LEVELS = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}


class EncodingError(ValueError):
    """The content cannot be encoded with the chosen symbology."""


# ---------------------------------------------------------------------------
# python-barcode extensions
# ---------------------------------------------------------------------------

class MSI(Barcode):
    """Plain MSI (Modified Plessey) without a check digit.

    Each digit is written as 4 bits, most significant first; a 0 bit is a
    narrow bar plus wide space, a 1 bit a wide bar plus narrow space.
    """

    name = "MSI"

    def __init__(self, code: str, writer=None):
        self.code = code
        self.writer = writer

    def __str__(self) -> str:
        return self.code

    def get_fullcode(self) -> str:
        return self.code

    def build(self) -> list[str]:
        modules = "110"
        for char in self.code:
            for bit in format(int(char), "04b"):
                modules += "110" if bit == "1" else "100"
        return [modules + "1001"]


class Pharmacode(Barcode):
    """Laetus Pharmacode (one-track), values 3 through 131070."""

    name = "Pharmacode"

    def __init__(self, code: str, writer=None):
        self.code = code
        self.writer = writer

    def __str__(self) -> str:
        return self.code

    def get_fullcode(self) -> str:
        return self.code

    def build(self) -> list[str]:
        value = int(self.code)
        modules = ""
        while value != 0:
            if value % 2 == 0:
                modules = "11100" + modules
                value = (value - 2) // 2
            else:
                modules = "100" + modules
                value = (value - 1) // 2
        # Drop the trailing space after the last bar
        return [modules[:-2]]


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------

def _linear_barcode(content: str, symbology: Symbology) -> Barcode:
    """Instantiate the python-barcode object for a validated linear payload."""
    if symbology is Symbology.EAN13:
        # python-barcode recomputes the check digit from the 12-digit payload
        return pybarcode.get_barcode_class("ean13")(content[:12])
    if symbology is Symbology.UPC_A:
        return pybarcode.get_barcode_class("upca")(content[:11])
    if symbology is Symbology.ITF14:
        return pybarcode.get_barcode_class("itf")(content)
    if symbology is Symbology.CODE39:
        return pybarcode.get_barcode_class("code39")(content, add_checksum=False)
    if symbology is Symbology.CODE128:
        return pybarcode.get_barcode_class("code128")(content)
    if symbology is Symbology.MSI:
        return MSI(content)
    if symbology is Symbology.PHARMACODE:
        return Pharmacode(content)
    raise EncodingError(f"{symbology.name} is not a linear symbology.")


def encode_modules(content: str, symbology: Symbology) -> str:
    """Return the bar/space module pattern for a linear symbology.

    Raises:
        EncodingError: If the content is rejected by the symbology.
    """
    error = symbology.capability.validate(content)
    if error:
        raise EncodingError(error)
    try:
        lines = _linear_barcode(content, symbology).build()
    except (BarcodeError, ValueError) as e:
        raise EncodingError(f"{symbology.capability.label} encoding failed: {e}") from e
    # Guard-bar markers ("G") draw as bars
    return "".join("1" if c in "1G" else "0" for c in lines[0])


def _render_bars(modules: str, bar_aspect: float) -> Image.Image:
    width = len(modules) * BAR_MODULE_PX
    height = max(1, round(width * bar_aspect))
    img = Image.new("L", (width, height), 255)
    draw = ImageDraw.Draw(img)
    for index, module in enumerate(modules):
        if module == "1":
            x = index * BAR_MODULE_PX
            draw.rectangle([x, 0, x + BAR_MODULE_PX - 1, height - 1], fill=0)
    return img


def _render_matrix(content: str, error_level: str) -> Image.Image:
    if error_level not in ERROR_LEVELS:
        raise EncodingError(f"Unknown error correction level '{error_level}'.")

    qr = qrcode.QRCode(
        error_correction=_QR_ERROR_LEVELS[error_level],
        box_size=MATRIX_BOX_SIZE,
        border=0,
    )
    qr.add_data(content)
    try:
        qr.make(fit=True)
    except (DataOverflowError, ValueError) as e:
        # qrcode 8 reports overflow as "Invalid version" ValueError
        raise EncodingError(
            f"QR data too long ({len(content)} chars) for error correction level {error_level}."
        ) from e

    return qr.make_image(fill_color="black", back_color="white").convert("L")


def encode(content: str, symbology: Symbology, error_level: str = "H") -> Image.Image:
    """Encode content into a grayscale symbol bitmap.

    Ink is black (0) on white (255). There is no quiet zone and no
    human-readable text; the compositor adds both.

    Args:
        content: Payload to encode.
        symbology: Target symbology.
        error_level: QR error correction level (L, M, Q, H). Ignored for
            linear codes.

    Returns:
        PIL Image in "L" mode. Matrix codes are square; linear codes have the
        capability's bar aspect ratio.

    Raises:
        EncodingError: If the content is empty or rejected by the symbology.
    """
    if not content:
        raise EncodingError("Content cannot be empty.")

    logger.debug("Encoding %d chars as %s", len(content), symbology.name)
    if symbology.is_matrix:
        return _render_matrix(content, error_level)
    modules = encode_modules(content, symbology)
    return _render_bars(modules, symbology.capability.bar_aspect)
