"""Image loading and verification utilities."""

import base64
import binascii
import io
import logging
import os
from enum import Enum

import requests
from PIL import Image

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT_SECONDS = 15


class BackgroundImageError(Exception):
    """A background image could not be fetched or decoded."""


class VerifyResult(Enum):
    """Result of symbol scannability verification."""
    SCANNABLE = "scannable"
    NOT_SCANNABLE = "not_scannable"
    SKIPPED = "skipped"  # pyzbar not installed


def _decode(data: bytes, source_label: str) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (OSError, SyntaxError) as e:
        raise BackgroundImageError(f"Could not decode image '{source_label}': {e}")
    return img.convert("RGBA")


def _load_data_url(source: str) -> Image.Image:
    header, _, payload = source.partition(",")
    if not payload:
        raise BackgroundImageError("Malformed data URL: missing payload.")
    try:
        if header.endswith(";base64"):
            data = base64.b64decode(payload, validate=True)
        else:
            data = payload.encode("latin-1")
    except (binascii.Error, ValueError) as e:
        raise BackgroundImageError(f"Malformed data URL: {e}")
    return _decode(data, header[:40])


def _load_remote(source: str, timeout: float) -> Image.Image:
    try:
        response = requests.get(source, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise BackgroundImageError(f"Could not fetch image '{source}': {e}")
    return _decode(response.content, source)


def load_background_image(source: str, timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS) -> Image.Image:
    """Load a background image from a file path, ``data:`` URL or http(s) URL.

    Args:
        source: Where the image lives.
        timeout: Network timeout in seconds for remote sources.

    Returns:
        PIL Image in RGBA mode.

    Raises:
        BackgroundImageError: If the image is missing, unreachable or not an image.
    """
    if not source:
        raise BackgroundImageError("Background image source is empty.")

    if source.startswith("data:"):
        return _load_data_url(source)
    if source.startswith(("http://", "https://")):
        return _load_remote(source, timeout)

    if not os.path.exists(source):
        raise BackgroundImageError(f"Image not found: {source}")
    with open(source, "rb") as f:
        return _decode(f.read(), source)


def try_load_background_image(source: str | None, timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS) -> Image.Image | None:
    """Like :func:`load_background_image`, but log failures and return None.

    A broken background never fails a render; the image layer is skipped.
    """
    if not source:
        return None
    try:
        return load_background_image(source, timeout=timeout)
    except BackgroundImageError as e:
        logger.warning("Background image skipped: %s", e)
        return None


def to_png_bytes(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def data_url(img: Image.Image) -> str:
    """Encode an image as a PNG ``data:`` URL."""
    return "data:image/png;base64," + base64.b64encode(to_png_bytes(img)).decode("ascii")


def verify_symbol_scannable(img: Image.Image) -> tuple[VerifyResult, str | None]:
    """Attempt to decode a QR code or barcode from a rendered image.

    Uses pyzbar if available, otherwise returns SKIPPED.

    Args:
        img: The composited image to verify.

    Returns:
        Tuple of (VerifyResult, decoded_data: str | None).
    """
    try:
        from pyzbar.pyzbar import decode as pyzbar_decode
    except ImportError:
        return VerifyResult.SKIPPED, None

    try:
        results = pyzbar_decode(img.convert("RGB"))
    except Exception as e:
        logger.warning("Scan verification failed: %s", e)
        return VerifyResult.NOT_SCANNABLE, None
    if results:
        return VerifyResult.SCANNABLE, results[0].data.decode("utf-8")
    return VerifyResult.NOT_SCANNABLE, None
