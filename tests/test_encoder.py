import pytest

from smart_qr_studio.encoder import MSI, EncodingError, Pharmacode, encode, encode_modules
from smart_qr_studio.symbology import Symbology


def test_msi_modules() -> None:
    # start, 0001, stop
    assert MSI("1").build() == ["110" + "100100100110" + "1001"]


@pytest.mark.parametrize("value, expected", [("3", "1001"), ("4", "100111")])
def test_pharmacode_modules(value, expected) -> None:
    assert Pharmacode(value).build() == [expected]


def test_ean13_module_count() -> None:
    modules = encode_modules("4006381333931", Symbology.EAN13)
    assert len(modules) == 95
    assert modules.startswith("101")
    assert modules.endswith("101")
    assert set(modules) <= {"0", "1"}


def test_encode_matrix_is_square_grayscale() -> None:
    img = encode("https://example.com", Symbology.MATRIX2D, "H")
    assert img.mode == "L"
    assert img.width == img.height
    # No quiet zone: the finder pattern starts at the corner
    assert img.getpixel((0, 0)) == 0


@pytest.mark.parametrize(
    "symbology, content",
    [
        (Symbology.EAN13, "4006381333931"),
        (Symbology.CODE128, "ABC-123"),
        (Symbology.CODE39, "ABC-123"),
        (Symbology.UPC_A, "036000291452"),
        (Symbology.ITF14, "00012345678905"),
        (Symbology.MSI, "1234"),
        (Symbology.PHARMACODE, "1234"),
    ],
)
def test_encode_linear_uses_bar_aspect(symbology, content) -> None:
    img = encode(content, symbology)
    assert img.mode == "L"
    assert img.height == pytest.approx(img.width * symbology.capability.bar_aspect, abs=1)


def test_encode_rejects_empty() -> None:
    with pytest.raises(EncodingError):
        encode("", Symbology.CODE128)


def test_encode_rejects_invalid_content() -> None:
    with pytest.raises(EncodingError, match="uppercase"):
        encode("lowercase", Symbology.CODE39)


def test_encode_overflow_is_encoding_error() -> None:
    with pytest.raises(EncodingError, match="too long"):
        encode("x" * 3000, Symbology.MATRIX2D, "H")


def test_encode_rejects_unknown_error_level() -> None:
    with pytest.raises(EncodingError):
        encode("hi", Symbology.MATRIX2D, "X")
