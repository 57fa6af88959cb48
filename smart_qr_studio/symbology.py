"""Supported symbologies and the capability record the layout engine dispatches on."""

import string
from dataclasses import dataclass
from enum import Enum
from typing import Callable


class Symbology(Enum):
    """Closed set of symbol families the studio can render."""

    MATRIX2D = "qr"
    EAN13 = "ean13"
    CODE128 = "code128"
    CODE39 = "code39"
    UPC_A = "upca"
    ITF14 = "itf14"
    MSI = "msi"
    PHARMACODE = "pharmacode"

    @property
    def capability(self) -> "SymbologyCapability":
        return CAPABILITIES[self]

    @property
    def is_matrix(self) -> bool:
        return self.capability.matrix

    @classmethod
    def parse(cls, value: "str | Symbology") -> "Symbology":
        """Accept an enum member, its value, or its name (case-insensitive)."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("-", "").replace("_", "")
        for member in cls:
            if key in (member.value, member.name.lower().replace("_", "")):
                return member
        raise ValueError(
            f"Unknown symbology '{value}'. Choose from: "
            f"{', '.join(m.value for m in cls)}"
        )


ERROR_LEVELS = ("L", "M", "Q", "H")


def gs1_check_digit(digits: str) -> int:
    """Mod-10 check digit used by EAN, UPC and ITF-14.

    Weights alternate 3, 1 starting from the rightmost payload digit.
    """
    total = 0
    for position, char in enumerate(reversed(digits)):
        weight = 3 if position % 2 == 0 else 1
        total += int(char) * weight
    return (10 - total % 10) % 10


# ---------------------------------------------------------------------------
# Validators: return an error message, or None when the content is accepted
# ---------------------------------------------------------------------------

def _validate_gs1(length: int, label: str) -> Callable[[str], str | None]:
    def _check(content: str) -> str | None:
        if not content.isdigit() or len(content) != length:
            return f"{label} must be exactly {length} digits."
        if gs1_check_digit(content[:-1]) != int(content[-1]):
            return f"{label} check digit is invalid (expected {gs1_check_digit(content[:-1])})."
        return None
    return _check


_CODE39_CHARS = set(string.ascii_uppercase + string.digits + "-.$/+% ")


def _validate_code39(content: str) -> str | None:
    if not all(c in _CODE39_CHARS for c in content):
        return "Code39 supports only uppercase A-Z, 0-9, space and -.$/+% characters."
    return None


def _validate_code128(content: str) -> str | None:
    if not all(ord(c) < 128 for c in content):
        return "Code128 supports only ASCII characters."
    return None


def _validate_msi(content: str) -> str | None:
    if not content.isdigit():
        return "MSI must contain only digits."
    return None


def _validate_pharmacode(content: str) -> str | None:
    if not content.isdigit() or not (3 <= int(content) <= 131070):
        return "Pharmacode must be an integer between 3 and 131070."
    return None


def _validate_matrix(content: str) -> str | None:
    return None


# ---------------------------------------------------------------------------
# Capability table
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SymbologyCapability:
    """What the layout engine and encoder need to know about a symbology.

    Attributes:
        label: Human-readable name.
        matrix: True for the 2-D family (square symbol, fixed caption).
        bar_aspect: Bar height divided by bar width for linear codes.
        digit_grouping: Caption uses the EAN-13 three-group digit layout.
        validator: Returns an error message for rejected content, else None.
    """

    label: str
    matrix: bool
    bar_aspect: float
    digit_grouping: bool
    validator: Callable[[str], str | None]

    def validate(self, content: str) -> str | None:
        return self.validator(content)


CAPABILITIES: dict[Symbology, SymbologyCapability] = {
    Symbology.MATRIX2D: SymbologyCapability("QR Code", True, 1.0, False, _validate_matrix),
    Symbology.EAN13: SymbologyCapability("EAN-13", False, 0.5, True, _validate_gs1(13, "EAN-13")),
    Symbology.CODE128: SymbologyCapability("Code 128", False, 0.35, False, _validate_code128),
    Symbology.CODE39: SymbologyCapability("Code 39", False, 0.35, False, _validate_code39),
    Symbology.UPC_A: SymbologyCapability("UPC-A", False, 0.5, False, _validate_gs1(12, "UPC-A")),
    Symbology.ITF14: SymbologyCapability("ITF-14", False, 0.3, False, _validate_gs1(14, "ITF-14")),
    Symbology.MSI: SymbologyCapability("MSI", False, 0.35, False, _validate_msi),
    Symbology.PHARMACODE: SymbologyCapability("Pharmacode", False, 0.4, False, _validate_pharmacode),
}
