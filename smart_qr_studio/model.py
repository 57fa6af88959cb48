"""Configuration record, defaults table and saved-item model."""

import math
import time
import uuid
from dataclasses import asdict, dataclass, field, replace
from typing import Any

from smart_qr_studio import (
    MAX_RESOLUTION,
    MAX_SYMBOL_SCALE,
    MIN_RESOLUTION,
    MIN_SYMBOL_SCALE,
    RESOLUTION_STEP,
)
from smart_qr_studio.symbology import ERROR_LEVELS, Symbology


class ValidationError(ValueError):
    """Configuration is not acceptable for export or save."""


# ---------------------------------------------------------------------------
# Styling records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TitleStyle:
    """Heading drawn above the symbol. Pixel fields are at the 1024px reference."""

    text: str = ""
    font: str = "Inter"
    weight: str = "bold"
    size_px: float = 48.0
    letter_spacing_px: float = 0.0
    gap_px: float = 16.0


@dataclass(frozen=True)
class CaptionStyle:
    """Human-readable text under the symbol.

    ``size_ratio`` is relative to the group width; the pixel fields are at the
    1024px reference. Matrix codes use fixed ratios and only read font/weight.
    """

    font: str = "Inter"
    weight: str = "bold"
    size_ratio: float = 0.08
    letter_spacing_px: float = 0.0
    gap_px: float = 8.0


@dataclass(frozen=True)
class BackgroundImage:
    source: str
    opacity: float = 1.0
    fit: str = "cover"  # "cover" or "contain"
    zoom: float = 1.0


@dataclass(frozen=True)
class Configuration:
    """Immutable snapshot driving preview and export.

    Edits produce a new instance via :meth:`evolve`; nothing mutates a
    snapshot that a render call may still be reading.
    """

    content: str = ""
    symbology: Symbology = Symbology.MATRIX2D
    error_level: str = "H"
    resolution: int = 1024
    symbol_scale: float = 0.5
    foreground: str = "#000000"
    background: str = "#ffffff"
    title: TitleStyle = field(default_factory=TitleStyle)
    caption: CaptionStyle = field(default_factory=CaptionStyle)
    background_image: BackgroundImage | None = None
    description: str = ""
    matrix_caption: str = "Scan to open"

    def evolve(self, **changes: Any) -> "Configuration":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["symbology"] = self.symbology.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Configuration":
        """Rebuild a configuration, filling anything missing from DEFAULTS."""
        values = dict(data)
        values["symbology"] = Symbology.parse(values.get("symbology", DEFAULTS["symbology"]))
        values["title"] = TitleStyle(**values.get("title") or {})
        values["caption"] = CaptionStyle(**values.get("caption") or {})
        bg = values.get("background_image")
        values["background_image"] = BackgroundImage(**bg) if bg else None
        known = {f for f in cls.__dataclass_fields__}
        return new_configuration(**{k: v for k, v in values.items() if k in known})


# Single defaults table, consulted only when a configuration is created
DEFAULTS: dict[str, Any] = {
    "content": "",
    "symbology": Symbology.MATRIX2D,
    "error_level": "H",
    "resolution": 1024,
    "symbol_scale": 0.5,
    "foreground": "#000000",
    "background": "#ffffff",
    "title": TitleStyle(),
    "caption": CaptionStyle(),
    "background_image": None,
    "description": "",
    "matrix_caption": "Scan to open",
}


def new_configuration(**overrides: Any) -> Configuration:
    """Create a configuration from DEFAULTS with the given fields replaced."""
    unknown = set(overrides) - set(DEFAULTS)
    if unknown:
        raise TypeError(f"Unknown configuration fields: {', '.join(sorted(unknown))}")
    values = {**DEFAULTS, **overrides}
    values["symbology"] = Symbology.parse(values["symbology"])
    return Configuration(**values)


# ---------------------------------------------------------------------------
# UI-layer clamps and validation
# ---------------------------------------------------------------------------

def clamp_symbol_scale(percentage: float) -> float:
    """Convert a UI percentage (5-100) into a symbol scale within bounds."""
    if math.isnan(percentage):
        raise ValidationError("Symbol scale percentage must be a number.")
    return min(max(percentage / 100, MIN_SYMBOL_SCALE), MAX_SYMBOL_SCALE)


def clamp_resolution(value: int) -> int:
    """Snap a resolution to the slider grid (512-2048, step 128)."""
    snapped = round(value / RESOLUTION_STEP) * RESOLUTION_STEP
    return int(min(max(snapped, MIN_RESOLUTION), MAX_RESOLUTION))


def validate_configuration(config: Configuration) -> None:
    """Check a configuration before it is exported or saved.

    Raises:
        ValidationError: If content is empty or a numeric field is out of range.
    """
    if not config.content.strip():
        raise ValidationError("Content cannot be empty.")
    if config.resolution <= 0:
        raise ValidationError(f"Resolution must be positive, got {config.resolution}.")
    if not (MIN_SYMBOL_SCALE <= config.symbol_scale <= MAX_SYMBOL_SCALE):
        raise ValidationError(
            f"Symbol scale must be between {MIN_SYMBOL_SCALE} and {MAX_SYMBOL_SCALE}, "
            f"got {config.symbol_scale}."
        )
    if config.error_level not in ERROR_LEVELS:
        raise ValidationError(f"Error correction level must be one of {', '.join(ERROR_LEVELS)}.")
    if config.symbology is Symbology.EAN13 and len(config.content) != 13:
        raise ValidationError(f"EAN-13 content must be 13 digits, got {len(config.content)}.")
    bg = config.background_image
    if bg is not None:
        if bg.fit not in ("cover", "contain"):
            raise ValidationError(f"Background fit must be 'cover' or 'contain', got '{bg.fit}'.")
        if not (0.0 <= bg.opacity <= 1.0):
            raise ValidationError(f"Background opacity must be within [0, 1], got {bg.opacity}.")


# ---------------------------------------------------------------------------
# Saved items
# ---------------------------------------------------------------------------

def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class GeneratedItem:
    """A saved configuration with identity and creation time (epoch ms)."""

    id: str
    created_at: int
    config: Configuration

    @classmethod
    def create(cls, config: Configuration) -> "GeneratedItem":
        return cls(id=uuid.uuid4().hex, created_at=_now_ms(), config=config)

    def revised(self, config: Configuration) -> "GeneratedItem":
        """Same id, new configuration, refreshed timestamp."""
        return GeneratedItem(id=self.id, created_at=_now_ms(), config=config)

    def to_dict(self) -> dict:
        return {"id": self.id, "createdAt": self.created_at, **self.config.to_dict()}

    @classmethod
    def from_dict(cls, data: dict) -> "GeneratedItem":
        values = dict(data)
        item_id = values.pop("id")
        created_at = int(values.pop("createdAt"))
        return cls(id=str(item_id), created_at=created_at, config=Configuration.from_dict(values))
