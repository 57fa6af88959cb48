"""Layout engine: pure geometry for one configuration at one canvas size.

Every measurement derives from the target resolution, so calling
:func:`compute_geometry` at 320px and at 2048px yields the same layout up to
scale. Preview and export each call it with their own resolution; neither
rescales the other's result.
"""

from dataclasses import dataclass

from smart_qr_studio import (
    CORNER_RADIUS_RATIO,
    INTERNAL_MARGIN_RATIO,
    LINE_HEIGHT,
    MATRIX_CAPTION_FONT_RATIO,
    MATRIX_CAPTION_GAP_RATIO,
    REFERENCE_RESOLUTION,
)
from smart_qr_studio.model import Configuration

# Nominal advance of one caption digit, relative to the caption font size
DIGIT_ADVANCE_RATIO = 0.6
# Gap between the leading EAN-13 digit and the bars, at the 1024px reference
EAN_DIGIT_GAP_PX = 4.0


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass(frozen=True)
class DigitGroup:
    """One run of EAN-13 caption digits and where to anchor it.

    ``align`` is "right" (anchor is the text's right edge) or "center".
    """

    text: str
    anchor_x: float
    y: float
    align: str


@dataclass(frozen=True)
class Geometry:
    """Pixel layout of one render. Text y values are the top of the text line.

    Attributes:
        canvas_size: Side of the square canvas.
        patch: Safe-zone patch bounds.
        corner_radius: Patch corner radius.
        internal_margin: Quiet-zone margin inside the patch.
        content_width: Patch width minus both margins.
        title_baseline_y: Top of the title line (meaningless if no title).
        title_font_size: 0 when there is no title.
        symbol_bounds: Where the encoder bitmap is drawn (QR square or bars).
        caption_baseline_y: Top of the caption line.
        caption_font_size: Caption font size in pixels.
        caption_anchor_x: Center x for single-string captions.
        digit_groups: EAN-13 digit runs; empty for other symbologies.
    """

    canvas_size: float
    patch: Rect
    corner_radius: float
    internal_margin: float
    content_width: float
    title_baseline_y: float
    title_font_size: float
    title_letter_spacing: float
    symbol_bounds: Rect
    caption_baseline_y: float
    caption_font_size: float
    caption_letter_spacing: float
    caption_anchor_x: float
    digit_groups: tuple[DigitGroup, ...] = ()

    @property
    def patch_x(self) -> float:
        return self.patch.x

    @property
    def patch_y(self) -> float:
        return self.patch.y

    @property
    def patch_width(self) -> float:
        return self.patch.width

    @property
    def patch_height(self) -> float:
        return self.patch.height


def compute_geometry(config: Configuration, target_resolution: float) -> Geometry:
    """Compute the layout of ``config`` on a ``target_resolution`` square canvas.

    No clamping is applied to the symbol scale: a scale that leaves no room for
    content still produces a descriptor, with a non-positive content width.
    Callers validate the scale first. Font sizes are clamped at zero; letter
    spacing and gaps pass through as given, negative values included.
    """
    canvas = float(target_resolution)
    ref_scale = canvas / REFERENCE_RESOLUTION
    capability = config.symbology.capability

    group_width = canvas * config.symbol_scale
    margin = group_width * INTERNAL_MARGIN_RATIO
    content_width = group_width - 2 * margin

    if config.title.text.strip():
        title_font = max(0.0, config.title.size_px) * ref_scale
        title_height = title_font * LINE_HEIGHT
        title_gap = config.title.gap_px * ref_scale
    else:
        title_font = title_height = title_gap = 0.0

    digit_gap = EAN_DIGIT_GAP_PX * ref_scale
    if capability.matrix:
        caption_font = group_width * MATRIX_CAPTION_FONT_RATIO
        caption_gap = group_width * MATRIX_CAPTION_GAP_RATIO
        lead = 0.0
        symbol_width = symbol_height = content_width
        block_height = content_width + caption_gap + caption_font * LINE_HEIGHT
    else:
        caption_font = max(0.0, config.caption.size_ratio) * group_width
        caption_gap = config.caption.gap_px * ref_scale
        # EAN-13 reserves room on the left for the leading digit
        lead = caption_font * DIGIT_ADVANCE_RATIO + digit_gap if capability.digit_grouping else 0.0
        symbol_width = content_width - lead
        symbol_height = symbol_width * capability.bar_aspect
        block_height = symbol_height + caption_gap + caption_font * LINE_HEIGHT

    patch_height = 2 * margin + title_height + title_gap + block_height
    patch = Rect(
        x=(canvas - group_width) / 2,
        y=(canvas - patch_height) / 2,
        width=group_width,
        height=patch_height,
    )

    content_x = patch.x + margin
    title_y = patch.y + margin
    symbol_y = title_y + title_height + title_gap
    symbol = Rect(content_x + lead, symbol_y, symbol_width, symbol_height)
    caption_y = symbol.bottom + caption_gap

    digit_groups: tuple[DigitGroup, ...] = ()
    if capability.digit_grouping and len(config.content) == 13:
        digit_groups = (
            DigitGroup(config.content[0], symbol.x - digit_gap, caption_y, "right"),
            DigitGroup(config.content[1:7], symbol.x + symbol.width * 0.25, caption_y, "center"),
            DigitGroup(config.content[7:], symbol.x + symbol.width * 0.75, caption_y, "center"),
        )

    return Geometry(
        canvas_size=canvas,
        patch=patch,
        corner_radius=group_width * CORNER_RADIUS_RATIO,
        internal_margin=margin,
        content_width=content_width,
        title_baseline_y=title_y,
        title_font_size=title_font,
        title_letter_spacing=config.title.letter_spacing_px * ref_scale,
        symbol_bounds=symbol,
        caption_baseline_y=caption_y,
        caption_font_size=caption_font,
        caption_letter_spacing=config.caption.letter_spacing_px * ref_scale,
        caption_anchor_x=canvas / 2,
        digit_groups=digit_groups,
    )


def fit_background(canvas_size: float, image_width: int, image_height: int,
                   fit: str, zoom: float) -> Rect:
    """Rectangle at which a background image is drawn on the square canvas.

    ``cover`` fills the canvas and crops the overflow, ``contain`` keeps the
    whole image visible. The fitted size is multiplied by ``zoom`` and centred.
    """
    canvas_ratio = 1.0
    image_ratio = image_width / image_height
    if fit == "cover":
        scale = canvas_size / image_width if canvas_ratio > image_ratio else canvas_size / image_height
    else:
        scale = canvas_size / image_height if canvas_ratio > image_ratio else canvas_size / image_width

    scale *= zoom
    width = image_width * scale
    height = image_height * scale
    return Rect((canvas_size - width) / 2, (canvas_size - height) / 2, width, height)
