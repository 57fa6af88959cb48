"""Preview renderer: the same layered layout as an SVG element tree.

The preview is built from retained-mode primitives (rect, image, text) at a
fixed small resolution, using the layout engine at that resolution.
"""

import logging

import svgwrite
from PIL import Image, ImageColor, ImageOps

from smart_qr_studio import PREVIEW_RESOLUTION
from smart_qr_studio.encoder import EncodingError, encode
from smart_qr_studio.fonts import is_bold
from smart_qr_studio.image_utils import data_url
from smart_qr_studio.layout import Geometry, compute_geometry, fit_background
from smart_qr_studio.model import Configuration

logger = logging.getLogger(__name__)

WAITING_TEXT = "Waiting for content..."


def tint_symbol(symbol: Image.Image, color: str) -> Image.Image:
    """Turn a black-on-white encoder bitmap into ``color`` ink on transparent."""
    mask = ImageOps.invert(symbol.convert("L"))
    tinted = Image.new("RGBA", symbol.size, ImageColor.getcolor(color, "RGBA"))
    tinted.putalpha(mask)
    return tinted


class PreviewRenderer:
    """Build an SVG preview of a configuration.

    Args:
        resolution: Side of the preview canvas in pixels.
    """

    def __init__(self, resolution: int = PREVIEW_RESOLUTION):
        self.resolution = resolution

    def geometry(self, config: Configuration) -> Geometry:
        return compute_geometry(config, self.resolution)

    def render(self, config: Configuration, background: Image.Image | None = None) -> svgwrite.Drawing:
        """Return the preview drawing for ``config``.

        Encoding errors are shown inline instead of raised, so a bad keystroke
        never breaks the preview loop.
        """
        size = self.resolution
        dwg = svgwrite.Drawing(size=(size, size), profile="full")
        dwg.add(dwg.rect(insert=(0, 0), size=(size, size), fill="#ffffff"))

        if background is not None and config.background_image is not None:
            self._add_background(dwg, background, config)

        geometry = self.geometry(config)
        patch = geometry.patch
        dwg.add(dwg.rect(insert=(patch.x, patch.y), size=(patch.width, patch.height),
                         rx=geometry.corner_radius, ry=geometry.corner_radius,
                         fill=config.background, class_="patch"))

        if geometry.title_font_size > 0:
            dwg.add(self._text(dwg, config.title.text, size / 2, geometry.title_baseline_y,
                               config.title.font, config.title.weight, geometry.title_font_size,
                               geometry.title_letter_spacing, config.foreground, "middle", "title"))

        if not config.content:
            dwg.add(dwg.text(WAITING_TEXT, insert=(size / 2, patch.y + patch.height / 2),
                             text_anchor="middle", font_family="sans-serif", font_size=size * 0.04,
                             fill="#94a3b8", class_="placeholder"))
            return dwg

        caption = config.caption
        try:
            symbol = encode(config.content, config.symbology, config.error_level)
        except EncodingError as e:
            logger.debug("Preview encoding failed: %s", e)
            self._add_error(dwg, geometry, str(e))
            symbol = None

        if symbol is not None:
            bounds = geometry.symbol_bounds
            if bounds.width >= 1 and bounds.height >= 1:
                dwg.add(dwg.image(href=data_url(tint_symbol(symbol, config.foreground)),
                                  insert=(bounds.x, bounds.y), size=(bounds.width, bounds.height),
                                  preserveAspectRatio="none", style="image-rendering:pixelated",
                                  class_="symbol"))

        if config.symbology.is_matrix:
            dwg.add(self._text(dwg, config.matrix_caption, geometry.caption_anchor_x,
                               geometry.caption_baseline_y, caption.font, caption.weight,
                               geometry.caption_font_size, 0.0, config.foreground, "middle", "caption"))
        elif symbol is None:
            # Linear captions describe the drawn bars
            return dwg
        elif geometry.digit_groups:
            for group in geometry.digit_groups:
                anchor = "end" if group.align == "right" else "middle"
                dwg.add(self._text(dwg, group.text, group.anchor_x, group.y, caption.font,
                                   caption.weight, geometry.caption_font_size,
                                   geometry.caption_letter_spacing, config.foreground, anchor, "caption"))
        else:
            dwg.add(self._text(dwg, config.content, geometry.caption_anchor_x,
                               geometry.caption_baseline_y, caption.font, caption.weight,
                               geometry.caption_font_size, geometry.caption_letter_spacing,
                               config.foreground, "middle", "caption"))
        return dwg

    def render_svg(self, config: Configuration, background: Image.Image | None = None) -> str:
        return self.render(config, background).tostring()

    def _add_background(self, dwg: svgwrite.Drawing, image: Image.Image, config: Configuration) -> None:
        bg = config.background_image
        target = fit_background(self.resolution, image.width, image.height, bg.fit, bg.zoom)
        # Embed a copy no larger than twice the drawn size
        thumb = image.copy()
        thumb.thumbnail((max(1, round(target.width * 2)), max(1, round(target.height * 2))))
        dwg.add(dwg.image(href=data_url(thumb), insert=(target.x, target.y),
                          size=(target.width, target.height), preserveAspectRatio="none",
                          opacity=min(max(bg.opacity, 0.0), 1.0), class_="background"))

    def _add_error(self, dwg: svgwrite.Drawing, geometry: Geometry, message: str) -> None:
        bounds = geometry.symbol_bounds
        dwg.add(dwg.rect(insert=(bounds.x, bounds.y), size=(max(bounds.width, 0), max(bounds.height, 0)),
                         fill="#fef2f2", stroke="#ef4444", stroke_width=1, class_="encoding-error"))
        dwg.add(dwg.text(message, insert=(bounds.x + bounds.width / 2, bounds.y + bounds.height / 2),
                         text_anchor="middle", font_family="sans-serif",
                         font_size=max(1.0, geometry.caption_font_size * 0.5), fill="#b91c1c",
                         class_="encoding-error-message"))

    @staticmethod
    def _text(dwg, text, x, top, family, weight, font_size, letter_spacing, fill, anchor, css_class):
        return dwg.text(
            text,
            insert=(x, top),
            text_anchor=anchor,
            dominant_baseline="text-before-edge",
            font_family=family,
            font_weight="bold" if is_bold(weight) else "normal",
            font_size=font_size,
            letter_spacing=letter_spacing,
            fill=fill,
            class_=css_class,
        )
