"""Layer compositor: draws a configuration onto a square raster surface.

Layer order: white base, background image, safe-zone patch, title, symbol
with its caption, and the fixed matrix caption.
"""

import logging

from PIL import Image, ImageColor, ImageDraw, ImageOps

from smart_qr_studio.fonts import draw_text, get_font
from smart_qr_studio.layout import Geometry, Rect, fit_background
from smart_qr_studio.model import Configuration

logger = logging.getLogger(__name__)


def _box(rect: Rect) -> tuple[int, int, int, int]:
    """Integer pixel box (left, top, right, bottom) covering ``rect``."""
    left, top = round(rect.x), round(rect.y)
    return left, top, max(left + 1, round(rect.right)), max(top + 1, round(rect.bottom))


class LayerCompositor:
    """Composite the layers of one configuration into an RGB image."""

    def render(
        self,
        config: Configuration,
        geometry: Geometry,
        symbol: Image.Image | None,
        background: Image.Image | None = None,
    ) -> Image.Image:
        """Draw every layer and return the finished surface.

        Args:
            config: Styling and content.
            geometry: Layout computed for ``config.resolution``.
            symbol: Encoder bitmap (black ink on white), or None when the
                content could not be encoded; the symbol layer is then skipped.
            background: Decoded background image, or None.

        Returns:
            RGB image of ``geometry.canvas_size`` square.
        """
        size = round(geometry.canvas_size)
        surface = Image.new("RGBA", (size, size), (255, 255, 255, 255))

        if background is not None and config.background_image is not None:
            surface = self._draw_background(surface, background, config)

        draw = ImageDraw.Draw(surface)
        self._draw_patch(draw, geometry, config.background)

        ink = ImageColor.getcolor(config.foreground, "RGBA")
        if geometry.title_font_size > 0:
            font = get_font(config.title.font, geometry.title_font_size, config.title.weight)
            draw_text(draw, config.title.text, size / 2, geometry.title_baseline_y, font, ink,
                      geometry.title_letter_spacing)

        if symbol is None:
            if config.content:
                logger.debug("No symbol bitmap; skipping symbol layer")
        else:
            self._draw_symbol(surface, symbol, geometry.symbol_bounds, ink)
            if not config.symbology.is_matrix:
                self._draw_linear_caption(draw, config, geometry, ink)

        if config.symbology.is_matrix and config.content:
            font = get_font(config.caption.font, geometry.caption_font_size, config.caption.weight)
            draw_text(draw, config.matrix_caption, geometry.caption_anchor_x,
                      geometry.caption_baseline_y, font, ink)

        return surface.convert("RGB")

    def _draw_background(self, surface: Image.Image, image: Image.Image,
                         config: Configuration) -> Image.Image:
        bg = config.background_image
        size = surface.width
        target = fit_background(size, image.width, image.height, bg.fit, bg.zoom)

        # Only resample the part of the source that lands on the canvas
        left, top = max(0.0, target.x), max(0.0, target.y)
        right, bottom = min(float(size), target.right), min(float(size), target.bottom)
        if right - left < 1 or bottom - top < 1:
            return surface

        scale = target.width / image.width
        source_box = (
            (left - target.x) / scale,
            (top - target.y) / scale,
            (right - target.x) / scale,
            (bottom - target.y) / scale,
        )
        dest = (round(left), round(top))
        width = max(1, round(right) - dest[0])
        height = max(1, round(bottom) - dest[1])
        layer_img = image.convert("RGBA").resize((width, height), Image.Resampling.LANCZOS, box=source_box)

        opacity = min(max(bg.opacity, 0.0), 1.0)
        if opacity < 1.0:
            alpha = layer_img.getchannel("A").point(lambda a: round(a * opacity))
            layer_img.putalpha(alpha)

        layer = Image.new("RGBA", surface.size, (0, 0, 0, 0))
        layer.paste(layer_img, dest)
        return Image.alpha_composite(surface, layer)

    def _draw_patch(self, draw: ImageDraw.ImageDraw, geometry: Geometry, color: str) -> None:
        left, top, right, bottom = _box(geometry.patch)
        draw.rounded_rectangle(
            [left, top, right - 1, bottom - 1],
            radius=round(geometry.corner_radius),
            fill=color,
        )

    def _draw_symbol(self, surface: Image.Image, symbol: Image.Image, bounds: Rect, ink) -> None:
        if bounds.width < 1 or bounds.height < 1:
            logger.debug("Symbol bounds too small to draw: %s", bounds)
            return
        box = _box(bounds)
        size = (box[2] - box[0], box[3] - box[1])
        # Ink is dark in the bitmap; invert so ink becomes the paste mask
        mask = ImageOps.invert(symbol.convert("L")).resize(size, Image.Resampling.NEAREST)
        surface.paste(ink, box, mask)

    def _draw_linear_caption(self, draw: ImageDraw.ImageDraw, config: Configuration,
                             geometry: Geometry, ink) -> None:
        font = get_font(config.caption.font, geometry.caption_font_size, config.caption.weight)
        if geometry.digit_groups:
            for group in geometry.digit_groups:
                draw_text(draw, group.text, group.anchor_x, group.y, font, ink,
                          geometry.caption_letter_spacing, align=group.align)
        else:
            draw_text(draw, config.content, geometry.caption_anchor_x,
                      geometry.caption_baseline_y, font, ink, geometry.caption_letter_spacing)


def render(
    config: Configuration,
    geometry: Geometry,
    symbol: Image.Image | None,
    background: Image.Image | None = None,
) -> Image.Image:
    """Convenience wrapper around :class:`LayerCompositor`."""
    return LayerCompositor().render(config, geometry, symbol, background)
