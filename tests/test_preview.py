from PIL import Image

from smart_qr_studio.model import BackgroundImage, TitleStyle
from smart_qr_studio.preview import WAITING_TEXT, PreviewRenderer, tint_symbol
from smart_qr_studio.symbology import Symbology


def test_empty_content_keeps_patch_and_title(qr_config) -> None:
    config = qr_config.evolve(content="", title=TitleStyle(text="Menu"))
    svg = PreviewRenderer().render_svg(config)
    assert WAITING_TEXT in svg
    assert 'class="patch"' in svg
    assert ">Menu</text>" in svg
    assert 'class="symbol"' not in svg
    assert "Scan to open" not in svg


def test_qr_preview_layers(qr_config) -> None:
    config = qr_config.evolve(title=TitleStyle(text="Visit us"))
    svg = PreviewRenderer().render_svg(config)
    assert 'class="patch"' in svg
    assert 'class="title"' in svg
    assert "Visit us" in svg
    assert 'class="symbol"' in svg
    assert "Scan to open" in svg
    assert svg.index('class="patch"') < svg.index('class="symbol"')


def test_preview_canvas_size(qr_config) -> None:
    drawing = PreviewRenderer(resolution=320).render(qr_config)
    assert drawing["width"] == 320
    assert drawing["height"] == 320


def test_ean_preview_digit_groups(ean_config) -> None:
    svg = PreviewRenderer().render_svg(ean_config)
    assert ">4</text>" in svg
    assert ">006381</text>" in svg
    assert ">333931</text>" in svg
    assert 'text-anchor="end"' in svg


def test_linear_preview_caption(ean_config) -> None:
    config = ean_config.evolve(content="ABC-42", symbology=Symbology.CODE128)
    svg = PreviewRenderer().render_svg(config)
    assert ">ABC-42</text>" in svg


def test_encoding_error_is_shown_inline(ean_config) -> None:
    svg = PreviewRenderer().render_svg(ean_config.evolve(content="4006381333932"))
    assert 'class="encoding-error"' in svg
    assert "check digit" in svg
    assert 'class="symbol"' not in svg


def test_background_layer(qr_config, photo) -> None:
    config = qr_config.evolve(background_image=BackgroundImage("photo.png", opacity=0.3))
    svg = PreviewRenderer().render_svg(config, photo)
    assert 'class="background"' in svg
    assert 'opacity="0.3"' in svg
    assert svg.index('class="background"') < svg.index('class="patch"')


def test_tint_symbol() -> None:
    symbol = Image.new("L", (2, 1), 255)
    symbol.putpixel((0, 0), 0)
    tinted = tint_symbol(symbol, "#ff0000")
    assert tinted.getpixel((0, 0)) == (255, 0, 0, 255)
    assert tinted.getpixel((1, 0))[3] == 0


def test_qr_overflow_is_shown_inline(qr_config) -> None:
    svg = PreviewRenderer().render_svg(qr_config.evolve(content="x" * 3000))
    assert 'class="encoding-error"' in svg
    assert "too long" in svg
    assert 'class="symbol"' not in svg


def test_qr_encoding_error_keeps_matrix_caption(qr_config) -> None:
    svg = PreviewRenderer().render_svg(qr_config.evolve(content="x" * 3000))
    assert 'class="patch"' in svg
    assert "Scan to open" in svg


def test_linear_encoding_error_has_no_caption(ean_config) -> None:
    svg = PreviewRenderer().render_svg(ean_config.evolve(content="4006381333932"))
    assert 'class="patch"' in svg
    assert ">006381</text>" not in svg
