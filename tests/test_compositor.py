import pytest

from smart_qr_studio.compositor import render
from smart_qr_studio.encoder import encode
from smart_qr_studio.layout import compute_geometry
from smart_qr_studio.model import BackgroundImage, TitleStyle


def _render(config, background=None, with_symbol=True):
    geometry = compute_geometry(config, config.resolution)
    symbol = encode(config.content, config.symbology, config.error_level) if with_symbol else None
    return geometry, render(config, geometry, symbol, background)


def test_surface_size_and_mode(qr_config) -> None:
    _, img = _render(qr_config)
    assert img.size == (512, 512)
    assert img.mode == "RGB"


def test_white_base_outside_patch(qr_config) -> None:
    _, img = _render(qr_config)
    assert img.getpixel((0, 0)) == (255, 255, 255)
    assert img.getpixel((511, 511)) == (255, 255, 255)


def test_patch_colour_inside_margin(qr_config) -> None:
    config = qr_config.evolve(background="#ff0000")
    g, img = _render(config)
    x = round(g.patch.x + g.internal_margin / 2)
    y = round(g.patch.y + g.patch.height / 2)
    assert img.getpixel((x, y)) == (255, 0, 0)


def test_symbol_drawn_in_foreground_colour(qr_config) -> None:
    config = qr_config.evolve(foreground="#00aa00")
    g, img = _render(config)
    # Top-left finder pattern corner
    x, y = round(g.symbol_bounds.x) + 1, round(g.symbol_bounds.y) + 1
    assert img.getpixel((x, y)) == (0, 170, 0)


def test_missing_symbol_skips_symbol_layer(ean_config) -> None:
    config = ean_config.evolve(background="#123456")
    g, img = _render(config, with_symbol=False)
    bounds = g.symbol_bounds
    center = (round(bounds.x + bounds.width / 2), round(bounds.y + bounds.height / 2))
    assert img.getpixel(center) == (0x12, 0x34, 0x56)


def test_background_image_fills_canvas(qr_config, photo) -> None:
    config = qr_config.evolve(background_image=BackgroundImage("photo.png"))
    _, img = _render(config, background=photo)
    assert img.getpixel((0, 0)) == pytest.approx((30, 120, 200), abs=1)


def test_background_opacity_blends_with_white(qr_config, photo) -> None:
    config = qr_config.evolve(background_image=BackgroundImage("photo.png", opacity=0.5))
    _, img = _render(config, background=photo)
    r, g, b = img.getpixel((0, 0))
    assert r == pytest.approx((255 + 30) / 2, abs=2)
    assert g == pytest.approx((255 + 120) / 2, abs=2)
    assert b == pytest.approx((255 + 200) / 2, abs=2)


def test_contain_leaves_letterbox_white(qr_config, photo) -> None:
    config = qr_config.evolve(background_image=BackgroundImage("photo.png", fit="contain"))
    _, img = _render(config, background=photo)
    assert img.getpixel((20, 5)) == (255, 255, 255)
    assert img.getpixel((20, 200)) == pytest.approx((30, 120, 200), abs=1)


def test_background_ignored_without_source(qr_config, photo) -> None:
    _, img = _render(qr_config, background=photo)
    assert img.getpixel((0, 0)) == (255, 255, 255)


def test_title_is_drawn_above_symbol(qr_config) -> None:
    config = qr_config.evolve(title=TitleStyle(text="HELLO", size_px=96))
    g, img = _render(config)
    band = img.crop((round(g.patch.x), round(g.title_baseline_y),
                     round(g.patch.right), round(g.symbol_bounds.y)))
    assert band.getextrema()[0][0] < 128
