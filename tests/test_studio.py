import io
import threading

import pytest
from PIL import Image

from smart_qr_studio.contact import ContactCard
from smart_qr_studio.history import HistoryStore
from smart_qr_studio.model import BackgroundImage, ValidationError, new_configuration
from smart_qr_studio.studio import Studio
from smart_qr_studio.symbology import Symbology


class GatedLoader:
    """Background loader whose first call blocks until released."""

    def __init__(self):
        self.release = threading.Event()
        self.calls = []

    def __call__(self, source):
        self.calls.append(source)
        if len(self.calls) == 1:
            self.release.wait(5)
        return Image.new("RGBA", (len(source) * 10, 10), (0, 0, 0, 255))


@pytest.fixture
def studio(tmp_path):
    with Studio(history=HistoryStore(tmp_path / "history.json"),
                background_loader=lambda source: Image.new("RGBA", (40, 20), (9, 9, 9, 255))) as s:
        yield s


def test_update_produces_new_snapshot(studio) -> None:
    before = studio.config
    after = studio.update(content="hello")
    assert before.content == ""
    assert after.content == "hello"
    assert studio.config is after
    assert studio.revision == 1


def test_listeners_receive_snapshots(studio) -> None:
    seen = []
    unsubscribe = studio.subscribe(lambda config, revision: seen.append((config.content, revision)))
    studio.update(content="a")
    studio.update(content="b")
    unsubscribe()
    studio.update(content="c")
    assert seen == [("a", 1), ("b", 2)]


def test_preview_renders_latest_snapshot_only(studio) -> None:
    studio.update(symbology=Symbology.CODE128, content="FIRST")
    studio.update(content="SECOND")
    svg = studio.preview_svg()
    assert ">SECOND</text>" in svg
    assert "FIRST" not in svg
    assert studio.preview_svg() is svg


def test_stale_background_is_discarded() -> None:
    loader = GatedLoader()
    with Studio(background_loader=loader) as studio:
        studio.update(content="x")
        studio.set_background("slow-source")
        studio.set_background("fast")
        loader.release.set()
        image = studio.wait_for_background(timeout=5)

    assert loader.calls == ["slow-source", "fast"]
    assert image is not None
    assert image.width == len("fast") * 10


def test_set_background_keeps_options(studio) -> None:
    studio.set_background("a.png", opacity=0.4, fit="contain")
    studio.set_background("b.png")
    bg = studio.config.background_image
    assert (bg.source, bg.opacity, bg.fit) == ("b.png", 0.4, "contain")
    studio.set_background(None)
    assert studio.config.background_image is None
    assert studio.background_image is None


def test_export_waits_for_background(studio) -> None:
    studio.update(content="https://example.com", resolution=512)
    studio.set_background("photo.png")
    data = studio.export_bytes("png", timeout=5)
    assert data.startswith(b"\x89PNG")
    assert studio.background_image is not None


def test_export_writes_file(tmp_path, studio) -> None:
    studio.update(content="ABC", symbology=Symbology.CODE39, resolution=512)
    path = studio.export("png", directory=str(tmp_path / "exports"))
    assert path.endswith(".png")
    assert "smart-qr-code39-" in path


def test_save_and_edit_updates_in_place(tmp_path, studio) -> None:
    studio.update(content="first")
    item = studio.save()
    studio.update(content="other")
    studio.save()

    studio.edit(item.id)
    assert studio.editing_id == item.id
    assert studio.config.content == "first"
    studio.update(content="first, edited")
    saved = studio.save()

    assert saved.id == item.id
    assert studio.editing_id is None
    assert [i.config.content for i in HistoryStore(tmp_path / "history.json").items()] == ["other", "first, edited"]


def test_edit_unknown_item(studio) -> None:
    with pytest.raises(KeyError):
        studio.edit("missing")


def test_delete_clears_editing(studio) -> None:
    studio.update(content="x")
    item = studio.save()
    studio.edit(item.id)
    assert studio.delete(item.id)
    assert studio.editing_id is None


def test_save_without_history() -> None:
    with Studio() as studio:
        studio.update(content="x")
        with pytest.raises(RuntimeError):
            studio.save()


def test_apply_suggestion_offline(studio) -> None:
    studio.update(content="https://example.com")
    suggestion = studio.apply_suggestion()
    assert studio.config.title.text == suggestion.title == "New QR Code"
    assert studio.config.description == "Scan to open the link."
    assert studio.config.foreground == "#000000"


def test_apply_suggestion_requires_url(studio) -> None:
    studio.update(content="not a url")
    with pytest.raises(ValidationError):
        studio.apply_suggestion()


def test_contact_round_trip(studio) -> None:
    assert studio.contact() is None
    card = ContactCard(name="Ada Lovelace", email="ada@example.com")
    studio.set_contact(card)
    assert studio.config.content.startswith("BEGIN:VCARD")
    assert studio.contact() == card


def test_initial_config_loads_background() -> None:
    config = new_configuration(content="x").evolve(background_image=BackgroundImage("photo.png"))
    loaded = Image.new("RGBA", (8, 8))
    with Studio(config=config, background_loader=lambda source: loaded) as studio:
        assert studio.wait_for_background(timeout=5) is loaded
        assert studio.background_image is loaded


def _failing_loader(source):
    raise OSError(f"cannot open {source}")


def _empty_loader(source):
    return None


@pytest.mark.parametrize("loader", [_failing_loader, _empty_loader], ids=["raises", "returns-none"])
def test_export_without_usable_background(loader) -> None:
    config = new_configuration(content="https://example.com", resolution=512)
    with Studio(config=config, background_loader=loader) as studio:
        studio.set_background("photo.png")
        data = studio.export_bytes("png", timeout=5)
        assert studio.background_image is None

    img = Image.open(io.BytesIO(data)).convert("RGB")
    assert img.getpixel((0, 0)) == (255, 255, 255)


def test_export_continues_when_background_is_slow() -> None:
    release = threading.Event()

    def slow_loader(source):
        release.wait(5)
        return Image.new("RGBA", (40, 20), (9, 9, 9, 255))

    config = new_configuration(content="https://example.com", resolution=512)
    try:
        with Studio(config=config, background_loader=slow_loader) as studio:
            studio.set_background("slow.png")
            data = studio.export_bytes("png", timeout=0.2)
    finally:
        release.set()

    img = Image.open(io.BytesIO(data)).convert("RGB")
    assert img.getpixel((0, 0)) == (255, 255, 255)


def test_preview_refreshes_when_background_arrives() -> None:
    loader = GatedLoader()
    with Studio(background_loader=loader) as studio:
        studio.update(content="https://example.com")
        studio.set_background("photo.png")
        revision = studio.revision
        before = studio.preview_svg()
        assert 'class="background"' not in before

        loader.release.set()
        assert studio.wait_for_background(timeout=5) is not None
        after = studio.preview_svg()

    assert studio.revision == revision
    assert 'class="background"' in after
