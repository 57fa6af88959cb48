import pytest
from PIL import Image

from smart_qr_studio.model import new_configuration
from smart_qr_studio.symbology import Symbology

EAN = "4006381333931"


@pytest.fixture
def qr_config():
    return new_configuration(content="https://example.com", resolution=512)


@pytest.fixture
def ean_config():
    return new_configuration(content=EAN, symbology=Symbology.EAN13, resolution=512)


@pytest.fixture
def photo() -> Image.Image:
    return Image.new("RGBA", (200, 100), (30, 120, 200, 255))


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    monkeypatch.setenv("SMART_QR_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
