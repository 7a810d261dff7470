import io

import pytest
from PIL import Image

from studio.errors import ConfigurationError
from studio.schemas import GarmentType, Position
from studio.services import mockup
from studio.services.mockup import (
    ALLOWED_POSITIONS,
    OverlayGeometry,
    build_mockup,
    check_mockup_config,
    composite,
    render_mockup,
    resolve_base_image,
    resolve_geometry,
)

from tests.conftest import make_png


@pytest.mark.parametrize("garment_type", list(GarmentType))
def test_every_garment_has_a_front_geometry(garment_type):
    geometry = resolve_geometry(garment_type, Position.FRONT)

    assert geometry is not None
    assert 0 < geometry.width_percent <= 100
    assert 0 <= geometry.left_percent < 100
    assert 0 <= geometry.top_percent < 100


@pytest.mark.parametrize("garment_type", list(GarmentType))
def test_every_selectable_side_resolves(garment_type):
    for position in ALLOWED_POSITIONS[garment_type]:
        assert resolve_geometry(garment_type, position)
        assert resolve_base_image(garment_type, position)


def test_missing_back_falls_back_to_front():
    assert resolve_geometry(GarmentType.TOPS, Position.BACK) == resolve_geometry(
        GarmentType.TOPS, Position.FRONT
    )
    assert resolve_base_image(GarmentType.TOPS, Position.BACK).endswith("/topFront.jpg")


def test_hoodie_back_geometry():
    geometry = resolve_geometry(GarmentType.HOODIE, Position.BACK)

    assert geometry == OverlayGeometry(32, 34, 40)
    assert geometry.style() == {"width": "32%", "left": "34%", "top": "40%"}


def test_missing_mapping_is_a_configuration_error(monkeypatch):
    monkeypatch.setitem(mockup.OVERLAY_PRESETS, GarmentType.POLO, {})

    with pytest.raises(ConfigurationError, match="polo"):
        resolve_geometry(GarmentType.POLO, Position.BACK)
    with pytest.raises(ConfigurationError):
        check_mockup_config()


def test_shipped_config_is_complete():
    check_mockup_config()


def test_build_mockup_places_artwork():
    layer = build_mockup(GarmentType.SWEATSHIRT, Position.BACK, "https://cdn.test/art.png")

    assert layer.base_image_url == "/mockups/sweatshirtBack.png"
    assert layer.overlay_image_url == "https://cdn.test/art.png"
    assert layer.geometry == OverlayGeometry(30, 35, 40)


def test_composite_is_pure():
    geometry = OverlayGeometry(40, 30, 30)
    first = composite("/mockups/t-shirtFront.jpg", "https://cdn.test/a.png", geometry)
    second = composite("/mockups/t-shirtFront.jpg", "https://cdn.test/a.png", geometry)
    assert first == second


def test_render_mockup_pastes_overlay():
    base = make_png(size=(200, 100), color=(255, 255, 255, 255))
    overlay = make_png(size=(10, 20), color=(255, 0, 0, 255))
    geometry = OverlayGeometry(width_percent=10, left_percent=50, top_percent=20)

    rendered = Image.open(io.BytesIO(render_mockup(base, overlay, geometry))).convert("RGB")

    assert rendered.size == (200, 100)
    # Overlay is 20px wide (10% of 200) and keeps its 1:2 aspect, so 40px tall
    assert rendered.getpixel((105, 25)) == (255, 0, 0)
    assert rendered.getpixel((115, 55)) == (255, 0, 0)
    assert rendered.getpixel((121, 20)) == (255, 255, 255)
    assert rendered.getpixel((99, 20)) == (255, 255, 255)
    assert rendered.getpixel((100, 61)) == (255, 255, 255)


def test_render_mockup_keeps_transparency():
    base = make_png(size=(100, 100), color=(0, 0, 255, 255))
    overlay = make_png(size=(10, 10), color=(255, 0, 0, 0))

    rendered = Image.open(
        io.BytesIO(render_mockup(base, overlay, OverlayGeometry(40, 30, 30)))
    ).convert("RGB")

    assert rendered.getpixel((40, 40)) == (0, 0, 255)
