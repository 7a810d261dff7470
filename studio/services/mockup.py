import io
import logging
from dataclasses import dataclass
from pathlib import Path

from PIL import Image

from studio.config import get_settings
from studio.errors import ConfigurationError
from studio.schemas.generation import GarmentType, Position

settings = get_settings()
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverlayGeometry:
    """Where artwork sits on the base mockup, in percent of the canvas."""
    width_percent: float
    left_percent: float
    top_percent: float

    def style(self) -> dict[str, str]:
        return {
            "width": f"{self.width_percent:g}%",
            "left": f"{self.left_percent:g}%",
            "top": f"{self.top_percent:g}%",
        }


@dataclass(frozen=True)
class MockupLayer:
    """A base garment image with generated artwork laid on top."""
    base_image_url: str
    overlay_image_url: str | None
    geometry: OverlayGeometry


BASE_IMAGES: dict[GarmentType, dict[Position, str]] = {
    GarmentType.T_SHIRT: {Position.FRONT: "t-shirtFront.jpg", Position.BACK: "t-shirtBack.jpg"},
    GarmentType.HOODIE: {Position.FRONT: "hoodieFront.jpg", Position.BACK: "hoodieBack.jpg"},
    # Only a back shot exists for the polo
    GarmentType.POLO: {Position.FRONT: "poloBack.jpg", Position.BACK: "poloBack.jpg"},
    GarmentType.TOPS: {Position.FRONT: "topFront.jpg"},
    GarmentType.SWEATSHIRT: {
        Position.FRONT: "sweatshirtFront.png",
        Position.BACK: "sweatshirtBack.png",
    },
}

OVERLAY_PRESETS: dict[GarmentType, dict[Position, OverlayGeometry]] = {
    GarmentType.T_SHIRT: {
        Position.FRONT: OverlayGeometry(40, 30, 30),
        Position.BACK: OverlayGeometry(40, 30, 30),
    },
    GarmentType.HOODIE: {
        Position.FRONT: OverlayGeometry(32, 34, 40),
        Position.BACK: OverlayGeometry(32, 34, 40),
    },
    GarmentType.POLO: {
        Position.FRONT: OverlayGeometry(28, 36, 35),
        Position.BACK: OverlayGeometry(28, 36, 35),
    },
    GarmentType.TOPS: {
        Position.FRONT: OverlayGeometry(28, 36, 42),
    },
    GarmentType.SWEATSHIRT: {
        Position.FRONT: OverlayGeometry(30, 35, 40),
        Position.BACK: OverlayGeometry(30, 35, 40),
    },
}

# Positions the storefront lets the user pick per garment
ALLOWED_POSITIONS: dict[GarmentType, tuple[Position, ...]] = {
    GarmentType.T_SHIRT: (Position.FRONT, Position.BACK),
    GarmentType.HOODIE: (Position.FRONT, Position.BACK),
    GarmentType.POLO: (Position.BACK,),
    GarmentType.TOPS: (Position.FRONT,),
    GarmentType.SWEATSHIRT: (Position.FRONT, Position.BACK),
}


def _lookup(table: dict, garment_type: GarmentType, position: Position, what: str):
    entries = table.get(garment_type, {})
    value = entries.get(position) or entries.get(Position.FRONT)
    if value is None:
        logger.error("No %s configured for %s/%s", what, garment_type.value, position.value)
        raise ConfigurationError(
            f"No {what} configured for {garment_type.value} ({position.value})"
        )
    return value


def resolve_geometry(garment_type: GarmentType, position: Position) -> OverlayGeometry:
    """Overlay rectangle for a garment side, falling back to the front."""
    return _lookup(OVERLAY_PRESETS, garment_type, position, "overlay geometry")


def resolve_base_image(garment_type: GarmentType, position: Position) -> str:
    """URL of the blank garment photo, falling back to the front."""
    filename = _lookup(BASE_IMAGES, garment_type, position, "base image")
    return f"{settings.mockup_base_url.rstrip('/')}/{filename}"


def base_image_path(garment_type: GarmentType, position: Position) -> Path:
    """Local file of the blank garment photo, for server-side rendering."""
    filename = _lookup(BASE_IMAGES, garment_type, position, "base image")
    return Path(settings.mockup_assets_path) / filename


def composite(
    base_image: str,
    overlay_image: str | None,
    geometry: OverlayGeometry,
) -> MockupLayer:
    return MockupLayer(
        base_image_url=base_image,
        overlay_image_url=overlay_image,
        geometry=geometry,
    )


def build_mockup(
    garment_type: GarmentType,
    position: Position,
    artwork_url: str | None,
) -> MockupLayer:
    """Resolve base image and geometry for a garment side and place the artwork."""
    geometry = resolve_geometry(garment_type, position)
    base_image = resolve_base_image(garment_type, position)
    return composite(base_image, artwork_url, geometry)


def check_mockup_config() -> None:
    """Every garment side the storefront offers must resolve; raise otherwise."""
    for garment_type in GarmentType:
        for position in ALLOWED_POSITIONS.get(garment_type, (Position.FRONT,)):
            resolve_geometry(garment_type, position)
            resolve_base_image(garment_type, position)


def render_mockup(base_bytes: bytes, overlay_bytes: bytes, geometry: OverlayGeometry) -> bytes:
    """
    Rasterize a mockup preview as PNG.

    The overlay is scaled to ``width_percent`` of the base width with its
    aspect ratio kept, then pasted at the left/top offsets using its own
    alpha channel.
    """
    base = Image.open(io.BytesIO(base_bytes)).convert("RGBA")
    overlay = Image.open(io.BytesIO(overlay_bytes)).convert("RGBA")

    width = max(1, round(base.width * geometry.width_percent / 100))
    height = max(1, round(overlay.height * width / overlay.width))
    overlay = overlay.resize((width, height), Image.Resampling.LANCZOS)

    left = round(base.width * geometry.left_percent / 100)
    top = round(base.height * geometry.top_percent / 100)
    base.paste(overlay, (left, top), overlay)

    output = io.BytesIO()
    base.save(output, format="PNG")
    return output.getvalue()
