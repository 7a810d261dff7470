from fastapi import APIRouter, HTTPException, Response, status

from studio.errors import ConfigurationError, StorageError
from studio.schemas import GarmentType, MockupLayerInfo, OverlayGeometryInfo, Position
from studio.services.mockup import base_image_path, build_mockup, render_mockup
from studio.services.storage import storage

router = APIRouter(prefix="/mockups", tags=["mockups"])


@router.get("/{garment_type}/{position}", response_model=MockupLayerInfo)
async def get_mockup_layer(
    garment_type: GarmentType,
    position: Position,
    artwork_url: str | None = None,
):
    """Base garment image and overlay rectangle for a garment side."""
    try:
        layer = build_mockup(garment_type, position, artwork_url)
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message) from e

    geometry = layer.geometry
    return MockupLayerInfo(
        garment_type=garment_type,
        position=position,
        base_image_url=layer.base_image_url,
        overlay_image_url=layer.overlay_image_url,
        geometry=OverlayGeometryInfo(
            width_percent=geometry.width_percent,
            left_percent=geometry.left_percent,
            top_percent=geometry.top_percent,
        ),
        style=geometry.style(),
    )


@router.get("/{garment_type}/{position}/preview.png")
async def render_mockup_preview(
    garment_type: GarmentType,
    position: Position,
    artwork_url: str,
):
    """Server-side rendered PNG of the artwork placed on the garment."""
    try:
        layer = build_mockup(garment_type, position, artwork_url)
        base_path = base_image_path(garment_type, position)
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message) from e

    if not base_path.exists():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Base image for {garment_type.value} ({position.value}) is not installed",
        )

    # Only artwork already held by this service is rendered
    if not (artwork_url.startswith("data:") or storage.is_owned(artwork_url)):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Artwork must be stored in this service",
        )

    try:
        artwork = await storage.download(artwork_url)
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message) from e

    try:
        png = render_mockup(base_path.read_bytes(), artwork, layer.geometry)
    except OSError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Artwork is not a readable image: {e}",
        ) from e

    return Response(content=png, media_type="image/png")
