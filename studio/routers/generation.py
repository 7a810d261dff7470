from fastapi import APIRouter, Depends, UploadFile, File, Form, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from studio.database import get_db
from studio.deps import get_pipeline
from studio.errors import (
    ConfigurationError,
    GenerationError,
    QuotaExceededError,
    StorageError,
    StudioError,
    ValidationError,
)
from studio.schemas import (
    GarmentType,
    GenerateDesignBody,
    GenerationRecordInfo,
    GenerationResponse,
    MockupLayerInfo,
    OverlayGeometryInfo,
    Position,
)
from studio.services.ledger import ledger
from studio.services.pipeline import DesignPipeline, GenerationContext, GenerationOutcome
from studio.services.prompts import ReferenceImage

router = APIRouter(prefix="/generate", tags=["generation"])


def _to_http_error(exc: StudioError) -> HTTPException:
    """Map pipeline failures onto status codes with a toast-ready detail."""
    if isinstance(exc, QuotaExceededError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.message)
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    if isinstance(exc, GenerationError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Generation failed: {exc.message}",
        )
    if isinstance(exc, ConfigurationError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Mockup configuration error: {exc.message}",
        )
    if isinstance(exc, StorageError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to store reference image: {exc.message}",
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Generation failed: {exc.message}",
    )


def _to_response(outcome: GenerationOutcome) -> GenerationResponse:
    request = outcome.request
    mockup = None
    if outcome.mockup is not None:
        geometry = outcome.mockup.geometry
        mockup = MockupLayerInfo(
            garment_type=request.garment_type,
            position=request.position,
            base_image_url=outcome.mockup.base_image_url,
            overlay_image_url=outcome.mockup.overlay_image_url,
            geometry=OverlayGeometryInfo(
                width_percent=geometry.width_percent,
                left_percent=geometry.left_percent,
                top_percent=geometry.top_percent,
            ),
            style=geometry.style(),
        )

    return GenerationResponse(
        image_url=outcome.final_url,
        stored_url=outcome.result.stored_url,
        source_url=outcome.result.image_url,
        reference_image_url=request.reference_image_url,
        record_id=outcome.record_id,
        mockup=mockup,
        warnings=[str(w) for w in outcome.warnings],
        message=(
            "Design generated with warnings" if outcome.partial
            else "Design generated successfully"
        ),
    )


async def _read_image(upload: UploadFile | None) -> ReferenceImage | None:
    if upload is None:
        return None
    data = await upload.read()
    return ReferenceImage(
        data=data,
        content_type=upload.content_type or "",
        filename=upload.filename or "reference",
    )


@router.post("/design", response_model=GenerationResponse)
async def generate_design(
    body: GenerateDesignBody,
    db: AsyncSession = Depends(get_db),
    pipeline: DesignPipeline = Depends(get_pipeline),
):
    """
    Generate print-ready artwork from a text description.

    The artwork is returned together with the mockup layer for the selected
    garment and side. Set ``concept_pass`` to render a free illustration first
    and isolate it for print in a second call.
    """
    context = GenerationContext(db=db, user_id=body.user_id)
    try:
        outcome = await pipeline.run_design(context, body)
    except StudioError as e:
        raise _to_http_error(e) from e

    return _to_response(outcome)


@router.post("/pattern", response_model=GenerationResponse)
async def generate_from_pattern(
    design_request: str = Form(..., description="What to design, at least 10 characters"),
    reference_image: UploadFile | None = File(
        default=None, description="Image whose palette and texture drive the design"
    ),
    reference_image_url: str | None = Form(
        default=None, description="Already hosted reference image, instead of an upload"
    ),
    clothing_type: GarmentType = Form(default=GarmentType.T_SHIRT),
    image_position: Position = Form(default=Position.FRONT),
    user_id: str | None = Form(default=None),
    db: AsyncSession = Depends(get_db),
    pipeline: DesignPipeline = Depends(get_pipeline),
):
    """
    Reference-guided design.

    The reference image is analysed for colors, texture and style; a new design
    matching the request is generated in the same visual family.
    """
    reference = await _read_image(reference_image)
    raw = {
        "design_request": design_request,
        "reference_image_url": reference_image_url,
        "clothing_type": clothing_type,
        "image_position": image_position,
    }
    context = GenerationContext(db=db, user_id=user_id)
    try:
        outcome = await pipeline.run_pattern(context, raw, reference)
    except StudioError as e:
        raise _to_http_error(e) from e

    return _to_response(outcome)


@router.post("/convert", response_model=GenerationResponse)
async def convert_garment(
    instruction: str = Form(..., description="Styling notes, at least 10 characters"),
    front_image: UploadFile | None = File(default=None, description="Front photo of the garment"),
    back_image: UploadFile | None = File(default=None, description="Optional back photo"),
    front_image_url: str | None = Form(default=None),
    back_image_url: str | None = Form(default=None),
    target_clothing_type: GarmentType = Form(default=GarmentType.T_SHIRT),
    user_id: str | None = Form(default=None),
    db: AsyncSession = Depends(get_db),
    pipeline: DesignPipeline = Depends(get_pipeline),
):
    """
    Turn photos of an existing garment into a studio mockup.

    The result is a single image with the front view on the left and the back
    view on the right. Without a back photo the back is rendered plain.
    """
    front = await _read_image(front_image)
    back = await _read_image(back_image)
    raw = {
        "instruction": instruction,
        "front_image_url": front_image_url,
        "back_image_url": back_image_url,
        "target_clothing_type": target_clothing_type,
    }
    context = GenerationContext(db=db, user_id=user_id)
    try:
        outcome = await pipeline.run_conversion(context, raw, front, back)
    except StudioError as e:
        raise _to_http_error(e) from e

    return _to_response(outcome)


@router.get("/history/{user_id}", response_model=list[GenerationRecordInfo])
async def get_generation_history(
    user_id: str,
    limit: int = 20,
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
):
    """Get the generation history for a user."""
    records = await ledger.history(db, user_id, limit=limit, offset=offset)
    return [GenerationRecordInfo.model_validate(r) for r in records]
