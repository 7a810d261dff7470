"""
Request building and prompt templates for the design generation flows.

Three flows share the pipeline:

* ``design``: text only, the user describes the artwork.
* ``pattern``: a reference image drives palette and texture, the text says
  what to draw.
* ``conversion``: photos of an existing garment become a front/back studio
  mockup of another garment type.

Everything here is pure and runs before the first network call.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from studio.config import get_settings
from studio.errors import ValidationError
from studio.schemas.generation import (
    ConversionRequest,
    DesignRequest,
    GarmentType,
    PatternRequest,
    Position,
)

settings = get_settings()


class Flow(str, Enum):
    DESIGN = "design"
    PATTERN = "pattern"
    CONVERSION = "conversion"


# Prompt policy shared by every artwork template
NEGATIVE_CONSTRAINTS = (
    "Output ONLY the artwork itself: no garments, no mockups, no models",
    "Transparent background only, no scenery or environment",
    "No watermarks, no logos, no UI elements",
    "No borders, frames or drop shadows around the artwork",
)


@dataclass
class ReferenceImage:
    """An image handed in by the user, not yet uploaded."""
    data: bytes
    content_type: str
    filename: str = "reference"


@dataclass
class GenerationRequest:
    """Validated input to one pipeline run."""
    flow: Flow
    design_text: str
    garment_type: GarmentType
    position: Position
    style: str
    color_scheme: str
    quality: str = "high"
    creativity: int = 70
    included_text: str | None = None
    concept_pass: bool = False
    reference_image_url: str | None = None
    back_image_url: str | None = None
    # Images still to be uploaded; the pipeline fills the URLs above
    reference_image: ReferenceImage | None = field(default=None, repr=False)
    back_image: ReferenceImage | None = field(default=None, repr=False)

    @property
    def needs_reference(self) -> bool:
        return self.flow in (Flow.PATTERN, Flow.CONVERSION)


def _constraints_block() -> str:
    return "\n".join(f"- {rule}" for rule in NEGATIVE_CONSTRAINTS)


def _placement(garment_type: GarmentType, position: Position) -> str:
    return f"{position.value} print of a {garment_type.value}"


def concept_prompt(design_text: str) -> str:
    """Free illustration pass; print isolation happens afterwards."""
    return (
        "You are a cinematic concept artist.\n\n"
        "Create a detailed, expressive illustration based on:\n"
        f'"{design_text}"\n\n'
        "Rules:\n"
        "- Full environment allowed\n"
        "- Dramatic lighting allowed\n"
        "- Characters allowed\n"
        "- No text, no UI, no logos"
    )


def print_prompt(
    garment_type: GarmentType,
    position: Position,
    design_text: str,
    style: str,
    color_scheme: str,
    quality: str = "high",
    creativity: int = 70,
    included_text: str | None = None,
    from_reference: bool = False,
) -> str:
    """Print-ready artwork prompt for the text design flow."""
    if from_reference:
        task = "Convert the given image into a PRINT-READY apparel graphic."
    else:
        task = f'Create a PRINT-READY apparel graphic for: "{design_text}"'

    if included_text:
        text_rule = f'Include this text cleanly and boldly: "{included_text}"'
    else:
        text_rule = "NO text, NO lettering"

    return (
        "You are a professional apparel graphic designer.\n\n"
        f"TASK:\n{task}\n"
        f"The artwork is the {_placement(garment_type, position)}.\n\n"
        "ABSOLUTE RULES:\n"
        f"{_constraints_block()}\n"
        "- Subject isolated, centered composition\n"
        "- High contrast, clean silhouette, screen print / DTG friendly\n\n"
        "STYLE SETTINGS:\n"
        f"- Art style: {style}\n"
        f"- Color mood: {color_scheme}\n"
        f"- Quality: {quality}\n"
        f"- Creativity: {creativity}%\n\n"
        f"TEXT RULES:\n{text_rule}"
    )


def pattern_prompt(
    garment_type: GarmentType,
    position: Position,
    design_text: str,
    style: str,
    color_scheme: str,
    reference_image_url: str,
) -> str:
    """Reference-guided prompt: reuse the image's visual DNA, not its content."""
    return (
        "You are a professional fashion and graphic design AI.\n\n"
        "STEP 1 - VISUAL ANALYSIS:\n"
        "Analyze the provided reference image and internally extract its dominant and "
        "secondary colors, color harmony, texture and material feel, pattern structure, "
        "visual style, mood and theme.\n\n"
        "STEP 2 - DESIGN CREATION:\n"
        "Using ONLY the extracted visual attributes, create a NEW and ORIGINAL design "
        f"for the {_placement(garment_type, position)} based on this request:\n"
        f'"{design_text}"\n\n'
        "STRICT RULES:\n"
        "- Preserve the image's color palette, texture feel and style DNA\n"
        "- Do NOT replicate the image literally\n"
        "- The design must feel like it belongs to the same visual family\n\n"
        "OUTPUT REQUIREMENTS:\n"
        f"{_constraints_block()}\n"
        "- High-resolution, print-ready, centered and balanced\n\n"
        f"DESIGN TAGS: {style} / {color_scheme}\n\n"
        f"REFERENCE IMAGE:\n{reference_image_url}"
    )


CONVERSION_SYSTEM_PROMPT = (
    "You are a PROFESSIONAL apparel mockup generation AI.\n\n"
    "Generate ONE SINGLE IMAGE containing TWO views of the SAME garment: the front view "
    "on the LEFT and the back view on the RIGHT, same size, scale, lighting and camera "
    "distance, on a neutral light gray or white studio background.\n\n"
    "The provided images are the ONLY source of truth. Preserve exactly the base color, "
    "fabric texture, print quality, design placement and proportions. Do not recolor, "
    "redesign or add logos, text, folds or watermarks.\n\n"
    "If no back image is provided the back view must be PLAIN: same base color and "
    "fabric, no design elements."
)


def conversion_prompt(
    garment_type: GarmentType,
    position: Position,
    instruction: str,
    style: str,
    color_scheme: str,
) -> str:
    return (
        f"Create a realistic {garment_type.value} studio mockup using the provided "
        "reference image(s). "
        f"The {position.value} photo is the main reference.\n\n"
        f"DESIGN TAGS: {style} / {color_scheme}\n\n"
        "CRITICAL:\n"
        "- Output must be ONE single image\n"
        "- Left = front view, Right = back view\n"
        "- Match the reference images exactly\n\n"
        f"Additional instructions from user:\n{instruction}"
    )


def render_prompt(request: GenerationRequest) -> str:
    """The final prompt text sent with the request's reference images."""
    if request.flow is Flow.PATTERN:
        return pattern_prompt(
            request.garment_type,
            request.position,
            request.design_text,
            request.style,
            request.color_scheme,
            request.reference_image_url or "",
        )
    if request.flow is Flow.CONVERSION:
        return conversion_prompt(
            request.garment_type,
            request.position,
            request.design_text,
            request.style,
            request.color_scheme,
        )
    return print_prompt(
        request.garment_type,
        request.position,
        request.design_text,
        request.style,
        request.color_scheme,
        quality=request.quality,
        creativity=request.creativity,
        included_text=request.included_text,
        from_reference=request.concept_pass,
    )


def _parse(model: type[BaseModel], raw: Mapping[str, Any] | BaseModel):
    if isinstance(raw, model):
        return raw
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    try:
        return model.model_validate(raw)
    except PydanticValidationError as e:
        raise ValidationError(_describe(e)) from e


def _describe(error: PydanticValidationError) -> str:
    """Turn pydantic errors into one readable sentence."""
    parts = []
    for item in error.errors():
        name = ".".join(str(loc) for loc in item["loc"]) or "request"
        if item["type"] == "string_too_short":
            limit = item["ctx"]["min_length"]
            parts.append(f"{name} must be at least {limit} characters")
        elif item["type"] == "string_too_long":
            limit = item["ctx"]["max_length"]
            parts.append(f"{name} must be at most {limit} characters")
        else:
            parts.append(f"{name}: {item['msg']}")
    return "; ".join(parts)


def check_reference_image(image: ReferenceImage | None, label: str = "Reference image") -> None:
    if image is None:
        return
    if not image.content_type or not image.content_type.startswith("image/"):
        raise ValidationError(f"{label} must be an image (JPEG, PNG, etc.)")
    if len(image.data) < settings.min_reference_image_bytes:
        raise ValidationError(f"{label} appears too small or corrupt")


def build_design_request(raw: Mapping[str, Any] | BaseModel) -> GenerationRequest:
    """Validate a text-only design request."""
    parsed: DesignRequest = _parse(DesignRequest, raw)
    return GenerationRequest(
        flow=Flow.DESIGN,
        design_text=parsed.prompt,
        garment_type=parsed.clothing_type,
        position=parsed.image_position,
        style=parsed.style.value,
        color_scheme=parsed.color_scheme.value,
        quality=parsed.quality.value,
        creativity=parsed.creativity,
        included_text=parsed.text or None,
        concept_pass=parsed.concept_pass,
    )


def build_pattern_request(
    raw: Mapping[str, Any] | BaseModel,
    reference: ReferenceImage | None = None,
) -> GenerationRequest:
    """Validate a reference-guided request; a reference image is mandatory."""
    parsed: PatternRequest = _parse(PatternRequest, raw)
    if reference is None and not parsed.reference_image_url:
        raise ValidationError("Please upload a reference image")
    check_reference_image(reference)

    return GenerationRequest(
        flow=Flow.PATTERN,
        design_text=parsed.design_request,
        garment_type=parsed.clothing_type,
        position=parsed.image_position,
        style="pattern-to-design",
        color_scheme="reference",
        reference_image_url=None if reference else parsed.reference_image_url,
        reference_image=reference,
    )


def build_conversion_request(
    raw: Mapping[str, Any] | BaseModel,
    front: ReferenceImage | None = None,
    back: ReferenceImage | None = None,
) -> GenerationRequest:
    """Validate a garment conversion request; the front image is mandatory."""
    parsed: ConversionRequest = _parse(ConversionRequest, raw)
    if front is None and not parsed.front_image_url:
        raise ValidationError("Front image is required")
    check_reference_image(front, "Front image")
    check_reference_image(back, "Back image")

    return GenerationRequest(
        flow=Flow.CONVERSION,
        design_text=parsed.instruction,
        garment_type=parsed.target_clothing_type,
        position=Position.FRONT,
        style="cloth-conversion",
        color_scheme="reference",
        reference_image_url=None if front else parsed.front_image_url,
        back_image_url=None if back else parsed.back_image_url,
        reference_image=front,
        back_image=back,
    )
