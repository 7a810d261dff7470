from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from enum import Enum


class GarmentType(str, Enum):
    T_SHIRT = "t-shirt"
    HOODIE = "hoodie"
    POLO = "polo"
    TOPS = "tops"
    SWEATSHIRT = "sweatshirt"


class Position(str, Enum):
    FRONT = "front"
    BACK = "back"


class DesignStyle(str, Enum):
    MODERN = "modern"
    VINTAGE = "vintage"
    MINIMALIST = "minimalist"
    ABSTRACT = "abstract"
    RETRO = "retro"
    GRAFFITI = "graffiti"
    ANIME = "anime"
    GEOMETRIC = "geometric"
    ORGANIC = "organic"
    GRUNGE = "grunge"
    REALISTIC = "realistic"


class ColorScheme(str, Enum):
    NORMAL = "normal"
    VIBRANT = "vibrant"
    PASTEL = "pastel"
    MONOCHROME = "monochrome"
    NEON = "neon"
    EARTH_TONES = "earth-tones"
    BLACK_WHITE = "black-white"
    COOL = "cool"
    WARM = "warm"
    GRADIENT = "gradient"


class Quality(str, Enum):
    STANDARD = "standard"
    HIGH = "high"
    ULTRA = "ultra"


class _TrimmedText(BaseModel):
    @field_validator("*", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class DesignRequest(_TrimmedText):
    """Text-only design: the user describes the artwork."""
    prompt: str = Field(
        ...,
        min_length=10,
        max_length=500,
        description="Description of the artwork (e.g., 'Bold red geometric emblem, minimalist')",
    )
    style: DesignStyle = DesignStyle.REALISTIC
    color_scheme: ColorScheme = ColorScheme.NORMAL
    quality: Quality = Quality.HIGH
    creativity: int = Field(default=70, ge=0, le=100)
    text: str | None = Field(
        default=None, max_length=120, description="Optional text to print with the design"
    )
    clothing_type: GarmentType = GarmentType.T_SHIRT
    image_position: Position = Position.FRONT
    concept_pass: bool = Field(
        default=False,
        description="Render a free concept illustration first, then isolate it for print",
    )


class GenerateDesignBody(DesignRequest):
    """HTTP body for the text design flow."""
    user_id: str | None = Field(default=None, description="Owner of the generation, if signed in")


class PatternRequest(_TrimmedText):
    """Reference-guided design: colors and texture come from an image."""
    reference_image_url: str | None = None
    design_request: str = Field(..., min_length=10, max_length=800)
    clothing_type: GarmentType = GarmentType.T_SHIRT
    image_position: Position = Position.FRONT


class ConversionRequest(_TrimmedText):
    """Turn photos of an existing garment into a front/back studio mockup."""
    front_image_url: str | None = None
    back_image_url: str | None = None
    instruction: str = Field(..., min_length=10, max_length=800)
    target_clothing_type: GarmentType = GarmentType.T_SHIRT


class OverlayGeometryInfo(BaseModel):
    width_percent: float
    left_percent: float
    top_percent: float


class MockupLayerInfo(BaseModel):
    garment_type: GarmentType
    position: Position
    base_image_url: str
    overlay_image_url: str | None
    geometry: OverlayGeometryInfo
    style: dict[str, str]


class GenerationResponse(BaseModel):
    """Result of one pipeline run."""
    image_url: str
    stored_url: str | None = None
    source_url: str
    reference_image_url: str | None = None
    record_id: str | None = None
    mockup: MockupLayerInfo | None = None
    warnings: list[str] = []
    message: str = "Design generated successfully"


class GenerationRecordInfo(BaseModel):
    id: str
    prompt: str
    style: str
    color_scheme: str
    clothing_type: str | None
    image_position: str | None
    included_text: str | None = None
    image_url: str
    created_at: datetime

    class Config:
        from_attributes = True
