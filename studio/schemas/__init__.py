from studio.schemas.generation import (
    GarmentType,
    Position,
    DesignStyle,
    ColorScheme,
    Quality,
    DesignRequest,
    GenerateDesignBody,
    PatternRequest,
    ConversionRequest,
    OverlayGeometryInfo,
    MockupLayerInfo,
    GenerationResponse,
    GenerationRecordInfo,
)

__all__ = [
    "GarmentType",
    "Position",
    "DesignStyle",
    "ColorScheme",
    "Quality",
    "DesignRequest",
    "GenerateDesignBody",
    "PatternRequest",
    "ConversionRequest",
    "OverlayGeometryInfo",
    "MockupLayerInfo",
    "GenerationResponse",
    "GenerationRecordInfo",
]
