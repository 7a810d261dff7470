from studio.models.generation_record import GenerationRecord
from studio.models.generation_stats import UserGenerationStats

__all__ = ["GenerationRecord", "UserGenerationStats"]
