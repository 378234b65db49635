"""Domain value objects."""

from mediakeeper.domain.value_objects.quality import (
    DEFAULT_RANKINGS,
    MediaType,
    QualityLevel,
    QualityRanking,
    default_ranking,
    quality_from_name,
)
from mediakeeper.domain.value_objects.quality_parser import parse_quality

__all__ = [
    "DEFAULT_RANKINGS",
    "MediaType",
    "QualityLevel",
    "QualityRanking",
    "default_ranking",
    "parse_quality",
    "quality_from_name",
]
