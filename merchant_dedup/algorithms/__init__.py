"""Bitcoin Merchant Map — Deduplication Algorithms."""

from .name_similarity import (
    DEFAULT_STOP_WORDS,
    compute_name_similarity,
    dice_similarity,
    levenshtein_similarity,
    normalize_name,
    quick_name_score,
)
from .geo_proximity import (
    Coordinate,
    compute_geo_proximity,
    distance_similarity,
    haversine_m,
)
from .composite_scorer import (
    ConfigError,
    MatchResult,
    ScorerConfig,
    compute_match,
    load_default_config,
    similarity_score,
)
from .spatial_index import GridIndex, grid_key
from .deduplicator import (
    DedupResult,
    SourceStats,
    deduplicate_against_base,
    deduplicate_sources,
    find_duplicate,
    find_possible_duplicates,
)

__all__ = [
    "DEFAULT_STOP_WORDS",
    "compute_name_similarity",
    "dice_similarity",
    "levenshtein_similarity",
    "normalize_name",
    "quick_name_score",
    "Coordinate",
    "compute_geo_proximity",
    "distance_similarity",
    "haversine_m",
    "ConfigError",
    "MatchResult",
    "ScorerConfig",
    "compute_match",
    "load_default_config",
    "similarity_score",
    "GridIndex",
    "grid_key",
    "DedupResult",
    "SourceStats",
    "deduplicate_against_base",
    "deduplicate_sources",
    "find_duplicate",
    "find_possible_duplicates",
]
