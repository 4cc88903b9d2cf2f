#!/usr/bin/env python3
"""
Bitcoin Merchant Map — Composite Similarity Scorer

Combines name similarity and geospatial proximity into a single score
(0.0–1.0) and decides whether two merchant records describe the same
business.

Two decision policies are supported:

    weighted     name_weight * name_sim + location_weight * distance_sim
                 must reach name_similarity_threshold (default)
    conjunctive  name_sim must reach name_similarity_threshold AND the
                 distance must be within distance_threshold_m

Dependencies:
    pip install rapidfuzz pyyaml
"""

from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from .geo_proximity import (
    Coordinate,
    DEFAULT_DISTANCE_THRESHOLD_M,
    compute_geo_proximity,
    meters_to_lat_degrees,
)
from .name_similarity import (
    DEFAULT_STOP_WORDS,
    NAME_METRICS,
    build_stop_pattern,
    compute_name_similarity,
)

if TYPE_CHECKING:
    from ..sources.adapters import MerchantRecord


# ---------------------------------------------------------------------------
# Defaults (overridden by dedup_rules.yaml at runtime)
# ---------------------------------------------------------------------------

DEFAULT_NAME_SIMILARITY_THRESHOLD = 0.7
DEFAULT_NAME_WEIGHT = 0.6
DEFAULT_LOCATION_WEIGHT = 0.4
DEFAULT_GRID_CELL_SIZE_DEG = 0.01  # roughly 1 km

DECISION_POLICIES = ("weighted", "conjunctive")
MATCH_STRATEGIES = ("first", "best")

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "dedup_rules.yaml"


class ConfigError(ValueError):
    """Raised when a scorer configuration would produce meaningless scores."""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass
class ScorerConfig:
    """Thresholds, weights and grid settings for one deduplication pass."""

    name_similarity_threshold: float = DEFAULT_NAME_SIMILARITY_THRESHOLD
    distance_threshold_m: float = DEFAULT_DISTANCE_THRESHOLD_M
    name_weight: float = DEFAULT_NAME_WEIGHT
    location_weight: float = DEFAULT_LOCATION_WEIGHT
    grid_cell_size_deg: float = DEFAULT_GRID_CELL_SIZE_DEG
    decision_policy: str = "weighted"
    match_strategy: str = "first"
    name_metric: str = "levenshtein"
    stop_words: tuple[str, ...] = DEFAULT_STOP_WORDS
    stop_pattern: re.Pattern[str] | None = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.stop_words = tuple(self.stop_words)
        self.validate()
        self.stop_pattern = build_stop_pattern(self.stop_words)

    def validate(self) -> None:
        """Reject configurations outside the meaningful range."""
        for name in ("name_similarity_threshold", "name_weight", "location_weight"):
            value = getattr(self, name)
            if not _is_number(value) or not 0.0 <= value <= 1.0:
                raise ConfigError(f"{name} must be within [0, 1], got {value!r}")

        if not math.isclose(self.name_weight + self.location_weight, 1.0, abs_tol=1e-9):
            raise ConfigError(
                f"name_weight + location_weight must equal 1, got "
                f"{self.name_weight} + {self.location_weight}"
            )

        if not _is_number(self.distance_threshold_m) or not (
            math.isfinite(self.distance_threshold_m) and self.distance_threshold_m > 0
        ):
            raise ConfigError(f"distance_threshold_m must be a positive number, got {self.distance_threshold_m!r}")

        if not _is_number(self.grid_cell_size_deg) or not (
            math.isfinite(self.grid_cell_size_deg) and self.grid_cell_size_deg > 0
        ):
            raise ConfigError(f"grid_cell_size_deg must be a positive number, got {self.grid_cell_size_deg!r}")

        # A match radius wider than one cell could fall outside the 3x3 block
        min_cell = meters_to_lat_degrees(self.distance_threshold_m)
        if self.grid_cell_size_deg < min_cell:
            raise ConfigError(
                f"grid_cell_size_deg {self.grid_cell_size_deg} is smaller than the "
                f"distance threshold ({self.distance_threshold_m} m ≈ {min_cell:.6f}°)"
            )

        if self.decision_policy not in DECISION_POLICIES:
            raise ConfigError(f"decision_policy must be one of {DECISION_POLICIES}, got {self.decision_policy!r}")
        if self.match_strategy not in MATCH_STRATEGIES:
            raise ConfigError(f"match_strategy must be one of {MATCH_STRATEGIES}, got {self.match_strategy!r}")
        if self.name_metric not in NAME_METRICS:
            raise ConfigError(f"name_metric must be one of {NAME_METRICS}, got {self.name_metric!r}")
        if any(not isinstance(w, str) for w in self.stop_words):
            raise ConfigError("stop_words must be a list of strings")

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("stop_pattern", None)
        data["stop_words"] = list(self.stop_words)
        return data

    def with_overrides(self, **overrides: Any) -> "ScorerConfig":
        """Return a validated copy with the given fields replaced."""
        allowed = {f.name for f in fields(self) if f.init}
        unknown = set(overrides) - allowed
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        data = {k: v for k, v in self.to_dict().items() if k in allowed}
        data.update(overrides)
        return ScorerConfig(**data)

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> "ScorerConfig":
        """Build a configuration from the nested dedup_rules.yaml layout."""
        raw = raw or {}
        thresholds = raw.get("thresholds", {}) or {}
        weights = raw.get("weights", {}) or {}
        grid = raw.get("grid", {}) or {}
        matching = raw.get("matching", {}) or {}
        normalization = raw.get("normalization", {}) or {}

        return cls(
            name_similarity_threshold=thresholds.get("name_similarity", DEFAULT_NAME_SIMILARITY_THRESHOLD),
            distance_threshold_m=thresholds.get("distance_m", DEFAULT_DISTANCE_THRESHOLD_M),
            name_weight=weights.get("name", DEFAULT_NAME_WEIGHT),
            location_weight=weights.get("location", DEFAULT_LOCATION_WEIGHT),
            grid_cell_size_deg=grid.get("cell_size_deg", DEFAULT_GRID_CELL_SIZE_DEG),
            decision_policy=matching.get("decision_policy", "weighted"),
            match_strategy=matching.get("strategy", "first"),
            name_metric=matching.get("name_metric", "levenshtein"),
            stop_words=tuple(normalization.get("stop_words", DEFAULT_STOP_WORDS)),
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ScorerConfig":
        """Load configuration from a YAML file."""
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
        if raw is not None and not isinstance(raw, dict):
            raise ConfigError(f"{path}: expected a mapping at the top level")
        return cls.from_dict(raw)


# ---------------------------------------------------------------------------
# Composite scorer
# ---------------------------------------------------------------------------


@dataclass
class MatchResult:
    """Detailed result of comparing a candidate record with a base record."""

    candidate_key: str
    base_key: str
    candidate_name: str
    base_name: str
    name_similarity: float
    distance_m: float
    distance_similarity: float
    score: float
    is_duplicate: bool
    policy: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "candidate_key": self.candidate_key,
            "base_key": self.base_key,
            "candidate_name": self.candidate_name,
            "base_name": self.base_name,
            "name_similarity": round(self.name_similarity, 4),
            "distance_m": round(self.distance_m, 1),
            "distance_similarity": round(self.distance_similarity, 4),
            "score": round(self.score, 4),
            "is_duplicate": self.is_duplicate,
            "policy": self.policy,
        }


def _is_duplicate(name_sim: float, distance_m: float, score: float, config: ScorerConfig) -> bool:
    if config.decision_policy == "conjunctive":
        return (
            name_sim >= config.name_similarity_threshold
            and distance_m <= config.distance_threshold_m
        )
    return score >= config.name_similarity_threshold


def combined_score(name_sim: float, distance_sim: float, config: ScorerConfig) -> float:
    """Weighted blend of name and location evidence, rounded to 6 places."""
    return round(
        config.name_weight * name_sim + config.location_weight * distance_sim,
        6,
    )


def compute_match(
    candidate: "MerchantRecord",
    base: "MerchantRecord",
    config: ScorerConfig | None = None,
) -> MatchResult:
    """
    Score a candidate merchant against a base merchant.

    Parameters
    ----------
    candidate, base : MerchantRecord
        Normalised merchant records (see ``merchant_dedup.sources``).
    config : ScorerConfig, optional
        Scoring configuration. Uses defaults if not provided.

    Returns
    -------
    MatchResult with score in [0.0, 1.0] and the duplicate decision.
    """
    if config is None:
        config = ScorerConfig()

    name_result = compute_name_similarity(
        candidate.name,
        base.name,
        metric=config.name_metric,
        stop_pattern=config.stop_pattern,
    )
    name_sim = name_result["score"]

    geo_result = compute_geo_proximity(
        Coordinate(candidate.latitude, candidate.longitude),
        Coordinate(base.latitude, base.longitude),
        threshold_m=config.distance_threshold_m,
    )
    distance_m = geo_result["distance_m"]
    distance_sim = geo_result["score"]

    score = combined_score(name_sim, distance_sim, config)

    return MatchResult(
        candidate_key=candidate.key,
        base_key=base.key,
        candidate_name=candidate.name,
        base_name=base.name,
        name_similarity=name_sim,
        distance_m=distance_m,
        distance_similarity=distance_sim,
        score=score,
        is_duplicate=_is_duplicate(name_sim, distance_m, score, config),
        policy=config.decision_policy,
    )


# ---------------------------------------------------------------------------
# Convenience helpers
# ---------------------------------------------------------------------------


def similarity_score(
    record_a: "MerchantRecord",
    record_b: "MerchantRecord",
    config: ScorerConfig | None = None,
) -> float:
    """Return only the combined similarity score (0.0–1.0)."""
    return compute_match(record_a, record_b, config).score


def load_default_config() -> ScorerConfig:
    """Load the bundled dedup_rules.yaml, or built-in defaults if it is absent."""
    if DEFAULT_CONFIG_PATH.exists():
        return ScorerConfig.from_yaml(DEFAULT_CONFIG_PATH)
    return ScorerConfig()
