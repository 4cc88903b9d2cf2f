#!/usr/bin/env python3
"""
Bitcoin Merchant Map — Cross-Source Spatial Deduplication

The base source (BTC Map, derived from OpenStreetMap) is treated as ground
truth and is never filtered.  Every other source is checked record by
record against a grid index of the base set:

    1. Index the base records into ~1 km grid cells
    2. For each candidate, collect base records from the surrounding cells
    3. Score candidate/base pairs with the composite scorer
    4. Drop the candidate once a pair passes the duplicate decision

Candidate sources are never compared with each other.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from .composite_scorer import MatchResult, ScorerConfig, compute_match
from .spatial_index import GridIndex
from ..sources.adapters import BTCMAP, MerchantRecord, normalize_records

logger = logging.getLogger(__name__)


@dataclass
class SourceStats:
    """Per-source counters for one deduplication pass."""

    total: int = 0
    unique: int = 0
    duplicates: int = 0
    skipped: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "unique": self.unique,
            "duplicates": self.duplicates,
            "skipped": self.skipped,
        }


@dataclass
class DedupResult:
    """Unique candidate records per source, the matches that dropped the rest, and stats."""

    base_source: str
    base_total: int
    unique_records: dict[str, list[MerchantRecord]] = field(default_factory=dict)
    matches: list[MatchResult] = field(default_factory=list)
    stats: dict[str, SourceStats] = field(default_factory=dict)

    def stats_dict(self) -> dict[str, int]:
        """Flat counters: total_<source>, unique_<source>, duplicates_<source>."""
        flat = {f"total_{self.base_source}": self.base_total}
        for source, stats in self.stats.items():
            flat[f"total_{source}"] = stats.total
            flat[f"unique_{source}"] = stats.unique
            flat[f"duplicates_{source}"] = stats.duplicates
        return flat

    def to_dict(self, include_original: bool = True) -> dict[str, Any]:
        return {
            "base_source": self.base_source,
            "base_total": self.base_total,
            "merchants": {
                source: [r.to_dict(include_original) for r in records]
                for source, records in self.unique_records.items()
            },
            "stats": {source: s.to_dict() for source, s in self.stats.items()},
            "matches": [m.to_dict() for m in self.matches],
        }


def find_duplicate(
    candidate: MerchantRecord,
    index: GridIndex,
    config: ScorerConfig,
) -> MatchResult | None:
    """
    Return the match that makes ``candidate`` a duplicate, or None.

    With the ``first`` strategy the first neighbouring base record passing
    the decision rule wins.  With ``best`` every neighbour is scored and the
    highest-scoring duplicate is returned (earliest wins ties).
    """
    best: MatchResult | None = None
    for base in index.neighbors(candidate.latitude, candidate.longitude, config.distance_threshold_m):
        result = compute_match(candidate, base, config)
        if not result.is_duplicate:
            continue
        if config.match_strategy == "first":
            return result
        if best is None or result.score > best.score:
            best = result
    return best


def find_possible_duplicates(
    candidate: MerchantRecord,
    records: Iterable[MerchantRecord],
    config: ScorerConfig | None = None,
) -> list[MatchResult]:
    """
    Every record near ``candidate`` that passes the duplicate decision,
    highest score first.  Used to flag a new suggestion before it is stored.
    """
    if config is None:
        config = ScorerConfig()
    index = GridIndex(records, config.grid_cell_size_deg)
    matches = [
        result
        for result in (
            compute_match(candidate, other, config)
            for other in index.neighbors(candidate.latitude, candidate.longitude, config.distance_threshold_m)
            if other.key != candidate.key
        )
        if result.is_duplicate
    ]
    matches.sort(key=lambda m: m.score, reverse=True)
    return matches


def deduplicate_against_base(
    base_records: Iterable[MerchantRecord],
    candidates: Mapping[str, Iterable[MerchantRecord]],
    config: ScorerConfig | None = None,
    *,
    base_source: str = BTCMAP,
    skipped: Mapping[str, int] | None = None,
) -> DedupResult:
    """
    Partition already-normalised candidate records into unique and duplicate.

    Parameters
    ----------
    base_records : iterable of MerchantRecord
        The ground-truth set; indexed, never filtered.
    candidates : mapping of source → iterable of MerchantRecord
        Candidate sets, each checked independently against the base.
    config : ScorerConfig, optional
        Thresholds, weights, grid size. Defaults if not provided.
    skipped : mapping of source → int, optional
        Malformed-record counts to carry into the stats.
    """
    if config is None:
        config = ScorerConfig()
    skipped = skipped or {}

    index = GridIndex(base_records, config.grid_cell_size_deg)
    result = DedupResult(base_source=base_source, base_total=len(index))
    logger.debug("Indexed %d %s records into %d cells", len(index), base_source, len(index.cells))

    for source, records in candidates.items():
        stats = SourceStats(skipped=skipped.get(source, 0))
        unique: list[MerchantRecord] = []

        for candidate in records:
            stats.total += 1
            match = find_duplicate(candidate, index, config)
            if match is None:
                unique.append(candidate)
                continue
            stats.duplicates += 1
            result.matches.append(match)
            logger.debug(
                "Found duplicate: %r matches %r with score %.4f",
                match.candidate_name, match.base_name, match.score,
            )

        stats.unique = len(unique)
        result.unique_records[source] = unique
        result.stats[source] = stats
        logger.info(
            "%-14s total=%d unique=%d duplicates=%d skipped=%d",
            source, stats.total, stats.unique, stats.duplicates, stats.skipped,
        )

    return result


def deduplicate_sources(
    raw_sources: Mapping[str, Iterable[Any] | None],
    config: ScorerConfig | None = None,
    *,
    base_source: str = BTCMAP,
) -> DedupResult:
    """
    Deduplicate raw per-source payloads against the base source.

    ``raw_sources`` maps a source tag to its raw payload list; the payloads
    are run through the source's adapter first and malformed ones are
    dropped.  A missing base source means nothing can be a duplicate.
    Candidate sources are processed in mapping order.
    """
    base_records, base_skipped = normalize_records(base_source, raw_sources.get(base_source))
    if base_skipped:
        logger.info("Skipped %d malformed %s records", base_skipped, base_source)

    candidates: dict[str, list[MerchantRecord]] = {}
    skipped: dict[str, int] = {}
    for source, raw in raw_sources.items():
        if source == base_source:
            continue
        candidates[source], skipped[source] = normalize_records(source, raw)

    return deduplicate_against_base(
        base_records,
        candidates,
        config,
        base_source=base_source,
        skipped=skipped,
    )
