#!/usr/bin/env python3
"""
Bitcoin Merchant Map — Cross-Source Deduplication

Loads JSON dumps of each merchant directory, filters the candidate sources
against the BTC Map base set, and writes the unique records per source plus
a match report.

Strategy:
    1. Load raw payloads per source (BTC Map is the base)
    2. Normalise each payload with its source adapter, dropping malformed ones
    3. Grid-index the base set, check every candidate against its neighbourhood
    4. Output: unique records per source + duplicate matches + summary

Usage:
    python scripts/dedup_sources.py \
        --btcmap dumps/btcmap.json \
        --blink dumps/blink.json \
        --bitcoinjungle dumps/bitcoinjungle.json \
        --output-dir output/deduped/

    # Fetch BTC Map and Blink live instead of reading dumps:
    python scripts/dedup_sources.py --fetch --output-dir output/deduped/

Dependencies:
    pip install -e .
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from merchant_dedup.algorithms.composite_scorer import ConfigError, ScorerConfig, load_default_config
from merchant_dedup.algorithms.deduplicator import DedupResult, deduplicate_sources
from merchant_dedup.sources import fetch
from merchant_dedup.sources.adapters import BITCOIN_JUNGLE, BLINK, BTCMAP

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data loading
# ---------------------------------------------------------------------------


def load_dump(path: str | None) -> list[dict[str, Any]]:
    """
    Load a JSON dump of one directory.

    Accepts a bare list, or an object wrapping the list under ``data`` /
    ``mapMarkers`` / ``merchants`` (as GraphQL and REST exports do).
    """
    if not path:
        return []
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        for key in ("mapMarkers", "merchants", "data"):
            inner = data.get(key)
            if isinstance(inner, dict):
                inner = inner.get("mapMarkers")
            if isinstance(inner, list):
                data = inner
                break

    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of records")

    logger.info("Loaded %d records from %s", len(data), path)
    return data


# ---------------------------------------------------------------------------
# Main pipeline
# ---------------------------------------------------------------------------


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Cross-source deduplication for the Bitcoin Merchant Map",
    )
    parser.add_argument("--btcmap", help="BTC Map elements dump (base source)")
    parser.add_argument("--blink", help="Blink map markers dump")
    parser.add_argument("--bitcoinjungle", help="Bitcoin Jungle merchants dump")
    parser.add_argument(
        "--fetch",
        action="store_true",
        help="Fetch BTC Map and Blink from their APIs instead of --btcmap/--blink dumps.",
    )
    parser.add_argument(
        "--output-dir",
        default="output/deduped",
        help="Directory for deduplicated output (default: output/deduped/)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to dedup_rules.yaml (default: bundled rules)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print stats without writing output files.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        config = ScorerConfig.from_yaml(args.config) if args.config else load_default_config()
    except ConfigError as exc:
        logger.error("Invalid config: %s", exc)
        return 2
    logger.info(
        "Config: policy=%s strategy=%s threshold=%.2f distance=%.0fm cell=%.4f°",
        config.decision_policy, config.match_strategy,
        config.name_similarity_threshold, config.distance_threshold_m,
        config.grid_cell_size_deg,
    )

    if args.fetch:
        try:
            raw_sources = {
                BTCMAP: fetch.fetch_btcmap_elements(),
                BLINK: fetch.fetch_blink_markers(),
            }
        except fetch.UpstreamError as exc:
            logger.error("Fetch failed: %s", exc)
            return 1
    else:
        raw_sources = {BTCMAP: load_dump(args.btcmap), BLINK: load_dump(args.blink)}
    raw_sources[BITCOIN_JUNGLE] = load_dump(args.bitcoinjungle)

    if not any(raw_sources.values()):
        logger.error("No records found. Exiting.")
        return 1

    t0 = time.time()
    result = deduplicate_sources(raw_sources, config)
    logger.info("Deduplication complete in %.2fs", time.time() - t0)
    logger.info("  Base (%s) : %d", result.base_source, result.base_total)
    for source, stats in result.stats.items():
        logger.info("  %-13s: %d unique / %d duplicates", source, stats.unique, stats.duplicates)

    if args.dry_run:
        print(json.dumps(result.stats_dict(), indent=2))
        return 0

    write_output(result, args.output_dir)
    return 0


def write_output(result: DedupResult, output_dir: str) -> None:
    """Write unique records per source, the match report and a summary."""
    out_path = Path(output_dir)
    out_path.mkdir(parents=True, exist_ok=True)

    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")

    for source, records in result.unique_records.items():
        unique_path = out_path / f"unique_{source}_{ts}.json"
        with open(unique_path, "w", encoding="utf-8") as f:
            json.dump([r.to_dict() for r in records], f, indent=2, ensure_ascii=False)
        logger.info("Wrote %d %s records to %s", len(records), source, unique_path)

    if result.matches:
        matches_path = out_path / f"duplicates_{ts}.json"
        with open(matches_path, "w", encoding="utf-8") as f:
            json.dump([m.to_dict() for m in result.matches], f, indent=2, ensure_ascii=False)
        logger.info("Wrote %d duplicate matches to %s", len(result.matches), matches_path)

    summary = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "base_source": result.base_source,
        "stats": {source: s.to_dict() for source, s in result.stats.items()},
        "counters": result.stats_dict(),
    }
    summary_path = out_path / f"dedup_summary_{ts}.json"
    with open(summary_path, "w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2, ensure_ascii=False)
    logger.info("Wrote summary to %s", summary_path)


if __name__ == "__main__":
    sys.exit(main())
