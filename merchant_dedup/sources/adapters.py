"""
Per-source extraction of normalised merchant records.

Every directory nests coordinates and names differently.  Each source has
one adapter that pulls the required fields out of a raw payload and returns
a :class:`MerchantRecord`, or ``None`` when a required field is missing or
unusable.  Adapters are selected by source tag through ``ADAPTERS``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

logger = logging.getLogger(__name__)

BTCMAP = "btcmap"
BLINK = "blink"
BITCOIN_JUNGLE = "bitcoinjungle"
LOCAL = "local"


class UnknownSourceError(KeyError):
    """Raised when no adapter is registered for a source tag."""


@dataclass(frozen=True)
class MerchantRecord:
    """A merchant listing in source-agnostic form."""

    id: str
    name: str
    latitude: float
    longitude: float
    source: str
    original: Any = field(default=None, repr=False, compare=False)

    @property
    def key(self) -> str:
        """Globally unique key — ids are only unique within a source."""
        return f"{self.source}-{self.id}"

    def to_dict(self, include_original: bool = True) -> dict[str, Any]:
        data = {
            "id": self.id,
            "key": self.key,
            "name": self.name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "source": self.source,
        }
        if include_original:
            data["original"] = self.original
        return data


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _dig(payload: Any, *path: str) -> Any:
    """Follow a chain of dict keys, returning None at the first gap."""
    current = payload
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _coerce_coord(value: Any, limit: float) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or not -limit <= number <= limit:
        return None
    return number


def _clean_name(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    name = value.strip()
    return name or None


def make_record(
    source: str,
    record_id: Any,
    name: Any,
    latitude: Any,
    longitude: Any,
    original: Any,
) -> MerchantRecord | None:
    """Validate extracted fields and build a record, or None if unusable."""
    lat = _coerce_coord(latitude, 90.0)
    lon = _coerce_coord(longitude, 180.0)
    clean = _clean_name(name)
    if lat is None or lon is None or clean is None or record_id in (None, ""):
        return None
    return MerchantRecord(
        id=str(record_id),
        name=clean,
        latitude=lat,
        longitude=lon,
        source=source,
        original=original,
    )


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------


def from_btcmap(element: dict[str, Any]) -> MerchantRecord | None:
    """BTC Map element: coordinates and name live under ``osm_json``."""
    osm = _dig(element, "osm_json")
    return make_record(
        BTCMAP,
        _dig(element, "id"),
        _dig(osm, "tags", "name"),
        _dig(osm, "lat"),
        _dig(osm, "lon"),
        element,
    )


def from_blink(marker: dict[str, Any]) -> MerchantRecord | None:
    """Blink map marker: keyed by username, details under ``mapInfo``."""
    info = _dig(marker, "mapInfo")
    return make_record(
        BLINK,
        _dig(marker, "username"),
        _dig(info, "title"),
        _dig(info, "coordinates", "latitude"),
        _dig(info, "coordinates", "longitude"),
        marker,
    )


def from_bitcoin_jungle(merchant: dict[str, Any]) -> MerchantRecord | None:
    """Bitcoin Jungle listing; listings without an id are keyed by name and position."""
    name = _dig(merchant, "name")
    lat = _dig(merchant, "coordinates", "latitude")
    lon = _dig(merchant, "coordinates", "longitude")
    record_id = _dig(merchant, "id")
    if record_id in (None, ""):
        record_id = f"{name}@{lat},{lon}"
    return make_record(BITCOIN_JUNGLE, record_id, name, lat, lon, merchant)


def from_normalized(payload: dict[str, Any], source: str = LOCAL) -> MerchantRecord | None:
    """Records already in flat ``id/name/latitude/longitude`` form."""
    return make_record(
        source,
        _dig(payload, "id"),
        _dig(payload, "name"),
        _dig(payload, "latitude"),
        _dig(payload, "longitude"),
        payload,
    )


ADAPTERS: dict[str, Callable[[dict[str, Any]], MerchantRecord | None]] = {
    BTCMAP: from_btcmap,
    BLINK: from_blink,
    BITCOIN_JUNGLE: from_bitcoin_jungle,
    LOCAL: from_normalized,
}


def get_adapter(source: str) -> Callable[[dict[str, Any]], MerchantRecord | None]:
    try:
        return ADAPTERS[source]
    except KeyError:
        raise UnknownSourceError(source) from None


def normalize_records(source: str, raw_records: Iterable[Any] | None) -> tuple[list[MerchantRecord], int]:
    """
    Convert raw payloads of one source into MerchantRecords.

    Returns ``(records, skipped)`` where ``skipped`` counts payloads that
    could not be converted.  Input order is preserved.
    """
    adapter = get_adapter(source)
    records: list[MerchantRecord] = []
    skipped = 0
    for raw in raw_records or []:
        record = adapter(raw) if isinstance(raw, dict) else None
        if record is None:
            skipped += 1
            continue
        records.append(record)

    if skipped:
        logger.debug("Skipped %d malformed %s records", skipped, source)
    return records, skipped
