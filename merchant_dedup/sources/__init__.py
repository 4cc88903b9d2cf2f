"""Source adapters and upstream fetchers for the merchant directories."""

from .adapters import (
    ADAPTERS,
    BITCOIN_JUNGLE,
    BLINK,
    BTCMAP,
    LOCAL,
    MerchantRecord,
    UnknownSourceError,
    normalize_records,
)

__all__ = [
    "ADAPTERS",
    "BITCOIN_JUNGLE",
    "BLINK",
    "BTCMAP",
    "LOCAL",
    "MerchantRecord",
    "UnknownSourceError",
    "normalize_records",
]
