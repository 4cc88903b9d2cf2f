"""Bitcoin Merchant Map — cross-source merchant deduplication."""

__version__ = "0.2.0"
