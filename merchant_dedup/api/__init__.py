"""HTTP API for the Bitcoin Merchant Map."""
