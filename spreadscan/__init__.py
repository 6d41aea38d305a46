"""Cross-exchange spot arbitrage spread scanner with an HTTP query API."""

__version__ = "0.1.0"