"""HyperWorld multi-agent strategy engine for Hyperliquid."""

__version__ = "0.1.0"
