"""TradeLedger: personal trading journal with two-factor login and performance analytics."""

__version__ = "0.3.0"
