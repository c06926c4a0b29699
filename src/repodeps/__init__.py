"""repodeps - dependency and stack analysis for source repositories."""

__version__ = "0.1.0"
