"""vidharvest: scheduled YouTube search ingestion with API key rotation."""

__version__ = "1.0.0"
