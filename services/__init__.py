"""Key pool, YouTube client, video store and ingestion engine."""
