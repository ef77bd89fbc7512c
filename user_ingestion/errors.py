class IngestionError(RuntimeError):
    """Generic ingestion error."""


class ConfigError(IngestionError):
    """Raised when required settings are missing or invalid."""


class CheckpointError(IngestionError):
    """Raised when a checkpoint would be written twice for the same offset."""
