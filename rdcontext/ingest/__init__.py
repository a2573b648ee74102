"""Library ingestion pipeline."""
from .pipeline import AddOptions, IngestionPipeline, IngestionStage, IngestionSummary

__all__ = ["AddOptions", "IngestionPipeline", "IngestionStage", "IngestionSummary"]
