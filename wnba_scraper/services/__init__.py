"""Run orchestration."""

from .pipeline import FETCH_STATES, IngestionPipeline, PipelineState, RunSummary

__all__ = ["FETCH_STATES", "IngestionPipeline", "PipelineState", "RunSummary"]
