"""Filtering and end-to-end pipeline orchestration."""

from .filters import OWNERSHIP_FORM_TYPES, filter_filings, form_type_predicate
from .pipeline import InsiderPipeline, PipelineResult, SkippedFiling, build_pipeline

__all__ = [
    "OWNERSHIP_FORM_TYPES",
    "filter_filings",
    "form_type_predicate",
    "InsiderPipeline",
    "PipelineResult",
    "SkippedFiling",
    "build_pipeline",
]
