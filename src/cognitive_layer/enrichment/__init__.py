"""Throttled enrichment runs over document targets."""

from .pipeline import EnrichmentPipeline
from .tasks import (
    EnrichmentTask,
    LabelRepairTask,
    OverviewTask,
    PipelineConfig,
    PipelineItem,
    SectionSummaryTask,
)

__all__ = [
    "EnrichmentPipeline",
    "EnrichmentTask",
    "LabelRepairTask",
    "OverviewTask",
    "PipelineConfig",
    "PipelineItem",
    "SectionSummaryTask",
]
