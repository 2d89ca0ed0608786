"""
cognitive_layer - AI-generated reading aids for HTML documents.

This package segments an HTML document into sections, feeds bounded text to a
generation capability one item at a time, writes summaries and accessible
labels back into the document, and announces progress through an ARIA live
region.

Example:
    >>> from cognitive_layer import Announcer, Document, EnrichmentPipeline
    >>> from cognitive_layer.backends import ClaudeCapability
    >>> doc = Document("page.html")
    >>> pipeline = EnrichmentPipeline(doc, ClaudeCapability(), Announcer(doc))
    >>> result = await pipeline.generate_section_summaries()
    >>> doc.save("page.enriched.html")
"""

__version__ = "0.1.0"
__all__ = [
    "Document",
    "Announcer",
    "Announcement",
    "AnnouncerConfig",
    "Section",
    "SectionDetector",
    "SegmentationConfig",
    "SegmentationMethod",
    "InteractiveTarget",
    "ElementSelector",
    "extract_document_summary_text",
    "extract_section_text",
    "find_ambiguous_controls",
    "Availability",
    "GenerationCapability",
    "GenerationSession",
    "ProgressEvent",
    "SessionOptions",
    "EnrichmentPipeline",
    "PipelineConfig",
    "PipelineItem",
    "OverviewTask",
    "SectionSummaryTask",
    "LabelRepairTask",
    "Command",
    "CommandDispatcher",
    "CommandResponse",
    "Settings",
    "load_settings",
    "ItemOutcome",
    "ItemResult",
    "RunResult",
    "RunState",
    "CapabilityReport",
    "CognitiveLayerError",
    "CapabilityUnavailableError",
    "ConfigurationError",
    "ContentTooShortError",
    "DocumentLoadError",
    "ItemGenerationError",
    "NoTargetsFoundError",
    "PipelineBusyError",
    "RejectedResultError",
    "RunAbortedError",
]

from .accessibility import (
    Announcement,
    Announcer,
    AnnouncerConfig,
    ElementSelector,
    InteractiveTarget,
    Section,
    SectionDetector,
    SegmentationConfig,
    SegmentationMethod,
    extract_document_summary_text,
    extract_section_text,
    find_ambiguous_controls,
)
from .capability import (
    Availability,
    GenerationCapability,
    GenerationSession,
    ProgressEvent,
    SessionOptions,
)
from .commands import Command, CommandDispatcher, CommandResponse
from .config import Settings, load_settings
from .document import Document
from .enrichment import (
    EnrichmentPipeline,
    LabelRepairTask,
    OverviewTask,
    PipelineConfig,
    PipelineItem,
    SectionSummaryTask,
)
from .errors import (
    CapabilityUnavailableError,
    CognitiveLayerError,
    ConfigurationError,
    ContentTooShortError,
    DocumentLoadError,
    ItemGenerationError,
    NoTargetsFoundError,
    PipelineBusyError,
    RejectedResultError,
    RunAbortedError,
)
from .results import CapabilityReport, ItemOutcome, ItemResult, RunResult, RunState
