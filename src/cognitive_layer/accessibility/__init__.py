"""
Accessibility layer for HTML documents.

This module segments documents into heading-owned sections, finds controls
with ambiguous accessible names, and announces messages to screen readers
through an ARIA live region.
"""

from .announcer import Announcement, Announcer, AnnouncerConfig
from .controls import (
    ElementSelector,
    InteractiveTarget,
    find_ambiguous_controls,
    is_ambiguous,
    is_ambiguous_text,
)
from .extractor import extract_document_summary_text, extract_section_text, primary_content_region
from .sections import (
    Section,
    SectionDetector,
    SegmentationConfig,
    SegmentationMethod,
    detect_sections,
    get_element_context,
    get_section_content,
    heading_level,
)

__all__ = [
    "Announcement",
    "Announcer",
    "AnnouncerConfig",
    "ElementSelector",
    "InteractiveTarget",
    "Section",
    "SectionDetector",
    "SegmentationConfig",
    "SegmentationMethod",
    "detect_sections",
    "extract_document_summary_text",
    "extract_section_text",
    "find_ambiguous_controls",
    "get_element_context",
    "get_section_content",
    "heading_level",
    "is_ambiguous",
    "is_ambiguous_text",
    "primary_content_region",
]
