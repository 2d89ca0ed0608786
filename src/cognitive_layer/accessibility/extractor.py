"""
Bounded plain-text extraction for whole documents and single sections.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..constants import DOCUMENT_TEXT_LIMIT
from ..text import rendered_text, truncate
from .sections import SectionDetector, SegmentationConfig

if TYPE_CHECKING:
    from lxml import etree

    from ..document import Document

# Landmarks tried in order before falling back to <body>
PRIMARY_REGION_TAGS = ("main", "article")


def primary_content_region(document: Document) -> etree._Element:
    """Select the element holding the document's main content.

    Args:
        document: Document to inspect

    Returns:
        The first ``<main>``, else the first ``<article>``, else ``<body>``
    """
    for tag in PRIMARY_REGION_TAGS:
        for candidate in document.root.iter(tag):
            if not document.in_generated(candidate):
                return candidate
    return document.body


def extract_document_summary_text(document: Document, limit: int = DOCUMENT_TEXT_LIMIT) -> str:
    """Extract the text a whole-page summary is generated from.

    Script, style and other non-rendered subtrees are ignored, as is anything
    this package inserted. The document is not modified.

    Args:
        document: Document to read
        limit: Maximum characters returned

    Returns:
        Rendered text of the primary content region, truncated and trimmed
    """
    region = primary_content_region(document)
    return truncate(rendered_text(region), limit).strip()


def extract_section_text(heading: etree._Element, config: SegmentationConfig | None = None) -> str:
    """Extract the text owned by a heading.

    Args:
        heading: An h1-h6 element
        config: Optional segmentation limits

    Returns:
        Section text bounded to ``config.section_text_limit`` characters
    """
    return SectionDetector(config).get_section_content(heading)
