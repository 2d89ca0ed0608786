"""
Multi-tier section segmentation for HTML documents.

Heading and sectioning markup is inconsistent across real pages, so the text
owned by a heading is found with a cascading algorithm that degrades
gracefully instead of returning nothing:

- Tier 1: Following siblings of the heading, up to the next heading of the
  same or higher rank
- Tier 2: Following siblings of the heading's parent, up to a sibling that is
  or contains a heading of the same or higher rank
- Tier 3: Full text of the heading's parent
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING

from lxml import etree

from ..constants import (
    CONTEXT_ANCESTOR_DEPTH,
    CONTEXT_TEXT_LIMIT,
    HEADING_TAGS,
    MARKER_VALUE,
    MAX_HEADING_TEXT_LENGTH,
    MIN_VIABLE_LENGTH,
    NON_CONTENT_TAGS,
    PROCESSED_ATTR,
    SECTION_TEXT_LIMIT,
)
from ..text import is_element, is_generated, rendered_text, tag_name, truncate

if TYPE_CHECKING:
    from ..document import Document

logger = logging.getLogger(__name__)


class SegmentationMethod(Enum):
    """Tier that produced a section's content."""

    SIBLINGS = auto()  # Following siblings of the heading
    PARENT_SIBLINGS = auto()  # Following siblings of the heading's parent
    PARENT_TEXT = auto()  # Whole text of the heading's parent


@dataclass
class SegmentationConfig:
    """Configuration for section segmentation.

    Attributes:
        section_text_limit: Maximum characters of content per section
        min_viable_length: Content shorter than this triggers the next tier,
            and sections still below it are not worth summarizing
        context_text_limit: Maximum characters of parent text used as element context
        context_ancestor_depth: Ancestor levels searched for a topical heading
        max_heading_length: Headings with longer text are not treated as section titles
    """

    section_text_limit: int = SECTION_TEXT_LIMIT
    min_viable_length: int = MIN_VIABLE_LENGTH
    context_text_limit: int = CONTEXT_TEXT_LIMIT
    context_ancestor_depth: int = CONTEXT_ANCESTOR_DEPTH
    max_heading_length: int = MAX_HEADING_TEXT_LENGTH


@dataclass
class Section:
    """A heading and the body text judged to belong to it.

    Attributes:
        heading: The h1-h6 element
        level: Heading rank (1-6)
        heading_text: Rendered text of the heading
        content: Section text, bounded to the configured limit
        method: Segmentation tier that produced the content
    """

    heading: etree._Element = field(repr=False)
    level: int
    heading_text: str
    content: str
    method: SegmentationMethod

    @property
    def processed(self) -> bool:
        """Whether a summary has already been generated for this section."""
        return self.heading.get(PROCESSED_ATTR) == MARKER_VALUE

    def mark_processed(self) -> None:
        """Record on the heading that this section has been summarized."""
        self.heading.set(PROCESSED_ATTR, MARKER_VALUE)


def heading_level(element: etree._Element) -> int | None:
    """Get the rank of an h1-h6 element.

    Args:
        element: Any element

    Returns:
        1-6 for headings, None for everything else
    """
    tag = tag_name(element)
    if tag in HEADING_TAGS:
        return int(tag[1])
    return None


def _element_siblings(element: etree._Element) -> Iterator[etree._Element]:
    """Following element siblings in document order, comments excluded."""
    for sibling in element.itersiblings():
        if is_element(sibling):
            yield sibling


def _first_heading(element: etree._Element) -> etree._Element | None:
    """The element itself if it is a heading, else its first nested heading."""
    for candidate in element.iter(*HEADING_TAGS):
        if not is_generated(candidate):
            return candidate
    return None


def _is_content(element: etree._Element) -> bool:
    return tag_name(element) not in NON_CONTENT_TAGS and not is_generated(element)


class SectionDetector:
    """Computes section boundaries and element context.

    Example:
        >>> detector = SectionDetector()
        >>> for section in detector.detect(doc):
        ...     print(section.level, section.heading_text, len(section.content))
    """

    def __init__(self, config: SegmentationConfig | None = None) -> None:
        """Initialize the detector.

        Args:
            config: Segmentation limits; defaults are used when omitted
        """
        self.config = config or SegmentationConfig()

    def detect(self, document: Document) -> list[Section]:
        """Build a Section for every heading in the document.

        Args:
            document: Document to segment

        Returns:
            Sections in document order
        """
        sections: list[Section] = []
        for heading in document.headings():
            level = heading_level(heading)
            if level is None:
                continue
            text, method = self.segment(heading)
            sections.append(
                Section(
                    heading=heading,
                    level=level,
                    heading_text=rendered_text(heading).strip(),
                    content=text,
                    method=method,
                )
            )
        logger.debug("Detected %d sections", len(sections))
        return sections

    def get_section_content(self, heading: etree._Element) -> str:
        """Get the body text owned by a heading.

        Args:
            heading: An h1-h6 element

        Returns:
            Trimmed text, at most ``section_text_limit`` characters
        """
        text, _ = self.segment(heading)
        return text

    def segment(self, heading: etree._Element) -> tuple[str, SegmentationMethod]:
        """Run the tiered segmentation for one heading.

        Args:
            heading: An h1-h6 element

        Returns:
            Tuple of (content, tier that produced it)

        Raises:
            ValueError: If ``heading`` is not an h1-h6 element
        """
        rank = heading_level(heading)
        if rank is None:
            raise ValueError(f"Not a heading element: <{tag_name(heading)}>")

        limit = self.config.section_text_limit
        minimum = self.config.min_viable_length

        # Tier 1: siblings of the heading
        method = SegmentationMethod.SIBLINGS
        content = self._collect_siblings(heading, rank)

        # Tier 2: siblings of the heading's parent
        parent = heading.getparent()
        if len(content) < minimum and parent is not None:
            method = SegmentationMethod.PARENT_SIBLINGS
            content = self._collect_parent_siblings(parent, rank, content)

        # Tier 3: whole parent
        if len(content) < minimum and parent is not None:
            method = SegmentationMethod.PARENT_TEXT
            content = truncate(rendered_text(parent), limit)

        return truncate(content.strip(), limit), method

    def _collect_siblings(self, heading: etree._Element, rank: int) -> str:
        limit = self.config.section_text_limit
        content = ""

        for sibling in _element_siblings(heading):
            level = heading_level(sibling)
            if level is not None and level <= rank:
                break

            if _is_content(sibling):
                text = rendered_text(sibling)
                if text.strip():
                    content += text + " "

            if len(content) > limit:
                content = content[:limit]
                break

        return content

    def _collect_parent_siblings(self, parent: etree._Element, rank: int, content: str) -> str:
        limit = self.config.section_text_limit

        for sibling in _element_siblings(parent):
            if len(content) >= limit:
                break

            nested = _first_heading(sibling)
            if nested is not None:
                nested_level = heading_level(nested)
                if nested_level is not None and nested_level <= rank:
                    break

            if _is_content(sibling):
                text = rendered_text(sibling)
                if text.strip():
                    content += text + " "

        return content

    def get_element_context(self, element: etree._Element) -> str:
        """Get topical context for an interactive element.

        Ascends up to ``context_ancestor_depth`` ancestors looking for the
        nearest heading, then appends the start of the parent's text.

        Args:
            element: Element needing context

        Returns:
            Heading text followed by up to ``context_text_limit`` characters
            of the parent's text, trimmed
        """
        context = ""

        ancestor = element.getparent()
        depth = 0
        while ancestor is not None and not context and depth < self.config.context_ancestor_depth:
            heading = _first_heading(ancestor)
            if heading is not None:
                context = rendered_text(heading)
            ancestor = ancestor.getparent()
            depth += 1

        parent = element.getparent()
        nearby = rendered_text(parent) if parent is not None else ""
        context += " " + nearby[: self.config.context_text_limit]

        return context.strip()


def detect_sections(document: Document, config: SegmentationConfig | None = None) -> list[Section]:
    """Convenience function to segment a document.

    Args:
        document: Document to segment
        config: Optional segmentation limits

    Returns:
        Sections in document order
    """
    return SectionDetector(config).detect(document)


def get_section_content(heading: etree._Element, config: SegmentationConfig | None = None) -> str:
    """Convenience function returning the text owned by a heading."""
    return SectionDetector(config).get_section_content(heading)


def get_element_context(element: etree._Element, config: SegmentationConfig | None = None) -> str:
    """Convenience function returning topical context for an element."""
    return SectionDetector(config).get_element_context(element)
