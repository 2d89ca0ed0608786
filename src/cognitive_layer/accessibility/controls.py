"""
Detection of links and buttons whose accessible name is missing or ambiguous.

A control is selected for repair when nothing overrides its accessible name
and its visible text is a generic phrase ("click here", "more", ...), shorter
than three characters, or empty.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from urllib.parse import urljoin

from ..constants import (
    AMBIGUOUS_PHRASES,
    ARIA_LABEL,
    ARIA_LABELLEDBY,
    FIXED_ATTR,
    MARKER_VALUE,
    MIN_CONTROL_TEXT_LENGTH,
)
from ..text import rendered_text, tag_name, truncate
from .sections import SectionDetector

if TYPE_CHECKING:
    from lxml import etree

    from ..document import Document

logger = logging.getLogger(__name__)


@dataclass
class InteractiveTarget:
    """A control selected for label repair.

    Attributes:
        element: The ``<a>`` or ``<button>`` element
        visible_text: Rendered text of the control as it appears on the page
        destination_hint: Link target or form action, resolved against the document URL
        surrounding_context: Nearby heading and parent text, at most 200 characters
    """

    element: etree._Element = field(repr=False)
    visible_text: str
    destination_hint: str
    surrounding_context: str

    @property
    def fixed(self) -> bool:
        """Whether a label has already been generated for this control."""
        return self.element.get(FIXED_ATTR) == MARKER_VALUE

    def mark_fixed(self) -> None:
        """Record on the control that its label has been generated."""
        self.element.set(FIXED_ATTR, MARKER_VALUE)


def has_name_override(element: etree._Element) -> bool:
    """Check whether a control carries a non-empty explicit accessible name."""
    for attr in (ARIA_LABEL, ARIA_LABELLEDBY):
        value = element.get(attr)
        if value and value.strip():
            return True
    return False


def is_ambiguous_text(text: str) -> bool:
    """Check whether visible control text says nothing about its purpose.

    Args:
        text: Visible text of the control

    Returns:
        True for empty text, text under three characters, or a generic phrase
    """
    normalized = text.strip().lower()
    return (
        not normalized
        or len(normalized) < MIN_CONTROL_TEXT_LENGTH
        or normalized in AMBIGUOUS_PHRASES
    )


def is_ambiguous(element: etree._Element) -> bool:
    """Check whether a control needs a generated label."""
    if has_name_override(element):
        return False
    return is_ambiguous_text(rendered_text(element))


def destination_hint(element: etree._Element, base_url: str | None = None) -> str:
    """Where a control leads: a link's href or a button's form action."""
    if tag_name(element) == "a":
        target = element.get("href", "")
    else:
        target = element.get("formaction", "")
    target = target.strip()
    if target and base_url:
        return urljoin(base_url, target)
    return target


class ElementSelector:
    """Finds controls that need a generated accessible name.

    Example:
        >>> selector = ElementSelector()
        >>> for target in selector.select(doc):
        ...     print(repr(target.visible_text), target.destination_hint)
    """

    def __init__(self, detector: SectionDetector | None = None) -> None:
        """Initialize the selector.

        Args:
            detector: Used to compute surrounding context; defaults to a
                      detector with default limits
        """
        self.detector = detector or SectionDetector()

    def select(self, document: Document) -> list[InteractiveTarget]:
        """Collect ambiguous, not yet fixed controls in document order.

        Args:
            document: Document to scan

        Returns:
            Targets in document order
        """
        limit = self.detector.config.context_text_limit
        targets: list[InteractiveTarget] = []

        for element in document.controls():
            if element.get(FIXED_ATTR) == MARKER_VALUE:
                continue
            if not is_ambiguous(element):
                continue

            targets.append(
                InteractiveTarget(
                    element=element,
                    visible_text=rendered_text(element),
                    destination_hint=destination_hint(element, document.url),
                    surrounding_context=truncate(
                        self.detector.get_element_context(element), limit
                    ),
                )
            )

        logger.debug("Selected %d ambiguous controls", len(targets))
        return targets


def find_ambiguous_controls(document: Document) -> list[InteractiveTarget]:
    """Convenience function returning ambiguous controls with default limits."""
    return ElementSelector().select(document)
