"""
Rendered-text extraction for HTML elements.

Approximates what a browser reports as an element's ``innerText``: text of
non-rendered and hidden subtrees is dropped, runs of whitespace collapse to a
single space, and block-level boundaries become line breaks.
"""

from __future__ import annotations

import re

from lxml import etree

from .constants import BLOCK_TAGS, GENERATED_ATTR, MARKER_VALUE, NON_RENDERED_TAGS

_WHITESPACE_RE = re.compile(r"\s+")
_HIDDEN_STYLE_RE = re.compile(r"(display\s*:\s*none|visibility\s*:\s*hidden)", re.IGNORECASE)

# Marks a block boundary until normalization
_BREAK = "\n"


def is_element(node: object) -> bool:
    """Return True for real elements, False for comments and processing instructions."""
    return isinstance(node, etree._Element) and isinstance(node.tag, str)


def tag_name(element: etree._Element) -> str:
    """Return the lower-cased tag of an element, or an empty string for comments."""
    if not is_element(element):
        return ""
    return element.tag.lower()


def is_generated(element: etree._Element) -> bool:
    """Check whether an element was inserted by this package."""
    return element.get(GENERATED_ATTR) == MARKER_VALUE


def is_hidden(element: etree._Element) -> bool:
    """Check whether an element is hidden from rendering.

    Only markup-level signals are considered: the ``hidden`` attribute and an
    inline ``display: none`` or ``visibility: hidden`` style.
    """
    if element.get("hidden") is not None:
        return True
    style = element.get("style")
    return bool(style and _HIDDEN_STYLE_RE.search(style))


def is_rendered(element: etree._Element) -> bool:
    """Check whether an element contributes text to the rendered document."""
    if not is_element(element):
        return False
    if tag_name(element) in NON_RENDERED_TAGS:
        return False
    return not (is_hidden(element) or is_generated(element))


def rendered_text(element: etree._Element) -> str:
    """Get the visible text of an element.

    Args:
        element: Element to read

    Returns:
        Text with collapsed whitespace, one line per block, no blank lines.
        Empty if the element itself is not rendered.
    """
    parts: list[str] = []
    _collect(element, parts)
    return _normalize("".join(parts))


def truncate(text: str, limit: int) -> str:
    """Truncate text to at most ``limit`` characters."""
    return text[:limit] if len(text) > limit else text


def _collect(element: etree._Element, parts: list[str]) -> None:
    if not is_rendered(element):
        return

    tag = tag_name(element)
    if tag == "br":
        parts.append(_BREAK)
        return

    block = tag in BLOCK_TAGS
    if block:
        parts.append(_BREAK)

    if element.text:
        parts.append(_WHITESPACE_RE.sub(" ", element.text))

    for child in element:
        _collect(child, parts)
        # Tail text belongs to the parent's flow even when the child is skipped
        if child.tail:
            parts.append(_WHITESPACE_RE.sub(" ", child.tail))

    if block:
        parts.append(_BREAK)


def _normalize(raw: str) -> str:
    lines = (_WHITESPACE_RE.sub(" ", line).strip() for line in raw.split(_BREAK))
    return "\n".join(line for line in lines if line)
