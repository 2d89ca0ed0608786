"""
Centralized constants for HTML structure, ARIA attributes and marker values.

This module consolidates the tag sets, attribute names and text limits used by
the extraction, segmentation and enrichment layers. Import from here to ensure
consistency and make updates easier.
"""

# =============================================================================
# HTML Structure
# =============================================================================

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")

# Controls that can carry an ambiguous accessible name
CONTROL_TAGS = ("a", "button")

# Subtrees that never contribute rendered text
NON_RENDERED_TAGS = frozenset(
    {"script", "style", "noscript", "template", "meta", "link", "head", "title"}
)

# Siblings skipped while accumulating a section's text
NON_CONTENT_TAGS = frozenset({"script", "style", "noscript", "template", "nav", "aside"})

# Elements whose boundaries break rendered text onto a new line
BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "blockquote", "body", "dd", "details",
        "dialog", "div", "dl", "dt", "fieldset", "figcaption", "figure",
        "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6", "header",
        "hgroup", "hr", "html", "li", "main", "nav", "ol", "p", "pre",
        "section", "summary", "table", "tbody", "td", "tfoot", "th", "thead",
        "tr", "ul",
    }
)  # fmt: skip


# =============================================================================
# ARIA Attributes
# =============================================================================

ARIA_LABEL = "aria-label"
ARIA_LABELLEDBY = "aria-labelledby"
ARIA_DESCRIBEDBY = "aria-describedby"
ARIA_HIDDEN = "aria-hidden"
ARIA_LIVE = "aria-live"
ARIA_ATOMIC = "aria-atomic"


# =============================================================================
# Marker Attributes
# =============================================================================

# Set on headings whose section summary has been generated
PROCESSED_ATTR = "data-cognitive-processed"

# Set on controls whose aria-label has been generated
FIXED_ATTR = "data-cognitive-fixed"

# Set on <body> once a page overview has been inserted
OVERVIEW_ATTR = "data-cognitive-overview"

# Set on every element this package inserts into the document
GENERATED_ATTR = "data-cognitive-generated"

MARKER_VALUE = "true"


# =============================================================================
# Generated Elements
# =============================================================================

ANNOUNCER_ID = "cognitive-layer-announcer"
OVERVIEW_ID = "cognitive-layer-overview"
SECTION_SUMMARY_CLASS = "cognitive-section-summary"
SECTION_SUMMARY_ID_PREFIX = "cognitive-summary-"

# Visually hidden, still exposed to screen readers
VISUALLY_HIDDEN_STYLE = (
    "position: fixed; top: 0; left: -10000px; width: 1px; height: 1px; "
    "overflow: hidden; clip: rect(0, 0, 0, 0); white-space: nowrap;"
)

OVERVIEW_STYLE = (
    "background: #f0f6ff; border-left: 4px solid #1a73e8; padding: 12px 16px; "
    "margin: 16px auto; border-radius: 8px; font-family: system-ui, sans-serif; "
    "max-width: 800px; line-height: 1.5;"
)

SECTION_SUMMARY_STYLE = (
    "background: #f8f9fa; border-left: 3px solid #5f6368; padding: 10px 14px; "
    "margin: 8px 0 16px 0; border-radius: 6px; font-family: system-ui, sans-serif; "
    "font-size: 14px; line-height: 1.6; color: #202124;"
)


# =============================================================================
# Text Limits
# =============================================================================

DOCUMENT_TEXT_LIMIT = 5000
SECTION_TEXT_LIMIT = 3000
CONTEXT_TEXT_LIMIT = 200
MIN_VIABLE_LENGTH = 50
MAX_HEADING_TEXT_LENGTH = 200
CONTEXT_ANCESTOR_DEPTH = 5

AMBIGUOUS_PHRASES = frozenset(
    {"click here", "here", "learn more", "read more", "more", "continue", "next", "go", "view", "see"}
)
MIN_CONTROL_TEXT_LENGTH = 3
