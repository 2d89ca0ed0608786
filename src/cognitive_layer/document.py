"""
HTML document wrapper used by every enrichment operation.

The document is an ``lxml.html`` tree that is mutated in place: generated
notes, labels and the announcer live region are written directly into it and
serialized back with :meth:`Document.to_html` or :meth:`Document.save`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

import lxml.html
from lxml import etree

from .constants import CONTROL_TAGS, GENERATED_ATTR, HEADING_TAGS, MARKER_VALUE
from .errors import DocumentLoadError
from .text import is_element, is_generated

if TYPE_CHECKING:
    from lxml.html import HtmlElement

logger = logging.getLogger(__name__)


class Document:
    """An HTML document that can be enriched with accessibility aids.

    Example:
        >>> doc = Document("page.html", url="https://example.com/page")
        >>> [h.text_content() for h in doc.headings()]
        ['Introduction', 'Details']
        >>> doc.save("page.enriched.html")
    """

    def __init__(
        self,
        source: str | Path | bytes | BinaryIO | HtmlElement,
        url: str | None = None,
    ) -> None:
        """Load a document.

        Args:
            source: Document source - can be:
                    - Path to an HTML file (str or Path)
                    - Raw bytes of an HTML document
                    - Open file object in binary mode
                    - An already parsed ``lxml.html`` root element
            url: Address the document was loaded from, used to resolve
                 relative link targets

        Raises:
            DocumentLoadError: If the source cannot be read or parsed
        """
        self.source_path: Path | None = None

        if isinstance(source, etree._Element):
            root = source
        elif isinstance(source, str | Path):
            self.source_path = Path(source)
            root = self._parse_file(self.source_path)
        elif isinstance(source, bytes):
            root = self._parse_bytes(source)
        else:
            root = self._parse_bytes(source.read())

        self.root: HtmlElement = root
        self.url = url or self._base_href()

    @classmethod
    def from_string(cls, html: str, url: str | None = None) -> Document:
        """Create a document from HTML markup.

        Args:
            html: HTML source text
            url: Optional document address

        Returns:
            New Document
        """
        try:
            root = lxml.html.document_fromstring(html)
        except (etree.ParserError, ValueError) as e:
            raise DocumentLoadError(f"Failed to parse HTML: {e}") from e
        return cls(root, url=url)

    @staticmethod
    def _parse_file(path: Path) -> HtmlElement:
        if not path.exists():
            raise DocumentLoadError(f"HTML file not found: {path}")
        try:
            return Document._parse_bytes(path.read_bytes())
        except OSError as e:
            raise DocumentLoadError(f"Failed to read {path}: {e}") from e

    @staticmethod
    def _parse_bytes(data: bytes) -> HtmlElement:
        try:
            return lxml.html.document_fromstring(data)
        except (etree.ParserError, ValueError) as e:
            raise DocumentLoadError(f"Failed to parse HTML: {e}") from e

    def _base_href(self) -> str | None:
        base = self.root.find(".//base[@href]")
        return base.get("href") if base is not None else None

    @property
    def body(self) -> HtmlElement:
        """The ``<body>`` element, created if the markup has none."""
        body = self.root.find("body")
        if body is None:
            body = etree.SubElement(self.root, "body")
        return body

    def headings(self) -> list[HtmlElement]:
        """Get all h1-h6 elements in document order, ignoring generated content."""
        return [h for h in self.root.iter(*HEADING_TAGS) if not self.in_generated(h)]

    def controls(self) -> list[HtmlElement]:
        """Get all links and buttons in document order, ignoring generated content."""
        return [c for c in self.root.iter(*CONTROL_TAGS) if not self.in_generated(c)]

    def in_generated(self, element: etree._Element) -> bool:
        """Check whether an element sits inside content this package inserted."""
        if is_generated(element):
            return True
        return any(is_generated(a) for a in element.iterancestors())

    def find_by_id(self, element_id: str) -> HtmlElement | None:
        """Find an element by its ``id`` attribute."""
        matches = self.root.xpath("//*[@id=$value]", value=element_id)
        return matches[0] if matches else None

    def make_element(
        self,
        tag: str,
        attrib: dict[str, str] | None = None,
        text: str | None = None,
    ) -> HtmlElement:
        """Create a detached element flagged as generated content.

        Args:
            tag: Tag name
            attrib: Attributes to set
            text: Text content (inserted as text, never parsed as markup)

        Returns:
            New element carrying the generated marker
        """
        element = lxml.html.Element(tag)
        for name, value in (attrib or {}).items():
            element.set(name, value)
        element.set(GENERATED_ATTR, MARKER_VALUE)
        if text is not None:
            element.text = text
        return element

    def insert_at_top(self, element: HtmlElement) -> None:
        """Insert an element as the first node of ``<body>``."""
        body = self.body
        # Leading body text would otherwise render before the new element
        element.tail = body.text
        body.text = None
        body.insert(0, element)

    def to_html(self) -> str:
        """Serialize the document to an HTML string."""
        tree = self.root.getroottree()
        doctype = tree.docinfo.doctype or "<!DOCTYPE html>"
        return lxml.html.tostring(
            self.root, encoding="unicode", method="html", doctype=doctype
        )

    def save(self, output_path: str | Path | None = None) -> Path:
        """Write the document to disk.

        Args:
            output_path: Destination; defaults to the file the document was loaded from

        Returns:
            The path written

        Raises:
            DocumentLoadError: If no destination is known
        """
        if output_path is None:
            if self.source_path is None:
                raise DocumentLoadError("No output path given and document has no source file")
            output_path = self.source_path
        path = Path(output_path)
        path.write_text(self.to_html(), encoding="utf-8")
        logger.debug("Saved document to %s", path)
        return path

    def __repr__(self) -> str:
        origin = self.source_path or self.url or "<memory>"
        return f"Document({origin!s})"


def element_label(element: etree._Element) -> str:
    """Short human-readable description of an element for log messages."""
    if not is_element(element):
        return "<comment>"
    ident = element.get("id")
    return f"<{element.tag}#{ident}>" if ident else f"<{element.tag}>"
