"""
Enrichment tasks run by the pipeline.

A task decides which document nodes to enrich, what prompt to send for each,
whether a generated result is acceptable, how it is written back, and what is
announced along the way. The pipeline owns sequencing, pacing and session
lifetime; tasks never call the capability themselves.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..accessibility.controls import ElementSelector, InteractiveTarget
from ..accessibility.extractor import extract_document_summary_text
from ..accessibility.sections import Section, SectionDetector
from ..constants import (
    ARIA_DESCRIBEDBY,
    ARIA_LABEL,
    ARIA_LIVE,
    DOCUMENT_TEXT_LIMIT,
    MARKER_VALUE,
    OVERVIEW_ATTR,
    OVERVIEW_ID,
    OVERVIEW_STYLE,
    SECTION_SUMMARY_CLASS,
    SECTION_SUMMARY_ID_PREFIX,
    SECTION_SUMMARY_STYLE,
)
from ..document import element_label
from ..errors import ContentTooShortError, NoTargetsFoundError, RejectedResultError
from ..results import ItemOutcome, ItemResult

if TYPE_CHECKING:
    from ..document import Document
    from ..results import RunResult

logger = logging.getLogger(__name__)

SUMMARIZER = "summarizer"
LANGUAGE_MODEL = "language_model"

_WRAPPING_QUOTES_RE = re.compile(r"^[\"']|[\"']$")
_TRAILING_PUNCTUATION_RE = re.compile(r"[.!?]$")


@dataclass
class PipelineConfig:
    """Pacing, cadence and acceptance limits for enrichment runs.

    Attributes:
        overview_delay: Seconds waited before the whole-page summary call
        summary_delay: Seconds waited before each section summary call
        label_delay: Seconds waited before each label call
        summary_progress_interval: Announce progress every N section summaries
        label_progress_interval: Announce progress every N label repairs
        max_label_words: Longer generated labels are rejected
        max_label_length: Generated labels are cut to this many characters
        document_text_limit: Maximum characters sent for a whole-page summary
        download_announce_step: Announce model download progress every N percent
    """

    overview_delay: float = 0.8
    summary_delay: float = 1.0
    label_delay: float = 0.6
    summary_progress_interval: int = 5
    label_progress_interval: int = 10
    max_label_words: int = 8
    max_label_length: int = 60
    document_text_limit: int = DOCUMENT_TEXT_LIMIT
    download_announce_step: int = 25


@dataclass
class PipelineItem:
    """One unit of work within a run.

    Attributes:
        index: Position in the run, in document order
        target: Section, InteractiveTarget or Document being enriched
        label: Short description used in logs and results
        prompt: Input sent to the capability
    """

    index: int
    target: Any = field(repr=False)
    label: str
    prompt: str


class EnrichmentTask(ABC):
    """Base class for pipeline tasks."""

    name: str = ""
    title: str = ""
    capability_role: str = SUMMARIZER
    task_prompt: str | None = None

    def __init__(
        self,
        config: PipelineConfig | None = None,
        detector: SectionDetector | None = None,
    ) -> None:
        """Initialize the task.

        Args:
            config: Pacing and acceptance limits
            detector: Segmentation used to find sections and element context
        """
        self.config = config or PipelineConfig()
        self.detector = detector or SectionDetector()

    @property
    @abstractmethod
    def delay(self) -> float:
        """Seconds to wait before each capability call."""

    @property
    @abstractmethod
    def progress_interval(self) -> int:
        """Announce progress after every N items."""

    @abstractmethod
    def collect(self, document: Document, result: RunResult) -> list[PipelineItem]:
        """Select the items to process.

        Targets filtered out are recorded in ``result.skipped``.

        Raises:
            NoTargetsFoundError: If nothing needs processing
            ContentTooShortError: If the document has too little text
        """

    @abstractmethod
    def accept(self, output: str | None) -> str:
        """Apply the acceptance policy to generated text.

        Returns:
            The cleaned text to write back

        Raises:
            RejectedResultError: If the text is not acceptable
        """

    @abstractmethod
    def apply(self, document: Document, item: PipelineItem, text: str) -> None:
        """Write accepted text onto the document and set the item's marker."""

    # Announcement texts

    def start_message(self) -> str:
        return f"Starting {self.title.lower()}. Please wait."

    def download_message(self) -> str:
        return "AI model needs to be downloaded. This may take a few minutes."

    @abstractmethod
    def batch_message(self, total: int) -> str: ...

    @abstractmethod
    def progress_message(self, done: int, total: int) -> str: ...

    @abstractmethod
    def completion_message(self, result: RunResult) -> str: ...

    def failure_message(self, error: Exception) -> str:
        return f"{self.title} failed. Error: {error}"

    @staticmethod
    def _skip(index: int, label: str, message: str) -> ItemResult:
        return ItemResult(index=index, outcome=ItemOutcome.SKIPPED, label=label, message=message)


class OverviewTask(EnrichmentTask):
    """Whole-page summary inserted at the top of the document."""

    name = "overview"
    title = "AI overview"
    capability_role = SUMMARIZER
    task_prompt = (
        "Summarize the following web page content as a short TL;DR of two or three "
        "sentences. Reply with the summary only."
    )

    @property
    def delay(self) -> float:
        return self.config.overview_delay

    @property
    def progress_interval(self) -> int:
        return self.config.summary_progress_interval

    def collect(self, document: Document, result: RunResult) -> list[PipelineItem]:
        if document.body.get(OVERVIEW_ATTR) == MARKER_VALUE:
            raise NoTargetsFoundError("A page overview has already been generated.")

        text = extract_document_summary_text(document, limit=self.config.document_text_limit)
        minimum = self.detector.config.min_viable_length
        if len(text) < minimum:
            raise ContentTooShortError(len(text), minimum)

        return [PipelineItem(index=0, target=document, label="page", prompt=text)]

    def accept(self, output: str | None) -> str:
        summary = (output or "").strip()
        if not summary:
            raise RejectedResultError(output or "", "empty summary")
        return summary

    def apply(self, document: Document, item: PipelineItem, text: str) -> None:
        block = document.make_element(
            "div",
            {"id": OVERVIEW_ID, "role": "status", ARIA_LIVE: "polite", "style": OVERVIEW_STYLE},
        )
        block.append(
            document.make_element(
                "h2", {"style": "margin: 0 0 8px 0; font-size: 18px;"}, "Page Summary"
            )
        )
        block.append(document.make_element("div", text=text))
        document.insert_at_top(block)
        document.body.set(OVERVIEW_ATTR, MARKER_VALUE)

    def start_message(self) -> str:
        return "Starting AI overview generation. Please wait."

    def batch_message(self, total: int) -> str:
        return "Generating summary. This may take a moment."

    def progress_message(self, done: int, total: int) -> str:
        return f"Processed {done} of {total} pages."

    def completion_message(self, result: RunResult) -> str:
        if result.succeeded:
            return f"AI Overview complete. {result.succeeded[0].output}"
        return "AI Overview could not be generated for this page."


class SectionSummaryTask(EnrichmentTask):
    """Short summary note after every heading with enough content."""

    name = "section-summaries"
    title = "Section summaries"
    capability_role = SUMMARIZER
    task_prompt = (
        "Summarize the following section of a web page in one short sentence. "
        "Reply with the summary only."
    )

    @property
    def delay(self) -> float:
        return self.config.summary_delay

    @property
    def progress_interval(self) -> int:
        return self.config.summary_progress_interval

    def collect(self, document: Document, result: RunResult) -> list[PipelineItem]:
        sections = self.detector.detect(document)
        if not sections:
            raise NoTargetsFoundError("No section headings found on this page.")

        limits = self.detector.config
        items: list[PipelineItem] = []

        for position, section in enumerate(sections):
            label = section.heading_text
            if not label or len(label) > limits.max_heading_length:
                result.skipped.append(self._skip(position, label[:40], "not a section title"))
                continue
            if section.processed:
                result.skipped.append(self._skip(position, label, "already summarized"))
                continue
            if len(section.content) < limits.min_viable_length:
                logger.info(
                    "Skipping %r: insufficient content (%d chars)", label, len(section.content)
                )
                result.skipped.append(
                    self._skip(
                        position, label, f"insufficient content ({len(section.content)} chars)"
                    )
                )
                continue

            logger.debug(
                "Section %r: %d chars via %s", label, len(section.content), section.method.name
            )
            items.append(
                PipelineItem(index=len(items), target=section, label=label, prompt=section.content)
            )

        if not items:
            raise NoTargetsFoundError("No new sections with enough content to summarize.")
        return items

    def accept(self, output: str | None) -> str:
        summary = (output or "").strip()
        if not summary:
            raise RejectedResultError(output or "", "empty summary")
        return summary

    def apply(self, document: Document, item: PipelineItem, text: str) -> None:
        section: Section = item.target
        note_id = _unique_id(document, SECTION_SUMMARY_ID_PREFIX)

        note = document.make_element(
            "div",
            {
                "id": note_id,
                "class": SECTION_SUMMARY_CLASS,
                "role": "note",
                "style": SECTION_SUMMARY_STYLE,
            },
        )
        note.append(document.make_element("em", text=text))
        section.heading.addnext(note)

        described_by = section.heading.get(ARIA_DESCRIBEDBY, "").split()
        described_by.append(note_id)
        section.heading.set(ARIA_DESCRIBEDBY, " ".join(described_by))
        section.mark_processed()

    def batch_message(self, total: int) -> str:
        return f"Generating summaries for {total} sections. This will take a moment."

    def progress_message(self, done: int, total: int) -> str:
        return f"Processed {done} of {total} sections."

    def completion_message(self, result: RunResult) -> str:
        return (
            f"Section summaries complete. Generated {result.success_count} summaries. "
            "Navigate the page to see them."
        )


class LabelRepairTask(EnrichmentTask):
    """Descriptive aria-label for every ambiguous link and button."""

    name = "fix-labels"
    title = "Label fixing"
    capability_role = LANGUAGE_MODEL
    task_prompt = (
        "You are an accessibility assistant. Generate concise 3-5 word aria-label "
        "descriptions. No quotes or punctuation."
    )

    def __init__(
        self,
        config: PipelineConfig | None = None,
        detector: SectionDetector | None = None,
    ) -> None:
        super().__init__(config, detector)
        self.selector = ElementSelector(self.detector)

    @property
    def delay(self) -> float:
        return self.config.label_delay

    @property
    def progress_interval(self) -> int:
        return self.config.label_progress_interval

    def collect(self, document: Document, result: RunResult) -> list[PipelineItem]:
        targets = self.selector.select(document)
        if not targets:
            raise NoTargetsFoundError(
                "No ambiguous elements found. All links and buttons have clear labels."
            )

        return [
            PipelineItem(
                index=index,
                target=target,
                label=target.visible_text or "<empty>",
                prompt=self.build_prompt(target),
            )
            for index, target in enumerate(targets)
        ]

    def build_prompt(self, target: InteractiveTarget) -> str:
        """Build the labeling prompt for one control."""
        return (
            "Generate an aria-label for this element:\n"
            f'Text: "{target.visible_text or "button"}"\n'
            f'URL: "{target.destination_hint}"\n'
            f'Context: "{target.surrounding_context}"\n'
            "Label (3-5 words):"
        )

    def accept(self, output: str | None) -> str:
        lines = (output or "").strip().split("\n")
        label = lines[0].strip()
        label = _WRAPPING_QUOTES_RE.sub("", label)
        label = _TRAILING_PUNCTUATION_RE.sub("", label)
        label = label[: self.config.max_label_length].strip()

        if not label:
            raise RejectedResultError(output or "", "empty label")
        words = len(label.split())
        if words > self.config.max_label_words:
            raise RejectedResultError(output or "", f"{words} words")
        return label

    def apply(self, document: Document, item: PipelineItem, text: str) -> None:
        target: InteractiveTarget = item.target
        target.element.set(ARIA_LABEL, text)
        target.mark_fixed()
        logger.debug("Labelled %s as %r", element_label(target.element), text)

    def start_message(self) -> str:
        return "Starting to fix ambiguous labels. Please wait."

    def batch_message(self, total: int) -> str:
        return f"Fixing {total} ambiguous links and buttons. This may take a moment."

    def progress_message(self, done: int, total: int) -> str:
        return f"Processed {done} of {total} elements."

    def completion_message(self, result: RunResult) -> str:
        return (
            f"Label fixing complete. Fixed {result.success_count} ambiguous elements "
            "with descriptive labels. Navigate the page to hear improved descriptions."
        )


def _unique_id(document: Document, prefix: str) -> str:
    counter = 1
    while document.find_by_id(f"{prefix}{counter}") is not None:
        counter += 1
    return f"{prefix}{counter}"
