"""
Sequential, throttled enrichment runs.

A run checks the capability, collects its items, opens exactly one session,
then processes the items one at a time in document order with a fixed delay
before every capability call. A failing item is logged and skipped; only
capability-level or whole-document problems abort the run. The session is
released on every exit path.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from ..capability import (
    Availability,
    GenerationCapability,
    GenerationSession,
    ProgressCallback,
    ProgressEvent,
    SessionOptions,
)
from ..errors import (
    CapabilityUnavailableError,
    ItemGenerationError,
    PipelineBusyError,
    RejectedResultError,
    RunAbortedError,
)
from ..results import ItemOutcome, ItemResult, RunResult, RunState
from .tasks import (
    EnrichmentTask,
    LabelRepairTask,
    OverviewTask,
    PipelineConfig,
    PipelineItem,
    SectionSummaryTask,
)

if TYPE_CHECKING:
    from ..accessibility.announcer import Announcer
    from ..accessibility.sections import SectionDetector
    from ..document import Document

logger = logging.getLogger(__name__)


class EnrichmentPipeline:
    """Drives a generation capability over a document's targets.

    Only one run may be active at a time; starting another raises
    PipelineBusyError.

    Example:
        >>> pipeline = EnrichmentPipeline(doc, capability, Announcer(doc))
        >>> result = await pipeline.generate_section_summaries()
        >>> print(result.summary)
        section-summaries: 4/5 enriched, 0 failed, 3 skipped
    """

    def __init__(
        self,
        document: Document,
        capability: GenerationCapability,
        announcer: Announcer,
        config: PipelineConfig | None = None,
        detector: SectionDetector | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            document: Document to enrich in place
            capability: Default generation capability
            announcer: Channel for user-facing messages
            config: Pacing and acceptance limits
            detector: Segmentation settings shared by all tasks
            sleep: Coroutine used for pacing delays
            on_progress: Receives download and item progress events, in order
        """
        self.document = document
        self.capability = capability
        self.announcer = announcer
        self.config = config or PipelineConfig()
        self.detector = detector
        self.state = RunState.IDLE
        self._sleep = sleep
        self._on_progress = on_progress
        self._active = False
        self._announced_download: set[int] = set()

    @property
    def active(self) -> bool:
        """Whether a run is in progress."""
        return self._active

    async def generate_overview(self, capability: GenerationCapability | None = None) -> RunResult:
        """Summarize the whole page and insert the summary at the top."""
        return await self.run(OverviewTask(self.config, self.detector), capability)

    async def generate_section_summaries(
        self, capability: GenerationCapability | None = None
    ) -> RunResult:
        """Insert a summary note after every heading with enough content."""
        return await self.run(SectionSummaryTask(self.config, self.detector), capability)

    async def fix_ambiguous_labels(
        self, capability: GenerationCapability | None = None
    ) -> RunResult:
        """Generate aria-labels for ambiguous links and buttons."""
        return await self.run(LabelRepairTask(self.config, self.detector), capability)

    async def run(
        self,
        task: EnrichmentTask,
        capability: GenerationCapability | None = None,
    ) -> RunResult:
        """Execute one enrichment task.

        Args:
            task: What to enrich
            capability: Overrides the pipeline's default capability

        Returns:
            RunResult with terminal state COMPLETED or ABORTED

        Raises:
            PipelineBusyError: If another run is active
        """
        if self._active:
            raise PipelineBusyError(f"Cannot start {task.name}: another run is in progress")

        self._active = True
        self._announced_download.clear()
        try:
            return await self._run(task, capability or self.capability)
        finally:
            self._active = False

    async def _run(self, task: EnrichmentTask, capability: GenerationCapability) -> RunResult:
        result = RunResult(task=task.name)
        logger.info("Starting %s with %s", task.name, capability.name)
        self._transition(result, RunState.CAPABILITY_CHECK)
        self.announcer.announce(task.start_message())

        try:
            await self._check_capability(capability, task, result)
            items = task.collect(self.document, result)
            result.total = len(items)
            self.announcer.announce(task.batch_message(len(items)))
            session = await self._create_session(capability, task)
        except RunAbortedError as e:
            return self._abort(result, task, e)

        self._transition(result, RunState.RUNNING)
        try:
            for item in items:
                item_result = await self._process_item(session, task, item, result.total)
                result.items.append(item_result)
                self._emit(ProgressEvent("items", round(len(result.items) * 100 / result.total)))
        finally:
            await self._release(session)

        self._transition(result, RunState.COMPLETED)
        logger.info("Finished %s", result.summary)
        self.announcer.announce(task.completion_message(result))
        return result

    async def _check_capability(
        self, capability: GenerationCapability, task: EnrichmentTask, result: RunResult
    ) -> None:
        try:
            availability = await capability.availability()
        except Exception as e:
            logger.exception("Availability check failed for %s", capability.name)
            self._transition(result, RunState.UNAVAILABLE)
            raise CapabilityUnavailableError(capability.name, str(e)) from e

        logger.debug("%s availability: %s", capability.name, availability.value)

        if availability is Availability.UNAVAILABLE:
            self._transition(result, RunState.UNAVAILABLE)
            raise CapabilityUnavailableError(capability.name, "backend reported unavailable")

        if availability is Availability.AWAITING_DOWNLOAD:
            self._transition(result, RunState.AWAITING_DOWNLOAD)
            self.announcer.announce(task.download_message())

    async def _create_session(
        self, capability: GenerationCapability, task: EnrichmentTask
    ) -> GenerationSession:
        options = SessionOptions(task_prompt=task.task_prompt, on_progress=self._on_download)
        try:
            return await capability.create(options)
        except Exception as e:
            logger.exception("Session creation failed for %s", capability.name)
            raise CapabilityUnavailableError(
                capability.name, f"session creation failed: {e}"
            ) from e

    async def _process_item(
        self,
        session: GenerationSession,
        task: EnrichmentTask,
        item: PipelineItem,
        total: int,
    ) -> ItemResult:
        await self._sleep(task.delay)

        try:
            output = await session.run(item.prompt)
        except Exception as e:
            error = ItemGenerationError(item.index, f"generation failed for {item.label!r}", e)
            logger.exception("%s", error)
            return ItemResult(
                index=item.index,
                outcome=ItemOutcome.FAILED,
                label=item.label,
                message=str(e),
                error=error,
            )

        try:
            text = task.accept(output)
        except RejectedResultError as e:
            logger.info("Item %d (%r) rejected: %s", item.index, item.label, e.reason)
            return ItemResult(
                index=item.index,
                outcome=ItemOutcome.SKIPPED,
                label=item.label,
                message=f"rejected: {e.reason}",
                output=output,
                error=e,
            )

        try:
            task.apply(self.document, item, text)
        except Exception as e:
            error = ItemGenerationError(item.index, f"write-back failed for {item.label!r}", e)
            logger.exception("%s", error)
            return ItemResult(
                index=item.index,
                outcome=ItemOutcome.FAILED,
                label=item.label,
                message=str(e),
                error=error,
            )

        logger.info("Enriched %d/%d: %r -> %r", item.index + 1, total, item.label, text)
        done = item.index + 1
        if done % task.progress_interval == 0:
            self.announcer.announce(task.progress_message(done, total))

        return ItemResult(
            index=item.index,
            outcome=ItemOutcome.ENRICHED,
            label=item.label,
            message="enriched",
            output=text,
        )

    async def _release(self, session: GenerationSession) -> None:
        try:
            await session.release()
        except Exception:
            logger.exception("Failed to release generation session")

    def _abort(self, result: RunResult, task: EnrichmentTask, error: RunAbortedError) -> RunResult:
        result.error = error
        self._transition(result, RunState.ABORTED)
        logger.warning("%s aborted: %s", task.name, error)

        if isinstance(error, CapabilityUnavailableError):
            message = task.failure_message(error)
        else:
            message = str(error)
        self.announcer.announce(message, error=True)
        return result

    def _on_download(self, event: ProgressEvent) -> None:
        logger.debug("Model download: %d%%", event.percent)
        self._emit(event)

        step = self.config.download_announce_step
        if step and event.percent % step == 0 and event.percent not in self._announced_download:
            self._announced_download.add(event.percent)
            self.announcer.announce(f"Model downloading: {event.percent} percent complete.")

    def _emit(self, event: ProgressEvent) -> None:
        if self._on_progress is not None:
            self._on_progress(event)

    def _transition(self, result: RunResult, state: RunState) -> None:
        logger.debug("%s: %s -> %s", result.task, result.state.name, state.name)
        result.state = state
        self.state = state
