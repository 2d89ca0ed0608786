"""
Command dispatch for an external orchestrator.

The orchestrator sends ``{"action": ...}`` requests. Work commands are
acknowledged immediately with ``{"status": "started"}``; the work runs as an
asyncio task exposed on the response so the caller decides whether to await
it. Progress and results reach the user through the announcer and the
document itself, never through the response.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from .capability import GenerationCapability
from .enrichment.tasks import (
    LANGUAGE_MODEL,
    EnrichmentTask,
    LabelRepairTask,
    OverviewTask,
    SectionSummaryTask,
)
from .results import CapabilityReport, CapabilityStatus

if TYPE_CHECKING:
    from .enrichment.pipeline import EnrichmentPipeline
    from .results import RunResult

logger = logging.getLogger(__name__)


class Command(Enum):
    """Actions accepted by the dispatcher."""

    GENERATE_OVERVIEW = "generate-overview"
    GENERATE_SECTION_SUMMARIES = "generate-section-summaries"
    FIX_AMBIGUOUS_LABELS = "fix-ambiguous-labels"
    HEALTH_CHECK = "health-check"


TASKS_BY_COMMAND: dict[Command, type[EnrichmentTask]] = {
    Command.GENERATE_OVERVIEW: OverviewTask,
    Command.GENERATE_SECTION_SUMMARIES: SectionSummaryTask,
    Command.FIX_AMBIGUOUS_LABELS: LabelRepairTask,
}


@dataclass
class CommandResponse:
    """Immediate reply to a request.

    Attributes:
        payload: Message returned to the orchestrator
        task: Running enrichment task, for work commands that were started
    """

    payload: dict[str, Any] = field(default_factory=dict)
    task: asyncio.Task[RunResult] | None = None

    @property
    def status(self) -> str:
        return self.payload.get("status", "")


class CommandDispatcher:
    """Routes orchestrator requests to an enrichment pipeline.

    Example:
        >>> dispatcher = CommandDispatcher(pipeline, language_model=chat_capability)
        >>> response = dispatcher.dispatch({"action": "fix-ambiguous-labels"})
        >>> response.payload
        {'status': 'started'}
        >>> result = await response.task
    """

    def __init__(
        self,
        pipeline: EnrichmentPipeline,
        language_model: GenerationCapability | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            pipeline: Pipeline whose default capability acts as the summarizer
            language_model: Capability used for label repair; defaults to the summarizer
        """
        self.pipeline = pipeline
        self.summarizer = pipeline.capability
        self.language_model = language_model or pipeline.capability
        self._current: asyncio.Task[RunResult] | None = None

    @property
    def busy(self) -> bool:
        """Whether a started run has not finished yet."""
        if self._current is not None and not self._current.done():
            return True
        return self.pipeline.active

    def dispatch(self, request: dict[str, Any]) -> CommandResponse:
        """Handle one request.

        Must be called from a running event loop when the request starts work.

        Args:
            request: Mapping with an ``action`` key

        Returns:
            CommandResponse; ``status`` is one of started, pong, busy, unknown_action
        """
        action = request.get("action")
        try:
            command = Command(action)
        except ValueError:
            logger.warning("Unknown action: %r", action)
            return CommandResponse({"status": "unknown_action"})

        if command is Command.HEALTH_CHECK:
            return CommandResponse({"status": "pong"})

        if self.busy:
            logger.warning("Rejected %s: a run is already in progress", command.value)
            return CommandResponse({"status": "busy"})

        task = asyncio.get_running_loop().create_task(self._start(command))
        self._current = task
        logger.info("Started %s", command.value)
        return CommandResponse({"status": "started"}, task=task)

    async def _start(self, command: Command) -> RunResult:
        task_class = TASKS_BY_COMMAND[command]
        task = task_class(self.pipeline.config, self.pipeline.detector)
        return await self.pipeline.run(task, self._capability_for(task.capability_role))

    def _capability_for(self, role: str) -> GenerationCapability:
        return self.language_model if role == LANGUAGE_MODEL else self.summarizer

    async def check_capabilities(self) -> CapabilityReport:
        """Query the availability of every distinct capability in use.

        Returns:
            CapabilityReport with one status per capability
        """
        capabilities = [self.summarizer]
        if self.language_model is not self.summarizer:
            capabilities.append(self.language_model)

        report = CapabilityReport()
        for capability in capabilities:
            try:
                availability = await capability.availability()
            except Exception as e:
                logger.exception("Availability check failed for %s", capability.name)
                report.statuses.append(CapabilityStatus(capability.name, None, str(e)))
                continue
            report.statuses.append(CapabilityStatus(capability.name, availability))
        return report
