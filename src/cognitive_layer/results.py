"""
Result classes for enrichment runs.

This module provides result types that track the outcome of every item in a
run and of the run as a whole.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto

from .capability import Availability


class RunState(Enum):
    """States of an enrichment run."""

    IDLE = auto()
    CAPABILITY_CHECK = auto()
    UNAVAILABLE = auto()
    AWAITING_DOWNLOAD = auto()
    RUNNING = auto()
    COMPLETED = auto()
    ABORTED = auto()


class ItemOutcome(Enum):
    """What happened to a single pipeline item."""

    ENRICHED = auto()  # Result accepted and written to the document
    SKIPPED = auto()  # Not submitted, or generated text rejected
    FAILED = auto()  # Capability call or write-back raised


@dataclass
class ItemResult:
    """Result of processing a single pipeline item.

    Attributes:
        index: Sequence index of the item within its run
        outcome: What happened to the item
        label: Short description of the item (heading text, control text)
        message: Human-readable message about the result
        output: Accepted generated text, if any
        error: Exception that occurred, if any
    """

    index: int
    outcome: ItemOutcome
    label: str
    message: str
    output: str | None = None
    error: Exception | None = None

    @property
    def success(self) -> bool:
        return self.outcome is ItemOutcome.ENRICHED

    def __str__(self) -> str:
        """Get string representation of the result."""
        status = {"ENRICHED": "✓", "SKIPPED": "-", "FAILED": "✗"}[self.outcome.name]
        return f"{status} [{self.index}] {self.label}: {self.message}"


@dataclass
class RunResult:
    """Result of one enrichment run.

    Attributes:
        task: Name of the enrichment task (e.g., "section-summaries")
        state: Terminal state, COMPLETED or ABORTED
        total: Number of items submitted to the capability
        items: Per-item results in processing order
        skipped: Results for targets filtered out before submission
        error: Run-level failure that aborted the run, if any
    """

    task: str
    state: RunState = RunState.IDLE
    total: int = 0
    items: list[ItemResult] = field(default_factory=list)
    skipped: list[ItemResult] = field(default_factory=list)
    error: Exception | None = None

    @property
    def succeeded(self) -> list[ItemResult]:
        return [r for r in self.items if r.outcome is ItemOutcome.ENRICHED]

    @property
    def failed(self) -> list[ItemResult]:
        return [r for r in self.items if r.outcome is ItemOutcome.FAILED]

    @property
    def rejected(self) -> list[ItemResult]:
        return [r for r in self.items if r.outcome is ItemOutcome.SKIPPED]

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def aborted(self) -> bool:
        return self.state is RunState.ABORTED

    @property
    def summary(self) -> str:
        """One-line description of the run."""
        if self.aborted:
            return f"{self.task}: aborted ({self.error})"
        return (
            f"{self.task}: {self.success_count}/{self.total} enriched, "
            f"{len(self.failed)} failed, {len(self.rejected) + len(self.skipped)} skipped"
        )

    def __bool__(self) -> bool:
        return self.state is RunState.COMPLETED

    def __str__(self) -> str:
        lines = [self.summary]
        lines.extend(str(r) for r in self.skipped)
        lines.extend(str(r) for r in self.items)
        return "\n".join(lines)


@dataclass
class CapabilityStatus:
    """Availability of one capability.

    Attributes:
        name: Capability name
        availability: Reported availability, None if the check raised
        error: Error message from the check, if any
    """

    name: str
    availability: Availability | None
    error: str | None = None

    @property
    def ready(self) -> bool:
        return self.availability is Availability.AVAILABLE


@dataclass
class CapabilityReport:
    """Availability of every capability a dispatcher uses."""

    statuses: list[CapabilityStatus] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        return bool(self.statuses) and all(s.ready for s in self.statuses)

    @property
    def message(self) -> str:
        """Human-readable status, with guidance when something is not ready."""
        if self.ready:
            return "All generation capabilities are ready."

        lines = ["Generation capability status:"]
        for status in self.statuses:
            value = status.availability.value if status.availability else "error"
            lines.append(f"  {status.name}: {value}")
            if status.error:
                lines.append(f"    error: {status.error}")

        if any(s.availability is Availability.AWAITING_DOWNLOAD for s in self.statuses):
            lines.append("A model must be downloaded; it will be fetched on first use.")
        if any(s.availability is Availability.UNAVAILABLE for s in self.statuses):
            lines.append("A capability is unavailable; check its credentials and configuration.")
        return "\n".join(lines)
