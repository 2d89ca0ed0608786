"""
Interface to the external text-generation capability.

The pipeline never looks a backend up globally: a capability object is passed
in, which lets tests substitute in-memory fakes and lets callers choose
between backends. A capability hands out sessions; each session is owned by
exactly one enrichment run and must be released when the run ends.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable


class Availability(Enum):
    """Whether a capability can serve requests."""

    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    AWAITING_DOWNLOAD = "awaiting-download"  # usable, model fetched on first use


@dataclass(frozen=True)
class ProgressEvent:
    """A progress notification.

    Attributes:
        phase: ``"download"`` for model download, ``"items"`` for pipeline items
        percent: Completion, 0-100
    """

    phase: str
    percent: int


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass
class SessionOptions:
    """Options for creating a generation session.

    Attributes:
        task_prompt: Standing instruction applied to every ``run`` call
        on_progress: Receives download progress while the session is created
            or first used
    """

    task_prompt: str | None = None
    on_progress: ProgressCallback | None = None


@runtime_checkable
class GenerationSession(Protocol):
    """A stateful handle to the generation backend."""

    async def run(self, text: str) -> str:
        """Generate output for one input."""
        ...

    async def release(self) -> None:
        """Free backend resources. Called exactly once per session."""
        ...


@runtime_checkable
class GenerationCapability(Protocol):
    """Factory for generation sessions."""

    name: str

    async def availability(self) -> Availability:
        """Report whether sessions can be created."""
        ...

    async def create(self, options: SessionOptions) -> GenerationSession:
        """Create a new session."""
        ...
