"""
Screen-reader announcements through a single ARIA live region.

Live regions often stay silent when their content is set to the text they
already hold, so every announcement runs a clear -> short delay -> set cycle,
and later expires with a second clear. Cycles are serialized: two identical
announcements in a row produce two separate clear/set mutations.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from ..constants import ANNOUNCER_ID, ARIA_ATOMIC, ARIA_LIVE, VISUALLY_HIDDEN_STYLE

if TYPE_CHECKING:
    from lxml import etree

    from ..document import Document

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class AnnouncerConfig:
    """Timing of the live-region cycle.

    Attributes:
        set_delay: Seconds between clearing the region and setting the text
        expire_delay: Seconds the text stays in the region before being cleared
    """

    set_delay: float = 0.1
    expire_delay: float = 10.0


@dataclass
class Announcement:
    """A message delivered to assistive technology.

    Attributes:
        text: The spoken text
        priority: Live-region politeness
        created_at: When the announcement was requested
        error: Whether the message reports a failure
    """

    text: str
    priority: str = "assertive"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: bool = False


class Announcer:
    """Owns the document's announcer live region.

    The region is created lazily on first use and reused for the lifetime of
    the document. ``announce`` must be called with a running event loop.

    Example:
        >>> announcer = Announcer(doc)
        >>> announcer.announce("Section summaries complete.")
        >>> await announcer.drain()
    """

    def __init__(
        self,
        document: Document,
        config: AnnouncerConfig | None = None,
        sleep: SleepFunc = asyncio.sleep,
        on_change: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize the announcer.

        Args:
            document: Document the live region is written into
            config: Cycle timing
            sleep: Coroutine used for delays
            on_change: Called with the region text after every mutation
        """
        self.document = document
        self.config = config or AnnouncerConfig()
        self.history: list[Announcement] = []
        self._sleep = sleep
        self._on_change = on_change
        self._region: etree._Element | None = None
        self._lock: asyncio.Lock | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._current: Announcement | None = None
        self._deliveries: set[asyncio.Task[None]] = set()
        self._expiries: set[asyncio.Task[None]] = set()

    @property
    def region(self) -> etree._Element:
        """The live region, created on first access."""
        if self._region is None:
            self._region = self._find_or_create_region()
        return self._region

    @property
    def text(self) -> str:
        """Text currently held by the live region."""
        return self.region.text or ""

    def _find_or_create_region(self) -> etree._Element:
        existing = self.document.find_by_id(ANNOUNCER_ID)
        if existing is not None:
            return existing

        region = self.document.make_element(
            "div",
            {
                "id": ANNOUNCER_ID,
                "role": "status",
                ARIA_LIVE: "assertive",
                ARIA_ATOMIC: "true",
                "style": VISUALLY_HIDDEN_STYLE,
            },
        )
        self.document.body.append(region)
        logger.debug("Created announcer live region")
        return region

    def announce(self, text: str, error: bool = False) -> asyncio.Task[None]:
        """Queue a message for assistive technology.

        Args:
            text: Message to speak
            error: Whether the message reports a failure

        Returns:
            Task completing once the text has been placed in the region
        """
        announcement = Announcement(text=text, error=error)
        self.history.append(announcement)

        loop = asyncio.get_running_loop()
        if self._lock is None or self._loop is not loop:
            self._lock = asyncio.Lock()
            self._loop = loop

        task = loop.create_task(self._deliver(announcement))
        self._deliveries.add(task)
        task.add_done_callback(self._deliveries.discard)
        return task

    async def _deliver(self, announcement: Announcement) -> None:
        assert self._lock is not None
        async with self._lock:
            self._set_text("")
            await self._sleep(self.config.set_delay)
            self._set_text(announcement.text)
            self._current = announcement
            if announcement.error:
                logger.warning("Announced: %s", announcement.text)
            else:
                logger.info("Announced: %s", announcement.text)

        expiry = asyncio.get_running_loop().create_task(self._expire(announcement))
        self._expiries.add(expiry)
        expiry.add_done_callback(self._expiries.discard)

    async def _expire(self, announcement: Announcement) -> None:
        await self._sleep(self.config.expire_delay)
        # A newer announcement owns the region now
        if self._current is announcement:
            self._set_text("")
            self._current = None

    def _set_text(self, text: str) -> None:
        self.region.text = text
        if self._on_change is not None:
            self._on_change(text)

    async def drain(self) -> None:
        """Wait until every queued announcement has been delivered and expired."""
        while self._deliveries or self._expiries:
            await asyncio.gather(*self._deliveries, *self._expiries)

    async def close(self) -> None:
        """Deliver queued announcements, then cancel pending expiries and clear the region."""
        while self._deliveries:
            await asyncio.gather(*self._deliveries)

        for expiry in list(self._expiries):
            expiry.cancel()
        await asyncio.gather(*self._expiries, return_exceptions=True)
        self._expiries.clear()

        if self._region is not None and self.text:
            self._set_text("")
        self._current = None
