"""Shared fakes and fixtures for the test suite."""

import asyncio
from collections.abc import Callable

import pytest

from cognitive_layer.accessibility.announcer import Announcer, AnnouncerConfig
from cognitive_layer.capability import Availability, ProgressEvent, SessionOptions
from cognitive_layer.document import Document
from cognitive_layer.enrichment.pipeline import EnrichmentPipeline
from cognitive_layer.enrichment.tasks import PipelineConfig


class FakeSleep:
    """Records requested delays instead of waiting."""

    def __init__(self, log: list | None = None) -> None:
        self.calls: list[float] = []
        self.log = log

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.log is not None:
            self.log.append(("sleep", seconds))
        await asyncio.sleep(0)


class FakeSession:
    """Session answering from its capability's responder."""

    def __init__(self, capability: "FakeCapability") -> None:
        self.capability = capability

    async def run(self, text: str) -> str:
        self.capability.prompts.append(text)
        if self.capability.log is not None:
            self.capability.log.append(("run", text))
        await asyncio.sleep(0)
        response = self.capability.respond(text)
        if isinstance(response, Exception):
            raise response
        return response

    async def release(self) -> None:
        self.capability.releases += 1


class FakeCapability:
    """In-memory generation capability.

    Args:
        responder: Constant reply, list of replies consumed in order, or a
            callable mapping the prompt to a reply. Exceptions are raised.
        availability: Value reported by availability(), or an exception to raise
        fail_create: Raise when a session is created
        download_progress: Percentages reported through on_progress on create
        log: Shared event log receiving ("run", prompt) entries
    """

    def __init__(
        self,
        responder: str | list | Callable[[str], object] = "A short summary of the section.",
        availability: Availability | Exception = Availability.AVAILABLE,
        fail_create: bool = False,
        download_progress: tuple[int, ...] = (),
        log: list | None = None,
        name: str = "fake",
    ) -> None:
        self.name = name
        self.responder = responder
        self._availability = availability
        self.fail_create = fail_create
        self.download_progress = download_progress
        self.log = log
        self.prompts: list[str] = []
        self.options: list[SessionOptions] = []
        self.sessions_created = 0
        self.releases = 0

    def respond(self, text: str) -> object:
        if callable(self.responder):
            return self.responder(text)
        if isinstance(self.responder, list):
            return self.responder.pop(0)
        return self.responder

    async def availability(self) -> Availability:
        if isinstance(self._availability, Exception):
            raise self._availability
        return self._availability

    async def create(self, options: SessionOptions) -> FakeSession:
        self.options.append(options)
        if self.fail_create:
            raise RuntimeError("model failed to load")
        self.sessions_created += 1
        for percent in self.download_progress:
            if options.on_progress is not None:
                options.on_progress(ProgressEvent("download", percent))
        return FakeSession(self)


class Harness:
    """A document wired to a pipeline that never really sleeps."""

    def __init__(
        self,
        html: str,
        capability: FakeCapability,
        config: PipelineConfig | None = None,
        log: list | None = None,
    ) -> None:
        self.document = Document.from_string(html, url="https://example.com/docs/page")
        self.capability = capability
        self.sleep = FakeSleep(log)
        self.mutations: list[str] = []
        self.progress: list[ProgressEvent] = []
        self.announcer = Announcer(
            self.document,
            AnnouncerConfig(),
            sleep=FakeSleep(),
            on_change=self.mutations.append,
        )
        self.pipeline = EnrichmentPipeline(
            self.document,
            capability,
            self.announcer,
            config=config,
            sleep=self.sleep,
            on_progress=self.progress.append,
        )

    @property
    def announcements(self) -> list[str]:
        return [a.text for a in self.announcer.history]

    @property
    def errors(self) -> list[str]:
        return [a.text for a in self.announcer.history if a.error]

    def run(self, *methods: str):
        """Run pipeline methods in order inside one event loop, then drain announcements."""

        async def scenario():
            results = []
            for method in methods:
                results.append(await getattr(self.pipeline, method)())
            await self.announcer.drain()
            return results

        results = asyncio.run(scenario())
        return results[0] if len(results) == 1 else results


@pytest.fixture
def make_harness():
    """Factory building a Harness around HTML and a FakeCapability."""

    def factory(html: str, capability: FakeCapability | None = None, **kwargs) -> Harness:
        return Harness(html, capability or FakeCapability(), **kwargs)

    return factory


@pytest.fixture
def fake_capability_class():
    """The FakeCapability class, for tests that configure their own."""
    return FakeCapability


@pytest.fixture
def fake_sleep_class():
    """The FakeSleep class."""
    return FakeSleep
