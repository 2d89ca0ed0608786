"""
Tests for sequential, throttled enrichment runs.

These tests verify:
- Sections below the viable length are skipped, not submitted
- Unavailable capabilities abort before any item is submitted
- A pacing delay precedes every capability call
- One failing item does not stop the rest of the run
- Markers keep repeated runs from reprocessing nodes
- Progress and completion announcements
"""

import asyncio

import pytest
from lxml import etree

from cognitive_layer.capability import Availability, ProgressEvent
from cognitive_layer.enrichment.tasks import PipelineConfig
from cognitive_layer.errors import (
    CapabilityUnavailableError,
    ContentTooShortError,
    ItemGenerationError,
    NoTargetsFoundError,
    PipelineBusyError,
)
from cognitive_layer.results import ItemOutcome, RunState

LOREM = "Lorem ipsum dolor sit amet, consectetur adipiscing elit, sed do eiusmod tempor. "
SHORT = "Short words here. Short words here."

# Each heading sits in its own nested container so the fallback tiers cannot
# borrow text from neighbouring sections
NESTED_LEVELS = f"""<html><body>
<div><div><h1>Alpha</h1><p>{SHORT}</p></div></div>
<div><div><h2>Beta</h2><p>{SHORT}</p></div></div>
<div><div><h3>Gamma</h3><p>{LOREM * 2}</p></div></div>
</body></html>"""


def sections_page(count: int) -> str:
    body = "".join(f"<h2>Topic {n}</h2><p>Topic {n} body. {LOREM}</p>" for n in range(1, count + 1))
    return f"<html><body>{body}</body></html>"


def links_page(count: int) -> str:
    links = "".join(f'<p>Item {n} details. <a href="/items/{n}">Read more</a></p>' for n in range(count))
    return f"<html><body><h1>Catalog</h1>{links}</body></html>"


def summary_notes(harness):
    return harness.document.root.xpath('//*[@class="cognitive-section-summary"]')


class TestSectionSummaries:
    """Tests for generate_section_summaries()."""

    def test_only_viable_sections_submitted(self, make_harness):
        """Sections under 50 characters are skipped before reaching the capability."""
        harness = make_harness(NESTED_LEVELS)
        result = harness.run("generate_section_summaries")

        assert result.state is RunState.COMPLETED
        assert result.success_count == 1
        assert result.total == 1
        assert len(harness.capability.prompts) == 1
        assert harness.capability.prompts[0].startswith("Lorem ipsum")

        assert [s.label for s in result.skipped] == ["Alpha", "Beta"]
        assert all("insufficient content" in s.message for s in result.skipped)

    def test_note_inserted_after_heading(self, make_harness):
        harness = make_harness(NESTED_LEVELS)
        harness.run("generate_section_summaries")

        heading = harness.document.headings()[2]
        note = heading.getnext()
        assert note.get("class") == "cognitive-section-summary"
        assert note.get("role") == "note"
        assert note.get("id") == "cognitive-summary-1"
        assert note[0].tag == "em"
        assert note[0].text == "A short summary of the section."
        assert heading.get("aria-describedby") == "cognitive-summary-1"
        assert heading.get("data-cognitive-processed") == "true"

    def test_existing_describedby_kept(self, make_harness):
        harness = make_harness(
            f'<html><body><h2 aria-describedby="intro">Topic</h2><p>{LOREM}</p></body></html>'
        )
        harness.run("generate_section_summaries")
        assert harness.document.headings()[0].get("aria-describedby") == "intro cognitive-summary-1"

    def test_announcements(self, make_harness):
        harness = make_harness(NESTED_LEVELS)
        harness.run("generate_section_summaries")
        assert harness.announcements == [
            "Starting section summaries. Please wait.",
            "Generating summaries for 1 sections. This will take a moment.",
            "Section summaries complete. Generated 1 summaries. Navigate the page to see them.",
        ]
        assert harness.errors == []

    def test_progress_every_five(self, make_harness):
        harness = make_harness(sections_page(12))
        result = harness.run("generate_section_summaries")

        assert result.success_count == 12
        progress = [a for a in harness.announcements if a.startswith("Processed")]
        assert progress == ["Processed 5 of 12 sections.", "Processed 10 of 12 sections."]

    def test_document_order_and_write_before_next_call(self, make_harness, fake_capability_class):
        """Each result is written back before the next section is submitted."""
        capability = fake_capability_class()
        harness = make_harness(sections_page(3), capability)
        notes_seen = []

        def responder(prompt):
            notes_seen.append(len(summary_notes(harness)))
            return f"Summary of {prompt.split(' body.')[0]}"

        capability.responder = responder
        result = harness.run("generate_section_summaries")

        assert notes_seen == [0, 1, 2]
        assert [r.label for r in result.items] == ["Topic 1", "Topic 2", "Topic 3"]
        assert [r.index for r in result.items] == [0, 1, 2]
        texts = [note[0].text for note in summary_notes(harness)]
        assert texts == ["Summary of Topic 1", "Summary of Topic 2", "Summary of Topic 3"]

    def test_generated_notes_not_read_back(self, make_harness, fake_capability_class):
        capability = fake_capability_class(responder="NOTE TEXT")
        harness = make_harness(sections_page(2), capability)
        harness.run("generate_section_summaries", "generate_overview")
        assert len(capability.prompts) == 3
        assert "NOTE TEXT" not in capability.prompts[-1]

    def test_no_headings(self, make_harness):
        harness = make_harness(f"<html><body><p>{LOREM}</p></body></html>")
        result = harness.run("generate_section_summaries")

        assert result.state is RunState.ABORTED
        assert isinstance(result.error, NoTargetsFoundError)
        assert harness.errors == ["No section headings found on this page."]
        assert harness.capability.sessions_created == 0


class TestThrottling:
    """Tests for the pacing delay before each capability call."""

    def test_delay_precedes_every_call(self, make_harness, fake_capability_class):
        log = []
        capability = fake_capability_class(log=log)
        harness = make_harness(sections_page(3), capability, log=log)
        harness.run("generate_section_summaries")

        kinds = [entry[0] for entry in log]
        assert kinds == ["sleep", "run", "sleep", "run", "sleep", "run"]
        assert all(entry[1] >= 1.0 for entry in log if entry[0] == "sleep")

    def test_configured_delays(self, make_harness, fake_capability_class):
        config = PipelineConfig(summary_delay=2.5, label_delay=0.3, overview_delay=0.9)
        harness = make_harness(links_page(2), fake_capability_class(responder="Item details page"), config=config)
        harness.run("fix_ambiguous_labels")
        assert harness.sleep.calls == [0.3, 0.3]

        harness = make_harness(sections_page(1), config=config)
        harness.run("generate_overview")
        assert harness.sleep.calls == [0.9]

    def test_no_calls_run_concurrently(self, make_harness, fake_capability_class):
        in_flight = []
        peak = []

        class TrackingCapability(fake_capability_class):
            async def create(self, options):
                session = await super().create(options)
                original = session.run

                async def run(text):
                    in_flight.append(text)
                    peak.append(len(in_flight))
                    try:
                        await asyncio.sleep(0)
                        return await original(text)
                    finally:
                        in_flight.remove(text)

                session.run = run
                return session

        harness = make_harness(sections_page(4), TrackingCapability())
        harness.run("generate_section_summaries")
        assert peak == [1, 1, 1, 1]


class TestFailures:
    """Tests for run-level aborts and item-level isolation."""

    def test_unavailable_aborts_before_submission(self, make_harness, fake_capability_class):
        capability = fake_capability_class(availability=Availability.UNAVAILABLE)
        harness = make_harness(NESTED_LEVELS, capability)
        result = harness.run("generate_section_summaries")

        assert result.state is RunState.ABORTED
        assert isinstance(result.error, CapabilityUnavailableError)
        assert capability.prompts == []
        assert capability.sessions_created == 0
        assert harness.errors == [
            "Section summaries failed. Error: fake is unavailable: backend reported unavailable"
        ]
        assert summary_notes(harness) == []

    def test_availability_check_raising(self, make_harness, fake_capability_class):
        capability = fake_capability_class(availability=RuntimeError("probe crashed"))
        harness = make_harness(NESTED_LEVELS, capability)
        result = harness.run("generate_section_summaries")

        assert result.aborted
        assert "probe crashed" in str(result.error)
        assert len(harness.errors) == 1
        assert capability.prompts == []

    def test_session_creation_failure(self, make_harness, fake_capability_class):
        capability = fake_capability_class(fail_create=True)
        harness = make_harness(NESTED_LEVELS, capability)
        result = harness.run("generate_section_summaries")

        assert result.aborted
        assert isinstance(result.error, CapabilityUnavailableError)
        assert "model failed to load" in str(result.error)
        assert capability.prompts == []
        assert capability.releases == 0
        assert len(harness.errors) == 1

    def test_item_failure_isolated(self, make_harness, fake_capability_class):
        def responder(prompt):
            if prompt.startswith("Topic 2"):
                return RuntimeError("generation exploded")
            return "Fine summary."

        capability = fake_capability_class(responder=responder)
        harness = make_harness(sections_page(3), capability)
        result = harness.run("generate_section_summaries")

        assert result.state is RunState.COMPLETED
        assert [r.outcome for r in result.items] == [
            ItemOutcome.ENRICHED,
            ItemOutcome.FAILED,
            ItemOutcome.ENRICHED,
        ]
        failure = result.failed[0]
        assert isinstance(failure.error, ItemGenerationError)
        assert failure.error.index == 1
        assert "generation exploded" in failure.message
        assert len(summary_notes(harness)) == 2
        assert capability.releases == 1
        assert harness.errors == []

    def test_empty_output_skipped(self, make_harness, fake_capability_class):
        capability = fake_capability_class(responder=["First.", "   ", "Third."])
        harness = make_harness(sections_page(3), capability)
        result = harness.run("generate_section_summaries")

        assert [r.outcome for r in result.items] == [
            ItemOutcome.ENRICHED,
            ItemOutcome.SKIPPED,
            ItemOutcome.ENRICHED,
        ]
        assert "Topic 2" not in [h.text for h in harness.document.headings() if h.get("aria-describedby")]

    def test_content_too_short_for_overview(self, make_harness):
        harness = make_harness("<html><body><p>Hi there.</p></body></html>")
        result = harness.run("generate_overview")

        assert result.aborted
        assert isinstance(result.error, ContentTooShortError)
        assert result.error.length == 9
        assert harness.capability.sessions_created == 0
        assert len(harness.errors) == 1

    def test_session_released_on_success(self, make_harness):
        harness = make_harness(sections_page(2))
        harness.run("generate_section_summaries")
        assert harness.capability.sessions_created == 1
        assert harness.capability.releases == 1


class TestIdempotence:
    """Tests for markers preventing duplicate processing."""

    def test_second_section_run_finds_nothing(self, make_harness):
        harness = make_harness(sections_page(3))
        first, second = harness.run("generate_section_summaries", "generate_section_summaries")

        assert first.success_count == 3
        assert second.aborted
        assert isinstance(second.error, NoTargetsFoundError)
        assert len(summary_notes(harness)) == 3
        assert len(harness.capability.prompts) == 3
        assert harness.errors == ["No new sections with enough content to summarize."]

    def test_new_section_processed_on_rerun(self, make_harness):
        harness = make_harness(sections_page(2))
        harness.run("generate_section_summaries")

        body = harness.document.body
        heading = etree.SubElement(body, "h2")
        heading.text = "Late topic"
        paragraph = etree.SubElement(body, "p")
        paragraph.text = f"Late body. {LOREM}"

        result = harness.run("generate_section_summaries")
        assert result.success_count == 1
        assert [s.message for s in result.skipped] == ["already summarized", "already summarized"]

    def test_second_label_run_finds_nothing(self, make_harness, fake_capability_class):
        harness = make_harness(links_page(2), fake_capability_class(responder="Item details"))
        first, second = harness.run("fix_ambiguous_labels", "fix_ambiguous_labels")

        assert first.success_count == 2
        assert isinstance(second.error, NoTargetsFoundError)

    def test_overview_not_regenerated(self, make_harness):
        harness = make_harness(sections_page(2))
        first, second = harness.run("generate_overview", "generate_overview")

        assert first.success_count == 1
        assert second.aborted
        assert len(harness.document.root.xpath('//*[@id="cognitive-layer-overview"]')) == 1
        assert len(harness.capability.prompts) == 1


class TestOverview:
    """Tests for generate_overview()."""

    def test_inserted_at_top(self, make_harness, fake_capability_class):
        capability = fake_capability_class(responder="This page lists topics.")
        harness = make_harness(sections_page(2), capability)
        result = harness.run("generate_overview")

        assert result.success_count == 1
        block = harness.document.body[0]
        assert block.get("id") == "cognitive-layer-overview"
        assert block.get("role") == "status"
        assert block.get("aria-live") == "polite"
        assert block[0].tag == "h2"
        assert block[0].text == "Page Summary"
        assert block[1].text == "This page lists topics."
        assert harness.document.body.get("data-cognitive-overview") == "true"

    def test_prompt_is_page_text(self, make_harness):
        harness = make_harness(sections_page(2))
        harness.run("generate_overview")
        prompt = harness.capability.prompts[0]
        assert prompt.startswith("Topic 1\nTopic 1 body.")
        assert len(prompt) <= 5000

    def test_completion_announces_summary(self, make_harness, fake_capability_class):
        harness = make_harness(sections_page(2), fake_capability_class(responder="Topics overview."))
        harness.run("generate_overview")
        assert harness.announcements[-1] == "AI Overview complete. Topics overview."

    def test_task_prompt_passed_to_session(self, make_harness):
        harness = make_harness(sections_page(1))
        harness.run("generate_overview")
        assert "TL;DR" in harness.capability.options[0].task_prompt


class TestLabelRepair:
    """Tests for fix_ambiguous_labels()."""

    def test_labels_written(self, make_harness, fake_capability_class):
        capability = fake_capability_class(responder='"View item details."')
        harness = make_harness(links_page(2), capability)
        result = harness.run("fix_ambiguous_labels")

        assert result.success_count == 2
        for link in harness.document.root.iter("a"):
            assert link.get("aria-label") == "View item details"
            assert link.get("data-cognitive-fixed") == "true"

    def test_prompt_contents(self, make_harness):
        harness = make_harness(links_page(1))
        harness.run("fix_ambiguous_labels")
        prompt = harness.capability.prompts[0]
        assert 'Text: "Read more"' in prompt
        assert 'URL: "https://example.com/items/0"' in prompt
        assert "Item 0 details." in prompt

    def test_long_label_rejected(self, make_harness, fake_capability_class):
        capability = fake_capability_class(
            responder="This label has far too many words to be accepted as a label"
        )
        harness = make_harness(links_page(1), capability)
        result = harness.run("fix_ambiguous_labels")

        assert result.state is RunState.COMPLETED
        assert result.items[0].outcome is ItemOutcome.SKIPPED
        assert result.success_count == 0
        link = next(harness.document.root.iter("a"))
        assert link.get("aria-label") is None
        assert link.get("data-cognitive-fixed") is None

    def test_progress_every_ten(self, make_harness, fake_capability_class):
        harness = make_harness(links_page(10), fake_capability_class(responder="Item page"))
        harness.run("fix_ambiguous_labels")
        assert "Processed 10 of 10 elements." in harness.announcements

    def test_no_ambiguous_controls(self, make_harness):
        harness = make_harness('<html><body><a href="/x">Download report</a></body></html>')
        result = harness.run("fix_ambiguous_labels")
        assert isinstance(result.error, NoTargetsFoundError)
        assert harness.errors == [
            "No ambiguous elements found. All links and buttons have clear labels."
        ]


class TestProgressChannel:
    """Tests for download and item progress events."""

    def test_download_notices(self, make_harness, fake_capability_class):
        capability = fake_capability_class(
            availability=Availability.AWAITING_DOWNLOAD,
            download_progress=(10, 25, 50, 50, 75, 100),
        )
        harness = make_harness(sections_page(2), capability)
        result = harness.run("generate_section_summaries")

        assert result.state is RunState.COMPLETED
        assert "AI model needs to be downloaded. This may take a few minutes." in harness.announcements
        downloads = [a for a in harness.announcements if a.startswith("Model downloading")]
        assert downloads == [
            "Model downloading: 25 percent complete.",
            "Model downloading: 50 percent complete.",
            "Model downloading: 75 percent complete.",
            "Model downloading: 100 percent complete.",
        ]

    def test_events_in_order(self, make_harness, fake_capability_class):
        capability = fake_capability_class(download_progress=(50, 100))
        harness = make_harness(sections_page(2), capability)
        harness.run("generate_section_summaries")

        assert harness.progress == [
            ProgressEvent("download", 50),
            ProgressEvent("download", 100),
            ProgressEvent("items", 50),
            ProgressEvent("items", 100),
        ]


class TestBusy:
    """Tests for rejecting concurrent runs."""

    def test_second_run_rejected(self, make_harness):
        harness = make_harness(sections_page(2))
        pipeline = harness.pipeline

        async def scenario():
            first = asyncio.create_task(pipeline.generate_section_summaries())
            await asyncio.sleep(0)
            assert pipeline.active
            with pytest.raises(PipelineBusyError):
                await pipeline.generate_overview()
            result = await first
            await harness.announcer.drain()
            return result

        result = asyncio.run(scenario())
        assert result.success_count == 2
        assert not pipeline.active
        assert harness.document.body.get("data-cognitive-overview") is None

    def test_next_run_allowed_after_completion(self, make_harness):
        harness = make_harness(sections_page(2))
        summaries, overview = harness.run("generate_section_summaries", "generate_overview")
        assert summaries.success_count == 2
        assert overview.success_count == 1
