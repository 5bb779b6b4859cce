"""Tests for the section / trigger taxonomy and the trigger map."""

from __future__ import annotations

from exit_intel.taxonomy.dossier_taxonomy import (
    ALL_SECTIONS,
    TRIGGER_TO_SECTIONS,
    SectionName,
    TriggerEvent,
)
from exit_intel.taxonomy.playbook_taxonomy import PlaybookCategory, SignalSource

S = SectionName


class TestSections:
    def test_twelve_sections(self):
        assert len(ALL_SECTIONS) == 12

    def test_section_values_are_snake_case(self):
        for section in ALL_SECTIONS:
            assert section.value == section.value.lower()


class TestTriggerMap:
    def test_every_trigger_mapped(self):
        assert set(TRIGGER_TO_SECTIONS) == set(TriggerEvent)

    def test_no_empty_section_lists(self):
        for trigger, sections in TRIGGER_TO_SECTIONS.items():
            assert sections, trigger

    def test_lists_in_canonical_order(self):
        for sections in TRIGGER_TO_SECTIONS.values():
            positions = [ALL_SECTIONS.index(s) for s in sections]
            assert positions == sorted(positions)

    def test_full_rebuild_triggers(self):
        assert TRIGGER_TO_SECTIONS[TriggerEvent.ONBOARDING_COMPLETED] == ALL_SECTIONS
        assert TRIGGER_TO_SECTIONS[TriggerEvent.MANUAL_REBUILD] == ALL_SECTIONS

    def test_task_completed(self):
        assert TRIGGER_TO_SECTIONS[TriggerEvent.TASK_COMPLETED] == (
            S.VALUATION, S.TASKS, S.EVIDENCE, S.ENGAGEMENT, S.NOTES,
        )

    def test_narrow_triggers(self):
        assert TRIGGER_TO_SECTIONS[TriggerEvent.VALUATION_RECALCULATED] == (S.VALUATION,)
        assert TRIGGER_TO_SECTIONS[TriggerEvent.SIGNAL_CREATED] == (S.SIGNALS,)
        assert TRIGGER_TO_SECTIONS[TriggerEvent.NOTE_ADDED] == (S.NOTES,)
        assert TRIGGER_TO_SECTIONS[TriggerEvent.FINANCIAL_DATA_UPDATED] == (
            S.FINANCIALS, S.VALUATION,
        )


class TestPlaybookTaxonomy:
    def test_signal_sources(self):
        assert {s.value for s in SignalSource} == {"DRS", "RSS", "BQS"}

    def test_categories(self):
        assert {c.value for c in PlaybookCategory} == {
            "PERSONAL", "FINANCIAL", "OPERATIONAL", "LEGAL", "MARKET_GROWTH", "DEAL_PREP",
        }
