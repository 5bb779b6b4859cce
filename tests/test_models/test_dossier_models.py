"""Tests for DossierContent / DossierSnapshot validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from exit_intel.models.dossier import DossierContent, DossierSnapshot
from exit_intel.taxonomy.dossier_taxonomy import ALL_SECTIONS, BuildType, SectionName


def _snapshot(**overrides) -> DossierSnapshot:
    fields = dict(
        company_id="acme",
        version=1,
        content=DossierContent(),
        build_type=BuildType.FULL,
        trigger_event="onboarding_completed",
        sections=list(ALL_SECTIONS),
        content_hash="0" * 64,
    )
    fields.update(overrides)
    return DossierSnapshot(**fields)


class TestDossierContent:
    def test_all_sections_default_none(self):
        content = DossierContent()
        assert content.present_sections() == []
        assert all(content.section(s) is None for s in ALL_SECTIONS)

    def test_section_lookup_by_string(self):
        content = DossierContent(na_flags={"count": 2})
        assert content.section("na_flags") == {"count": 2}
        assert content.section(SectionName.NA_FLAGS) == {"count": 2}

    def test_unknown_section_rejected(self):
        with pytest.raises(ValidationError):
            DossierContent(bogus={})

    def test_frozen(self):
        content = DossierContent()
        with pytest.raises(ValidationError):
            content.tasks = {"x": 1}

    def test_present_sections_canonical_order(self):
        content = DossierContent(notes={}, identity={}, tasks={})
        assert content.present_sections() == [
            SectionName.IDENTITY, SectionName.TASKS, SectionName.NOTES,
        ]


class TestDossierSnapshot:
    def test_valid_first_snapshot(self):
        snap = _snapshot()
        assert snap.id is None
        assert snap.is_current is True

    def test_empty_company_rejected(self):
        with pytest.raises(ValidationError):
            _snapshot(company_id="  ")

    def test_version_zero_rejected(self):
        with pytest.raises(ValidationError):
            _snapshot(version=0)

    def test_v1_with_previous_rejected(self):
        with pytest.raises(ValidationError):
            _snapshot(previous_id=5)

    def test_later_version_requires_previous(self):
        with pytest.raises(ValidationError):
            _snapshot(version=2, build_type=BuildType.INCREMENTAL, sections=[SectionName.TASKS])

    def test_full_build_must_list_all_sections(self):
        with pytest.raises(ValidationError):
            _snapshot(sections=[SectionName.TASKS])

    def test_incremental_subset_ok(self):
        snap = _snapshot(
            version=2,
            previous_id=1,
            build_type=BuildType.INCREMENTAL,
            sections=[SectionName.TASKS, SectionName.NA_FLAGS],
        )
        assert snap.sections == [SectionName.TASKS, SectionName.NA_FLAGS]
