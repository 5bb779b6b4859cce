"""
Dossier taxonomy: section names, trigger events, and the static map between them.

Two enumerations describe every dossier build:
  - ``SectionName``  — the *where*: which slice of the dossier is rebuilt.
  - ``TriggerEvent`` — the *why*:   which application event caused the build.

``TRIGGER_TO_SECTIONS`` is total over ``TriggerEvent``: every trigger maps
to the (non-empty) set of sections its event can invalidate. Section lists
are kept in canonical ``ALL_SECTIONS`` order.

``BuildType`` records whether a snapshot was computed from scratch or merged
over the previous head.

This module has NO imports from any other ``exit_intel`` package.
"""

from enum import StrEnum


class SectionName(StrEnum):
    """Named slice of dossier content, produced by an external builder."""

    IDENTITY = "identity"
    """Company name, industry, description, core business factors."""

    FINANCIALS = "financials"
    """Revenue, EBITDA, add-backs and period coverage."""

    ASSESSMENT = "assessment"
    """BRI category scores, weakest categories and drivers."""

    VALUATION = "valuation"
    """Current valuation, multiples and value gap."""

    TASKS = "tasks"
    """Open/completed action tasks and recovered value."""

    EVIDENCE = "evidence"
    """Data-room documents and evidence coverage per category."""

    SIGNALS = "signals"
    """Recent risk/opportunity signals."""

    ENGAGEMENT = "engagement"
    """Check-in cadence and user activity."""

    AI_CONTEXT = "ai_context"
    """Prior AI-generated questions/tasks and their outcomes."""

    NA_FLAGS = "na_flags"
    """Not-applicable answers and tasks, heavily-NA categories."""

    DISCLOSURES = "disclosures"
    """Periodic disclosure responses and material changes."""

    NOTES = "notes"
    """Assessment notes, task completion notes, check-in details."""


ALL_SECTIONS: tuple[SectionName, ...] = tuple(SectionName)


class TriggerEvent(StrEnum):
    """Application event that can invalidate dossier sections."""

    ONBOARDING_COMPLETED = "onboarding_completed"
    ASSESSMENT_COMPLETED = "assessment_completed"
    ASSESSMENT_RESPONSE_SAVED = "assessment_response_saved"
    TASK_COMPLETED = "task_completed"
    TASK_STATUS_CHANGED = "task_status_changed"
    DOCUMENT_UPLOADED = "document_uploaded"
    FINANCIAL_DATA_UPDATED = "financial_data_updated"
    VALUATION_RECALCULATED = "valuation_recalculated"
    SIGNAL_CREATED = "signal_created"
    CHECK_IN_COMPLETED = "check_in_completed"
    DISCLOSURE_SUBMITTED = "disclosure_submitted"
    NOTE_ADDED = "note_added"
    MANUAL_REBUILD = "manual_rebuild"


class BuildType(StrEnum):
    """How a dossier snapshot was computed."""

    FULL = "FULL"
    INCREMENTAL = "INCREMENTAL"


def _ordered(*sections: SectionName) -> tuple[SectionName, ...]:
    wanted = set(sections)
    return tuple(s for s in ALL_SECTIONS if s in wanted)


S = SectionName

TRIGGER_TO_SECTIONS: dict[TriggerEvent, tuple[SectionName, ...]] = {
    TriggerEvent.ONBOARDING_COMPLETED: ALL_SECTIONS,
    TriggerEvent.ASSESSMENT_COMPLETED: _ordered(
        S.ASSESSMENT, S.VALUATION, S.TASKS, S.SIGNALS, S.AI_CONTEXT, S.NA_FLAGS, S.NOTES,
    ),
    TriggerEvent.ASSESSMENT_RESPONSE_SAVED: _ordered(
        S.ASSESSMENT, S.NA_FLAGS, S.NOTES,
    ),
    TriggerEvent.TASK_COMPLETED: _ordered(
        S.TASKS, S.VALUATION, S.EVIDENCE, S.ENGAGEMENT, S.NOTES,
    ),
    TriggerEvent.TASK_STATUS_CHANGED: _ordered(S.TASKS, S.NA_FLAGS),
    TriggerEvent.DOCUMENT_UPLOADED: _ordered(S.EVIDENCE, S.ENGAGEMENT),
    TriggerEvent.FINANCIAL_DATA_UPDATED: _ordered(S.FINANCIALS, S.VALUATION),
    TriggerEvent.VALUATION_RECALCULATED: _ordered(S.VALUATION),
    TriggerEvent.SIGNAL_CREATED: _ordered(S.SIGNALS),
    TriggerEvent.CHECK_IN_COMPLETED: _ordered(S.ENGAGEMENT, S.SIGNALS, S.NOTES),
    TriggerEvent.DISCLOSURE_SUBMITTED: _ordered(S.DISCLOSURES, S.SIGNALS),
    TriggerEvent.NOTE_ADDED: _ordered(S.NOTES),
    TriggerEvent.MANUAL_REBUILD: ALL_SECTIONS,
}

del S
