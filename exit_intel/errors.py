"""
Exception hierarchy for the dossier store and recommendation engine.

Errors propagate to the caller everywhere except
``DossierUpdater.trigger_dossier_update``, which logs and discards them.
"""

from __future__ import annotations


class ExitIntelError(Exception):
    """Base class for all errors raised by this package."""


class SectionBuildError(ExitIntelError):
    """A section builder failed, or returned incomplete/malformed content.

    Raised before anything is written; the dossier chain is left untouched.
    """

    def __init__(self, company_id: str, message: str) -> None:
        super().__init__(f"company={company_id}: {message}")
        self.company_id = company_id


class UnknownTriggerError(ExitIntelError, ValueError):
    """The trigger event name has no entry in ``TRIGGER_TO_SECTIONS``."""

    def __init__(self, trigger_event: str) -> None:
        super().__init__(f"Unknown dossier trigger event '{trigger_event}'.")
        self.trigger_event = trigger_event


class DossierConflictError(ExitIntelError):
    """A concurrent writer advanced the dossier chain first.

    The updater retries on this error; it only reaches callers once the
    configured retry budget is exhausted.
    """

    def __init__(self, company_id: str, expected_head_id: int | None) -> None:
        super().__init__(
            f"Dossier head for company={company_id} moved "
            f"(expected head id={expected_head_id})."
        )
        self.company_id = company_id
        self.expected_head_id = expected_head_id
