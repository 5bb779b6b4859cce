"""
Dossier updater: event → affected sections → rebuild → merge → hash → write.

Every update runs the same cycle:

  1. Read the current head (may be absent).
  2. Resolve the trigger to its section list via ``TRIGGER_TO_SECTIONS``.
  3. No head: ``build_all_sections`` → ``FULL`` version 1.
     Head present: ``build_sections`` for the resolved list, merged over
     the head's content → ``INCREMENTAL``.
  4. Hash the merged content. Same hash as the head → return the head, no write.
  5. Otherwise demote the head and insert version + 1 in one
     ``BEGIN IMMEDIATE`` transaction (compare-and-swap on the head id).

Builders run outside the write transaction. If another writer advances the
chain in the meantime the CAS fails with ``DossierConflictError`` and the
whole cycle is retried from step 1, up to ``max_conflict_retries`` times.

Usage::

    with Database.from_config(config.database) as db:
        updater = DossierUpdater(db, builder, config.dossier)
        snap = updater.update_dossier("acme", "task_completed", "task-42")
        updater.close()
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from exit_intel.config import DossierConfig
from exit_intel.db.connection import Database
from exit_intel.db.repositories.dossier_repo import DossierHistoryEntry, DossierRepository
from exit_intel.dossier.builders import SectionBuilder
from exit_intel.dossier.hashing import changed_sections, compute_content_hash
from exit_intel.dossier.merge import collect_sections, content_from_sections, merge_content
from exit_intel.errors import DossierConflictError, UnknownTriggerError
from exit_intel.models.dossier import DossierSnapshot, SectionContent
from exit_intel.taxonomy.dossier_taxonomy import (
    ALL_SECTIONS,
    TRIGGER_TO_SECTIONS,
    BuildType,
    SectionName,
    TriggerEvent,
)

logger = logging.getLogger(__name__)


def resolve_trigger(trigger_event: str) -> tuple[TriggerEvent, tuple[SectionName, ...]]:
    """Map an event name to its ``TriggerEvent`` and affected sections.

    Raises:
        UnknownTriggerError: If the name is not a known trigger.
    """
    try:
        event = TriggerEvent(trigger_event)
    except ValueError:
        raise UnknownTriggerError(trigger_event) from None
    return event, TRIGGER_TO_SECTIONS[event]


class DossierUpdater:
    """Maintains each company's dossier version chain.

    Attributes:
        database: Open ``Database`` resource.
        builder: Source of section content.
        config: ``[dossier]`` settings (retry budget, background workers).
    """

    def __init__(
        self,
        database: Database,
        builder: SectionBuilder,
        config: Optional[DossierConfig] = None,
    ) -> None:
        self.database = database
        self.builder = builder
        self.config = config or DossierConfig()
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.background_workers,
            thread_name_prefix="dossier-update",
        )
        self._closed = False
        self._lifecycle_lock = threading.Lock()

    # ── Writes ────────────────────────────────────────────────────────────────

    def update_dossier(
        self,
        company_id: str,
        trigger_event: str,
        trigger_source: Optional[str] = None,
    ) -> DossierSnapshot:
        """Rebuild the sections affected by ``trigger_event`` and advance the chain.

        Args:
            company_id: Company whose dossier to update.
            trigger_event: Event name (a ``TriggerEvent`` value).
            trigger_source: Optional origin of the event, stored verbatim.

        Returns:
            The new head, or the unchanged head when the content hash matched.

        Raises:
            UnknownTriggerError: Unknown ``trigger_event``.
            SectionBuildError: Builder omitted or malformed a requested section.
            DossierConflictError: Concurrent writers exhausted the retry budget.
            Exception: Anything the builder raises, unchanged.
        """
        event, names = resolve_trigger(trigger_event)
        max_retries = self.config.max_conflict_retries

        attempt = 0
        while True:
            try:
                return self._update_once(company_id, event, names, trigger_source)
            except DossierConflictError as exc:
                if attempt >= max_retries:
                    logger.error(
                        "Dossier update gave up after %d conflict(s) | company=%s trigger=%s",
                        attempt + 1, company_id, event.value,
                    )
                    raise
                attempt += 1
                logger.warning(
                    "Dossier conflict, retrying (%d/%d) | %s",
                    attempt, max_retries, exc,
                )

    def _update_once(
        self,
        company_id: str,
        event: TriggerEvent,
        names: tuple[SectionName, ...],
        trigger_source: Optional[str],
    ) -> DossierSnapshot:
        current = self.get_current_dossier(company_id)

        if current is None:
            built = collect_sections(
                company_id, self.builder.build_all_sections(company_id), ALL_SECTIONS
            )
            content = content_from_sections(built)
            build_type = BuildType.FULL
            rebuilt = list(ALL_SECTIONS)
        else:
            built = collect_sections(
                company_id, self.builder.build_sections(company_id, names), names
            )
            content = merge_content(current.content, built)
            build_type = BuildType.INCREMENTAL
            rebuilt = list(names)

        content_hash = compute_content_hash(content)
        if current is not None and content_hash == current.content_hash:
            logger.info(
                "Dossier unchanged | company=%s trigger=%s version=%d hash=%s",
                company_id, event.value, current.version, content_hash[:12],
            )
            return current

        snapshot = DossierSnapshot(
            company_id=company_id,
            version=current.version + 1 if current else 1,
            content=content,
            build_type=build_type,
            trigger_event=event.value,
            trigger_source=trigger_source,
            sections=rebuilt,
            previous_id=current.id if current else None,
            content_hash=content_hash,
        )

        with self.database.transaction() as conn:
            written = DossierRepository(conn).advance_head(snapshot, current)

        if current is None:
            logger.info(
                "Dossier built | company=%s build=%s version=%d hash=%s",
                company_id, build_type.value, written.version, content_hash[:12],
            )
        else:
            diff = changed_sections(current.content, content)
            logger.info(
                "Dossier updated | company=%s build=%s version=%d hash=%s changed=%s",
                company_id, build_type.value, written.version, content_hash[:12],
                [s.value for s in diff],
            )
        return written

    def trigger_dossier_update(
        self,
        company_id: str,
        trigger_event: str,
        trigger_source: Optional[str] = None,
    ) -> None:
        """Schedule ``update_dossier`` in the background and return immediately.

        Failures are logged with traceback and never reach the caller. Updates
        arriving after ``close()`` are logged and dropped.
        """
        with self._lifecycle_lock:
            if not self._closed:
                try:
                    self._executor.submit(
                        self._run_background, company_id, trigger_event, trigger_source
                    )
                    return
                except RuntimeError:
                    # executor already shut down
                    pass
        logger.warning(
            "Updater closed; dropping dossier update | company=%s trigger=%s",
            company_id, trigger_event,
        )

    def _run_background(
        self,
        company_id: str,
        trigger_event: str,
        trigger_source: Optional[str],
    ) -> None:
        try:
            self.update_dossier(company_id, trigger_event, trigger_source)
        except Exception:
            logger.exception(
                "Background dossier update failed | company=%s trigger=%s",
                company_id, trigger_event,
            )

    # ── Reads ─────────────────────────────────────────────────────────────────

    def get_current_dossier(self, company_id: str) -> Optional[DossierSnapshot]:
        """Return the head snapshot, or ``None`` if the company was never built."""
        with self.database.read() as conn:
            return DossierRepository(conn).get_current(company_id)

    def get_or_build_dossier(self, company_id: str) -> DossierSnapshot:
        """Return the head, running a ``manual_rebuild`` first if there is none."""
        current = self.get_current_dossier(company_id)
        if current is not None:
            return current
        logger.info("No dossier for company=%s; building on demand.", company_id)
        return self.update_dossier(company_id, TriggerEvent.MANUAL_REBUILD.value)

    def get_section(
        self,
        company_id: str,
        section: SectionName | str,
    ) -> Optional[SectionContent]:
        """Return one section of the head, building the dossier on demand."""
        return self.get_or_build_dossier(company_id).content.section(section)

    def list_history(self, company_id: str, limit: int = 20) -> list[DossierHistoryEntry]:
        with self.database.read() as conn:
            return DossierRepository(conn).list_history(company_id, limit=limit)

    def get_version(self, company_id: str, version: int) -> Optional[DossierSnapshot]:
        with self.database.read() as conn:
            return DossierRepository(conn).get_version(company_id, version)

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def close(self) -> None:
        """Wait for background updates to finish and stop the executor."""
        with self._lifecycle_lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "DossierUpdater":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
