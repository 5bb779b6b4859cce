"""
Repository for the append-only ``company_dossiers`` version chain.

Rows are never updated except to clear ``is_current`` on the superseded head,
and never deleted. ``advance_head()`` is the only write path; it must run
inside ``Database.transaction()`` so the demote + insert pair commits or
rolls back as one unit.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from exit_intel.db.repositories.base import BaseRepository
from exit_intel.dossier.hashing import compute_section_hashes
from exit_intel.errors import DossierConflictError
from exit_intel.models.dossier import DossierContent, DossierSnapshot
from exit_intel.taxonomy.dossier_taxonomy import BuildType, SectionName

logger = logging.getLogger(__name__)

_SUMMARY_COLUMNS = """
    id, company_id, version, build_type, trigger_event, trigger_source,
    sections, previous_id, is_current, content_hash, section_hashes, created_at
"""


@dataclass(frozen=True)
class DossierHistoryEntry:
    """Version metadata without the content body.

    Attributes:
        id:             Snapshot PK.
        version:        Version number.
        build_type:     ``FULL`` or ``INCREMENTAL``.
        trigger_event:  Event that caused the build.
        trigger_source: Optional origin of the event.
        sections:       Sections rebuilt for this version.
        previous_id:    PK of the superseded version.
        is_current:     Whether this is the head.
        content_hash:   Full-content digest.
        section_hashes: Per-section digests keyed by section name.
        created_at:     UTC insertion time.
    """

    id:             int
    version:        int
    build_type:     BuildType
    trigger_event:  str
    trigger_source: Optional[str]
    sections:       list[SectionName]
    previous_id:    Optional[int]
    is_current:     bool
    content_hash:   str
    section_hashes: dict[str, str]
    created_at:     datetime


class DossierRepository(BaseRepository):
    """Read/write access to ``company_dossiers``."""

    # ── Reads ─────────────────────────────────────────────────────────────────

    def get_current(self, company_id: str) -> Optional[DossierSnapshot]:
        """Return the head of ``company_id``'s chain, or ``None`` before the first build."""
        row = self.fetchone(
            "SELECT * FROM company_dossiers WHERE company_id = ? AND is_current = 1;",
            (company_id,),
        )
        return _row_to_snapshot(row) if row else None

    def get_by_id(self, snapshot_id: int) -> Optional[DossierSnapshot]:
        row = self.fetchone(
            "SELECT * FROM company_dossiers WHERE id = ?;",
            (snapshot_id,),
        )
        return _row_to_snapshot(row) if row else None

    def get_version(self, company_id: str, version: int) -> Optional[DossierSnapshot]:
        row = self.fetchone(
            "SELECT * FROM company_dossiers WHERE company_id = ? AND version = ?;",
            (company_id, version),
        )
        return _row_to_snapshot(row) if row else None

    def list_history(self, company_id: str, limit: int = 20) -> list[DossierHistoryEntry]:
        """Return version metadata, newest first, without loading content.

        Args:
            company_id: Owning company.
            limit: Maximum number of versions to return.
        """
        rows = self.fetchall(
            f"""
            SELECT {_SUMMARY_COLUMNS}
            FROM company_dossiers
            WHERE company_id = ?
            ORDER BY version DESC
            LIMIT ?;
            """,
            (company_id, limit),
        )
        return [_row_to_history_entry(r) for r in rows]

    def count_current(self, company_id: str) -> int:
        """Number of head rows for ``company_id`` (0 before the first build, else 1)."""
        return int(self.scalar(
            "SELECT COUNT(*) FROM company_dossiers WHERE company_id = ? AND is_current = 1;",
            (company_id,),
        ))

    # ── Writes ────────────────────────────────────────────────────────────────

    def advance_head(
        self,
        snapshot: DossierSnapshot,
        expected_head: Optional[DossierSnapshot],
    ) -> DossierSnapshot:
        """Demote ``expected_head`` and insert ``snapshot`` as the new head.

        The demotion is a compare-and-swap: it only succeeds while
        ``expected_head`` is still the current row. For a first build
        (``expected_head is None``) the partial unique index on current rows
        rejects a racing insert instead.

        Args:
            snapshot: The new head; ``id`` and ``created_at`` are assigned here.
            expected_head: The head the caller read before building, or ``None``.

        Returns:
            ``snapshot`` with ``id`` and ``created_at`` populated.

        Raises:
            DossierConflictError: If another writer advanced the chain first.
        """
        company_id = snapshot.company_id
        expected_id = expected_head.id if expected_head else None

        if expected_head is not None:
            cursor = self.execute(
                """
                UPDATE company_dossiers
                SET is_current = 0
                WHERE id = ? AND company_id = ? AND is_current = 1;
                """,
                (expected_head.id, company_id),
            )
            if cursor.rowcount != 1:
                raise DossierConflictError(company_id, expected_id)

        created_at = datetime.now(tz=timezone.utc)
        try:
            cursor = self.execute(
                """
                INSERT INTO company_dossiers (
                    company_id, version, content, build_type, trigger_event,
                    trigger_source, sections, previous_id, is_current,
                    content_hash, section_hashes, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?, ?);
                """,
                (
                    company_id,
                    snapshot.version,
                    json.dumps(snapshot.content.model_dump(mode="json")),
                    snapshot.build_type.value,
                    snapshot.trigger_event,
                    snapshot.trigger_source,
                    json.dumps([s.value for s in snapshot.sections]),
                    snapshot.previous_id,
                    snapshot.content_hash,
                    json.dumps(compute_section_hashes(snapshot.content)),
                    created_at.strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
                ),
            )
        except sqlite3.IntegrityError as exc:
            logger.debug("Dossier insert rejected for company=%s: %s", company_id, exc)
            raise DossierConflictError(company_id, expected_id) from exc

        return snapshot.model_copy(
            update={"id": cursor.lastrowid, "is_current": True, "created_at": created_at}
        )


# ── Row mappers ───────────────────────────────────────────────────────────────

def _parse_ts(value: str) -> datetime:
    # Stored as ISO-8601 with a trailing "Z"; fromisoformat handles "+00:00".
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _row_to_snapshot(row: sqlite3.Row) -> DossierSnapshot:
    return DossierSnapshot(
        id=row["id"],
        company_id=row["company_id"],
        version=row["version"],
        content=DossierContent(**json.loads(row["content"])),
        build_type=BuildType(row["build_type"]),
        trigger_event=row["trigger_event"],
        trigger_source=row["trigger_source"],
        sections=[SectionName(s) for s in json.loads(row["sections"])],
        previous_id=row["previous_id"],
        is_current=bool(row["is_current"]),
        content_hash=row["content_hash"],
        created_at=_parse_ts(row["created_at"]),
    )


def _row_to_history_entry(row: sqlite3.Row) -> DossierHistoryEntry:
    return DossierHistoryEntry(
        id=row["id"],
        version=row["version"],
        build_type=BuildType(row["build_type"]),
        trigger_event=row["trigger_event"],
        trigger_source=row["trigger_source"],
        sections=[SectionName(s) for s in json.loads(row["sections"])],
        previous_id=row["previous_id"],
        is_current=bool(row["is_current"]),
        content_hash=row["content_hash"],
        section_hashes=json.loads(row["section_hashes"]),
        created_at=_parse_ts(row["created_at"]),
    )
