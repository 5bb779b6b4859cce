"""
SQLite schema DDL — all CREATE TABLE and CREATE INDEX statements.

All statements use ``IF NOT EXISTS`` so ``apply_schema()`` is **idempotent**:
safe to call on an already-initialized database (e.g. after restart or in tests).

Tables:
  1. company_dossiers  (self-referencing ``previous_id``)

Chain invariants enforced by the database itself:
  - ``UNIQUE(company_id, version)``                 — no two rows share a version.
  - partial unique index on ``company_id WHERE is_current = 1``
                                                    — at most one head per company.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── DDL statements ─────────────────────────────────────────────────────────────

_DDL_COMPANY_DOSSIERS = """
CREATE TABLE IF NOT EXISTS company_dossiers (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    company_id      TEXT    NOT NULL,
    version         INTEGER NOT NULL CHECK (version >= 1),
    content         TEXT    NOT NULL,
    build_type      TEXT    NOT NULL CHECK (build_type IN ('FULL', 'INCREMENTAL')),
    trigger_event   TEXT    NOT NULL,
    trigger_source  TEXT,
    sections        TEXT    NOT NULL,
    previous_id     INTEGER REFERENCES company_dossiers(id),
    is_current      INTEGER NOT NULL DEFAULT 1,
    content_hash    TEXT    NOT NULL,
    section_hashes  TEXT    NOT NULL DEFAULT '{}',
    created_at      TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    UNIQUE(company_id, version)
);
"""

_DDL_COMPANY_DOSSIERS_INDEXES = """
CREATE UNIQUE INDEX IF NOT EXISTS idx_dossier_one_current
    ON company_dossiers(company_id)
    WHERE is_current = 1;
CREATE INDEX IF NOT EXISTS idx_dossier_company_version
    ON company_dossiers(company_id, version DESC);
"""

# ── Ordered list of all DDL to apply ──────────────────────────────────────────

_ALL_DDL: list[str] = [
    _DDL_COMPANY_DOSSIERS,
    _DDL_COMPANY_DOSSIERS_INDEXES,
]

# Table names for introspection / tests
ALL_TABLE_NAMES = [
    "company_dossiers",
]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply all DDL statements to ``conn``.

    Idempotent: safe to call on an already-initialized database.
    Each statement uses ``IF NOT EXISTS`` guards.

    Args:
        conn: An open ``sqlite3.Connection`` (FK enforcement should be ON).
    """
    logger.debug("Applying schema to database...")

    for ddl in _ALL_DDL:
        for statement in _split_ddl(ddl):
            conn.execute(statement)

    conn.commit()
    logger.debug("Schema applied: %d table(s), indexes created/verified.", len(ALL_TABLE_NAMES))


def _split_ddl(ddl: str) -> list[str]:
    """Split a multi-statement DDL block on semicolons."""
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return table names present in the database, sorted alphabetically."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]


def get_existing_indexes(conn: sqlite3.Connection) -> list[str]:
    """Return index names present in the database, sorted alphabetically."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='index' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]
