"""Tests for the SQLite schema: idempotency, chain constraints and migrations."""

from __future__ import annotations

import sqlite3

import pytest

from exit_intel.db.migrations import MIGRATIONS, run_migrations
from exit_intel.db.schema import (
    ALL_TABLE_NAMES,
    apply_schema,
    get_existing_indexes,
    get_existing_tables,
)


def _insert_row(conn, company_id="acme", version=1, is_current=1, previous_id=None):
    return conn.execute(
        """
        INSERT INTO company_dossiers (
            company_id, version, content, build_type, trigger_event,
            sections, previous_id, is_current, content_hash
        ) VALUES (?, ?, '{}', 'FULL', 'manual_rebuild', '[]', ?, ?, 'h');
        """,
        (company_id, version, previous_id, is_current),
    )


class TestApplySchema:
    def test_all_tables_created(self, in_memory_db):
        tables = get_existing_tables(in_memory_db)
        for expected_table in ALL_TABLE_NAMES:
            assert expected_table in tables

    def test_idempotent_double_apply(self, in_memory_db):
        apply_schema(in_memory_db)
        assert "company_dossiers" in get_existing_tables(in_memory_db)

    def test_key_indexes_created(self, in_memory_db):
        indexes = get_existing_indexes(in_memory_db)
        assert "idx_dossier_one_current" in indexes
        assert "idx_dossier_company_version" in indexes

    def test_fk_enforcement_is_on(self, in_memory_db):
        row = in_memory_db.execute("PRAGMA foreign_keys;").fetchone()
        assert row[0] == 1

    def test_section_hashes_default_to_empty_object(self, in_memory_db):
        _insert_row(in_memory_db)
        row = in_memory_db.execute("SELECT section_hashes FROM company_dossiers;").fetchone()
        assert row[0] == "{}"


class TestChainConstraints:
    def test_second_current_row_rejected(self, in_memory_db):
        _insert_row(in_memory_db, version=1, is_current=1)
        with pytest.raises(sqlite3.IntegrityError):
            _insert_row(in_memory_db, version=2, is_current=1, previous_id=1)

    def test_current_rows_for_different_companies_allowed(self, in_memory_db):
        _insert_row(in_memory_db, company_id="acme")
        _insert_row(in_memory_db, company_id="globex")
        n = in_memory_db.execute(
            "SELECT COUNT(*) FROM company_dossiers WHERE is_current = 1;"
        ).fetchone()[0]
        assert n == 2

    def test_many_non_current_rows_allowed(self, in_memory_db):
        _insert_row(in_memory_db, version=1, is_current=0)
        _insert_row(in_memory_db, version=2, is_current=0, previous_id=1)
        _insert_row(in_memory_db, version=3, is_current=1, previous_id=2)

    def test_duplicate_version_rejected(self, in_memory_db):
        _insert_row(in_memory_db, version=1, is_current=0)
        with pytest.raises(sqlite3.IntegrityError):
            _insert_row(in_memory_db, version=1, is_current=1)

    def test_version_must_be_positive(self, in_memory_db):
        with pytest.raises(sqlite3.IntegrityError):
            _insert_row(in_memory_db, version=0)

    def test_previous_id_must_exist(self, in_memory_db):
        with pytest.raises(sqlite3.IntegrityError):
            _insert_row(in_memory_db, version=2, previous_id=999)


class TestMigrations:
    def test_all_migrations_recorded(self, in_memory_db):
        rows = in_memory_db.execute("SELECT version_id FROM schema_versions;").fetchall()
        assert {r["version_id"] for r in rows} == set(MIGRATIONS)

    def test_rerun_applies_nothing(self, in_memory_db):
        assert run_migrations(in_memory_db) == 0

    def test_fresh_database_applies_every_migration(self):
        conn = sqlite3.connect(":memory:")
        conn.row_factory = sqlite3.Row
        apply_schema(conn)
        assert run_migrations(conn) == len(MIGRATIONS)
        conn.close()
