"""
Shared pytest fixtures for the Exit Intelligence test suite.

Provides:
  - ``in_memory_db``: A fresh in-memory SQLite connection with the full
    schema and migrations applied.
  - ``database``: An opened file-backed ``Database`` resource in ``tmp_path``.
  - ``stub_builder``: A recording ``SectionBuilder`` with failure injection.
  - ``updater``: A ``DossierUpdater`` wired to the two above.
  - Sample recommendation inputs.
"""

from __future__ import annotations

import sqlite3
from typing import Generator

import pytest

from exit_intel.config import DossierConfig
from exit_intel.db.connection import Database
from exit_intel.db.migrations import run_migrations
from exit_intel.db.schema import apply_schema
from exit_intel.dossier.updater import DossierUpdater
from exit_intel.models.recommendation import RecommendationInputs
from factories import StubSectionBuilder, healthy_drs, make_inputs


# ── Database fixtures ─────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the full schema applied.

    Foreign key enforcement is ON. Connection is closed after the test.
    """
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    apply_schema(conn)
    run_migrations(conn)
    yield conn
    conn.close()


@pytest.fixture
def database(tmp_path) -> Generator[Database, None, None]:
    """Yield an opened file-backed ``Database`` under ``tmp_path``."""
    db = Database(str(tmp_path / "db" / "test.db")).open()
    yield db
    db.close()


# ── Dossier fixtures ──────────────────────────────────────────────────────────

@pytest.fixture
def stub_builder() -> StubSectionBuilder:
    return StubSectionBuilder()


@pytest.fixture
def updater(database, stub_builder) -> Generator[DossierUpdater, None, None]:
    """``DossierUpdater`` over the file-backed database and the stub builder."""
    upd = DossierUpdater(database, stub_builder, DossierConfig(max_conflict_retries=3))
    yield upd
    upd.close()


# ── Recommendation fixtures ───────────────────────────────────────────────────

@pytest.fixture
def owner_dependent_inputs() -> RecommendationInputs:
    """Strong owner-dependence signals across all three score engines."""
    return make_inputs(
        drs=healthy_drs(TRANSFERABILITY=0.1),
        rss={"Key-Person Risk": 0.25},
        bqs={"owner_dependency": -0.25},
    )


@pytest.fixture
def customer_concentrated_inputs() -> RecommendationInputs:
    """Strong customer-concentration signals (variant-suffixed names)."""
    return make_inputs(
        drs=healthy_drs(),
        rss={
            "Customer Concentration (Single)": 0.15,
            "Customer Concentration (Top 3)": 0.10,
        },
        bqs={
            "customer_concentration_single": -0.15,
            "customer_concentration_top3": -0.10,
        },
    )
