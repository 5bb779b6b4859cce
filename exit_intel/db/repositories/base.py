"""
Statement helpers shared by the dossier-chain repositories.

A repository wraps one ``sqlite3.Connection`` borrowed from
``Database.read()`` or ``Database.transaction()``. It never commits, rolls
back or closes that connection; the owning context manager decides, so a
demote and an insert issued through the same repository land in the same
transaction.

Every statement is logged at DEBUG with its parameters. Rows come back as
``sqlite3.Row`` (set by ``get_connection``) and are mapped to models by the
concrete repository.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Optional

logger = logging.getLogger(__name__)

Params = tuple[Any, ...] | dict[str, Any]


class BaseRepository:
    """Thin wrapper that runs SQL on a borrowed connection.

    Attributes:
        conn: Connection owned by the caller's ``read()``/``transaction()`` block.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def execute(self, sql: str, params: Params = ()) -> sqlite3.Cursor:
        """Run one statement and hand back its cursor.

        Writers use the cursor for ``rowcount`` (compare-and-swap checks) and
        ``lastrowid`` (assigned snapshot ids).
        """
        logger.debug("SQL: %s | params: %s", sql.strip(), params)
        return self.conn.execute(sql, params)

    def fetchone(self, sql: str, params: Params = ()) -> Optional[sqlite3.Row]:
        return self.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: Params = ()) -> list[sqlite3.Row]:
        return self.execute(sql, params).fetchall()

    def scalar(self, sql: str, params: Params = ()) -> Any:
        """First column of the first row, or ``None`` when nothing matched."""
        row = self.fetchone(sql, params)
        return row[0] if row is not None else None
