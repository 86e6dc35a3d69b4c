"""Async Data Access Layer for the single-slot SCAN_SESSION table.

Provides ScanSessionDAL with `save`, `load` and `clear`, compatible with
`utils.database_init.AsyncDatabaseInitializer`.
"""

from __future__ import annotations

import json
import logging
from typing import Optional, Sequence

from models.scan_session import METRIC_KEYS, HairMetrics, ScanSession, clamp_score
from utils.database_init import AsyncDatabaseInitializer

LOGGER = logging.getLogger(__name__)


class ScanSessionDAL:
    """Persist the most recent scan; every save overwrites the previous one.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    _COLUMNS = ("image_uri", "metrics_json", "average", "created_at")
    _COLUMN_LIST = ", ".join(_COLUMNS)

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def save(self, session: ScanSession) -> None:
        """Replace the stored scan with `session`."""
        async with self._db.connection() as conn:
            await conn.execute(
                f"INSERT OR REPLACE INTO SCAN_SESSION (id, {self._COLUMN_LIST}) VALUES (1, ?, ?, ?, ?)",
                (
                    session.image_uri,
                    json.dumps(session.metrics.to_dict()),
                    session.average,
                    session.created_at,
                ),
            )
            await conn.commit()

    async def load(self) -> Optional[ScanSession]:
        """Return the stored scan, or None when absent or unreadable."""
        async with self._db.connection() as conn:
            cur = await conn.execute(f"SELECT {self._COLUMN_LIST} FROM SCAN_SESSION WHERE id = 1")
            row = await cur.fetchone()
        if row is None:
            return None
        try:
            return self._row_to_session(row)
        except (KeyError, TypeError, ValueError) as exc:
            LOGGER.warning("Ignoring unreadable stored scan session: %s", exc)
            return None

    async def clear(self) -> bool:
        """Delete the stored scan. Returns True if a row was removed."""
        async with self._db.connection() as conn:
            await conn.execute("DELETE FROM SCAN_SESSION WHERE id = 1")
            await conn.commit()
            cur = await conn.execute("SELECT changes()")
            changed = await cur.fetchone()
            return bool(changed and changed[0] > 0)

    @staticmethod
    def _row_to_session(row: Sequence[object]) -> ScanSession:
        """Convert a DB row tuple into a ScanSession."""
        raw_metrics = json.loads(str(row[1]))
        metrics = HairMetrics(**{key: int(raw_metrics[key]) for key in METRIC_KEYS})
        return ScanSession(
            image_uri=str(row[0]),
            metrics=metrics,
            average=clamp_score(int(row[2])),
            created_at=int(row[3]),
        )
