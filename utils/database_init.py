import asyncio
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite

DEFAULT_DATABASE_DIR = Path(__file__).resolve().parent.parent / "database"


class AsyncDatabaseInitializer:
    """
    Manage the async SQLite database that holds the last scan session.

    - The database file is located at: <database_dir>/app.db
    - `database_dir` defaults to the DATABASE_DIR environment variable and
      falls back to `./database` next to the application.
    - Existing data is kept across restarts; `ensure_database()` only creates
      the schema when it is missing.
    - Subsequent calls to `ensure_database()` on the same instance are no-ops,
      so it is safe for `connection()` to call it.
    """

    def __init__(self, database_dir: Optional[Path | str] = None) -> None:
        env_dir = os.getenv("DATABASE_DIR")
        if database_dir is not None:
            db_dir = Path(database_dir).expanduser()
        elif env_dir and env_dir.strip():
            db_dir = Path(env_dir).expanduser()
        else:
            db_dir = DEFAULT_DATABASE_DIR

        # If the path exists but is not a directory, that's a configuration error.
        if db_dir.exists() and not db_dir.is_dir():
            raise RuntimeError(
                f"Database directory {db_dir} points to a file, not a directory. "
                "Please set DATABASE_DIR to a directory path."
            )

        try:
            db_dir.mkdir(parents=True, exist_ok=True)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to create or access database directory at {db_dir}"
            ) from exc

        self.db_dir = db_dir
        self.db_path = self.db_dir / "app.db"
        self.photo_dir = self.db_dir / "photos"
        self.generated_dir = self.db_dir / "generated"

        self._initialized = False

    async def ensure_database(self) -> None:
        """
        Ensure the SQLite database at `self.db_path` has its schema.

        SCAN_SESSION holds at most one row (id is pinned to 1) so a save
        always replaces the previous scan in a single statement.
        """
        if self._initialized:
            return

        self.photo_dir.mkdir(parents=True, exist_ok=True)
        self.generated_dir.mkdir(parents=True, exist_ok=True)

        max_attempts = 3
        for attempt in range(1, max_attempts + 1):
            try:
                async with aiosqlite.connect(self.db_path) as db:
                    await db.execute(
                        """
                        CREATE TABLE IF NOT EXISTS SCAN_SESSION (
                            id INTEGER PRIMARY KEY CHECK (id = 1),
                            image_uri TEXT NOT NULL,
                            metrics_json TEXT NOT NULL,
                            average INTEGER NOT NULL,
                            created_at INTEGER NOT NULL
                        )
                        """
                    )
                    await db.commit()
                break
            except FileNotFoundError:
                # On some platforms a transient missing file error may occur; retry a few times.
                if attempt >= max_attempts:
                    raise
                await asyncio.sleep(0.1 * attempt)

        self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Async context manager yielding an `aiosqlite.Connection`.

        The schema is created on first use via `ensure_database()`.
        """
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path)
        try:
            yield conn
        finally:
            await conn.close()
