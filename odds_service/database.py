"""SQLite-backed document store for configuration and user records."""

import json
import aiosqlite
from datetime import datetime, timezone
from typing import Optional

from .config import DATABASE_PATH


class Database:
    """
    Minimal document store: JSON documents addressed by (collection, document id).

    Writes replace the whole document; there is no partial update and no
    concurrency check, the last writer wins.
    """

    def __init__(self, db_path: str = DATABASE_PATH):
        self.db_path = db_path
        self._initialized = False

    async def initialize(self):
        """Create database tables if they don't exist."""
        if self._initialized:
            return

        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    document_id TEXT NOT NULL,
                    data_json TEXT NOT NULL,
                    updated_at TIMESTAMP NOT NULL,
                    PRIMARY KEY (collection, document_id)
                )
            """)

            await db.commit()
            self._initialized = True

    async def get_document(self, collection: str, document_id: str) -> Optional[dict]:
        """Fetch a document, or None if it does not exist."""
        await self.initialize()

        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute("""
                SELECT data_json FROM documents
                WHERE collection = ? AND document_id = ?
            """, (collection, document_id))

            row = await cursor.fetchone()
            if row is None:
                return None
            return json.loads(row[0])

    async def set_document(self, collection: str, document_id: str, data: dict):
        """Overwrite a document wholesale."""
        await self.initialize()

        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("""
                INSERT OR REPLACE INTO documents (
                    collection, document_id, data_json, updated_at
                ) VALUES (?, ?, ?, ?)
            """, (
                collection,
                document_id,
                json.dumps(data),
                datetime.now(timezone.utc).isoformat(),
            ))
            await db.commit()

    async def ping(self) -> bool:
        """Return True if the store answers a trivial query."""
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("SELECT 1")
            return True
        except (aiosqlite.Error, OSError):
            return False
