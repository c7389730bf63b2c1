# discovery/discovery_store.py

import aiosqlite
import logging
import os
from datetime import datetime, timezone
from typing import List

from .config import DB_PATH
from .models import DiscoveredInstance, InstanceKey

log = logging.getLogger("uvicorn")


class DiscoveryStore:
    def __init__(self, path: str = DB_PATH):
        """Makes sure the database folder exists before aiosqlite writes to it."""
        self.path = path
        db_dir = os.path.dirname(self.path)
        if db_dir:
            try:
                os.makedirs(db_dir, exist_ok=True)
            except OSError as e:
                log.error(f"Failed to create directory {db_dir}: {e}", exc_info=True)
        log.info(f"DiscoveryStore using DB at: {self.path}")

    async def init_db(self):
        """Creates the table if it does not exist yet."""
        try:
            async with aiosqlite.connect(self.path) as db:
                await db.execute("""
                    CREATE TABLE IF NOT EXISTS discovered_instances (
                        hostname TEXT,
                        port INTEGER,
                        discover_count INTEGER NOT NULL DEFAULT 0,
                        last_discovered_at TEXT,
                        PRIMARY KEY (hostname, port)
                    )
                """)
                await db.commit()
            log.info(f"Database initialized at {self.path}")
        except Exception as e:
            log.error(f"Database initialization failed at {self.path}: {e}", exc_info=True)
            # Fatal for the host, let the caller see it
            raise e

    async def record_discovery(self, key: InstanceKey) -> None:
        """Upserts one instance: first sighting inserts, later ones bump the counter."""
        timestamp = datetime.now(timezone.utc).isoformat()
        async with aiosqlite.connect(self.path) as db:
            await db.execute(
                """
                INSERT INTO discovered_instances (hostname, port, discover_count, last_discovered_at)
                VALUES (?, ?, 1, ?)
                ON CONFLICT (hostname, port) DO UPDATE SET
                    discover_count = discover_count + 1,
                    last_discovered_at = excluded.last_discovered_at
                """,
                (key.hostname, key.port, timestamp)
            )
            await db.commit()

    async def get_instances(self) -> List[DiscoveredInstance]:
        async with aiosqlite.connect(self.path) as db:
            async with db.execute(
                "SELECT hostname, port, discover_count, last_discovered_at "
                "FROM discovered_instances ORDER BY hostname, port"
            ) as cursor:
                rows = await cursor.fetchall()
        return [
            DiscoveredInstance(hostname=r[0], port=r[1], discover_count=r[2], last_discovered_at=r[3])
            for r in rows
        ]

    async def count(self) -> int:
        """Number of distinct instances seen so far (0 if the table is missing)."""
        try:
            async with aiosqlite.connect(self.path) as db:
                async with db.execute("SELECT COUNT(*) FROM discovered_instances") as cursor:
                    row = await cursor.fetchone()
                    return row[0] if row else 0
        except Exception as e:
            log.warning(f"Could not count discovered instances (new DB?): {e}")
            return 0
