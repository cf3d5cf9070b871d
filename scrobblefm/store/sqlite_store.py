import sqlite3
from contextlib import closing
from typing import Iterable

from scrobblefm.fetch.errors import PersistenceError, RecordsNotFoundError
from scrobblefm.models.scrobbles import RawEntry, SavedRecord, SavedRecordSet
from scrobblefm.store.base import ScrobbleStore

CURRENT_DB_VERSION = 1

INSERT_SCROBBLE = """
    INSERT OR IGNORE INTO scrobbles (track, artist, album, loved, timestamp_utc, datetime_local)
    VALUES (?, ?, ?, ?, ?, ?)
"""


def upgrade_database_if_needed(db: sqlite3.Connection, existing_version: int):
    if existing_version < CURRENT_DB_VERSION:
        if existing_version <= 0:
            print("🛠️ Creating scrobbles table...")
            db.execute(f"PRAGMA user_version={CURRENT_DB_VERSION}")
            db.executescript("""
                CREATE TABLE IF NOT EXISTS scrobbles (
                    id INTEGER PRIMARY KEY,
                    track TEXT NOT NULL,
                    artist TEXT NOT NULL,
                    album TEXT NOT NULL,
                    loved BOOLEAN NOT NULL,
                    timestamp_utc INTEGER NOT NULL,
                    datetime_local TEXT,
                    UNIQUE (track, artist, album, loved, timestamp_utc)
                );
                CREATE INDEX IF NOT EXISTS idx_scrobbles_timestamp_utc ON scrobbles(timestamp_utc);
            """)
            db.commit()


def _row_values(record: SavedRecord):
    return (
        record.title,
        record.artist,
        record.album,
        record.loved,
        record.timestamp_utc,
        record.datetime_local.isoformat(),
    )


class SqliteScrobbleStore(ScrobbleStore):
    """One ``<username>.db`` file with a single ``scrobbles`` table."""

    extension = "db"

    def _connect(self) -> sqlite3.Connection:
        self.ensure_dir()
        try:
            db = sqlite3.connect(self.path, timeout=self.config.sqlite_busy_timeout)
            db.row_factory = sqlite3.Row
            db.execute(f"PRAGMA journal_mode={self.config.sqlite_journal_mode}")
            existing_version = db.execute("PRAGMA user_version").fetchone()[0]
            upgrade_database_if_needed(db, existing_version)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not open {self.path}: {exc}") from exc
        return db

    def load(self) -> SavedRecordSet:
        if not self.exists():
            raise RecordsNotFoundError(f"No saved scrobbles at {self.path}")

        print(f"📂 Loading saved scrobbles from {self.path}...")
        try:
            with closing(self._connect()) as db:
                rows = db.execute("""
                    SELECT track, artist, album, loved, timestamp_utc, datetime_local
                    FROM scrobbles
                    ORDER BY timestamp_utc DESC, id ASC
                """).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not read {self.path}: {exc}") from exc

        records = [
            SavedRecord.from_dict({
                "title": row["track"],
                "artist": row["artist"],
                "album": row["album"],
                "loved": bool(row["loved"]),
                "timestamp_utc": row["timestamp_utc"],
                "datetime_local": row["datetime_local"],
            })
            for row in rows
        ]
        saved = SavedRecordSet(records)
        print(f"🔁 {len(saved):,} saved scrobbles retrieved from database")
        return saved

    def save(self, record_set: SavedRecordSet) -> int:
        try:
            with closing(self._connect()) as db:
                with db:
                    db.execute("DELETE FROM scrobbles")
                    db.executemany(INSERT_SCROBBLE, [_row_values(r) for r in record_set])
                return db.execute("SELECT COUNT(*) FROM scrobbles").fetchone()[0]
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not write {self.path}: {exc}") from exc

    def append(self, record_set: SavedRecordSet, entries: Iterable[RawEntry]) -> int:
        """Insert only the new batch; the table's unique key drops repeats."""
        entries = list(entries)
        batch = SavedRecordSet.from_entries(entries)
        record_set.append_batch(entries)
        try:
            with closing(self._connect()) as db:
                with db:
                    db.executemany(INSERT_SCROBBLE, [_row_values(r) for r in batch])
                return db.execute("SELECT COUNT(*) FROM scrobbles").fetchone()[0]
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not write {self.path}: {exc}") from exc

    def delete(self) -> bool:
        removed = super().delete()
        for suffix in ("-wal", "-shm"):
            self.path.with_name(self.path.name + suffix).unlink(missing_ok=True)
        return removed
