from __future__ import annotations

import os
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from scrobblefm.fetch.errors import PersistenceError, StoreLockedError
from scrobblefm.models.scrobbles import RawEntry, SavedRecordSet


@dataclass(frozen=True)
class StoreConfig:
    """Where and how a store keeps its data. Passed in, never read from the environment."""

    data_dir: Path = Path("data")
    sqlite_busy_timeout: float = 30.0
    sqlite_journal_mode: str = "WAL"


class ScrobbleStore(ABC):
    """Load/append/save contract shared by every backend.

    ``identity`` is the Last.fm username; it names the backing file.
    """

    extension = ""

    def __init__(self, identity: str, config: StoreConfig = None):
        self.identity = identity
        self.config = config or StoreConfig()

    @property
    def path(self) -> Path:
        return Path(self.config.data_dir) / f"{self.identity}.{self.extension}"

    def exists(self) -> bool:
        return self.path.exists()

    @abstractmethod
    def load(self) -> SavedRecordSet:
        """Read the saved records; RecordsNotFoundError if there are none."""

    @abstractmethod
    def save(self, record_set: SavedRecordSet) -> int:
        """Overwrite the store with ``record_set``; returns the record count."""

    def append(self, record_set: SavedRecordSet, entries: Iterable[RawEntry]) -> int:
        """Merge ``entries`` into ``record_set`` and overwrite the store with the result."""
        record_set.append_batch(entries)
        return self.save(record_set)

    def delete(self) -> bool:
        if not self.exists():
            return False
        self.path.unlink()
        return True

    def ensure_dir(self):
        Path(self.config.data_dir).mkdir(parents=True, exist_ok=True)

    def __repr__(self):
        return f"{type(self).__name__}({str(self.path)!r})"


@contextmanager
def store_lock(store: ScrobbleStore):
    """Hold ``<username>.lock`` next to the store for the duration of a run."""
    store.ensure_dir()
    lock_path = Path(store.config.data_dir) / f"{store.identity}.lock"
    try:
        fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError:
        raise StoreLockedError(
            f"{lock_path} exists - another run for '{store.identity}' is in progress "
            "(delete the file if it was left behind by a crash)"
        ) from None
    except OSError as exc:
        raise PersistenceError(f"Could not create lock file {lock_path}: {exc}") from exc

    try:
        os.write(fd, str(os.getpid()).encode())
        os.close(fd)
        yield lock_path
    finally:
        lock_path.unlink(missing_ok=True)
