import json

from scrobblefm.fetch.errors import PersistenceError, RecordsNotFoundError
from scrobblefm.models.scrobbles import SavedRecord, SavedRecordSet
from scrobblefm.store.base import ScrobbleStore


class JsonScrobbleStore(ScrobbleStore):
    """Saved scrobbles as one JSON array, newest first."""

    extension = "json"

    def load(self) -> SavedRecordSet:
        if not self.exists():
            raise RecordsNotFoundError(f"No saved scrobbles at {self.path}")

        print(f"📂 Loading saved scrobbles from {self.path}...")
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                rows = json.load(f)
            if not isinstance(rows, list):
                raise PersistenceError(f"{self.path} does not hold a list of scrobbles")
            records = [SavedRecord.from_dict(row) for row in rows]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise PersistenceError(f"Could not read {self.path}: {exc}") from exc

        saved = SavedRecordSet(records)
        print(f"🔁 {len(saved):,} saved scrobbles retrieved from file")
        return saved

    def save(self, record_set: SavedRecordSet) -> int:
        self.ensure_dir()
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump([r.to_dict() for r in record_set], f, indent=2, ensure_ascii=False)
        return len(record_set)
