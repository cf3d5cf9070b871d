import pandas as pd

from scrobblefm.fetch.errors import PersistenceError, RecordsNotFoundError
from scrobblefm.models.scrobbles import SavedRecord, SavedRecordSet
from scrobblefm.store.base import ScrobbleStore

COLUMNS = ["title", "artist", "album", "loved", "datetime_local", "timestamp_utc"]
TEXT_COLUMNS = {"title": str, "artist": str, "album": str, "datetime_local": str}


class CsvScrobbleStore(ScrobbleStore):
    extension = "csv"

    def load(self) -> SavedRecordSet:
        if not self.exists():
            raise RecordsNotFoundError(f"No saved scrobbles at {self.path}")

        print(f"📂 Loading saved scrobbles from {self.path}...")
        try:
            # keep_default_na=False so albums like "NA" or "" stay strings
            df = pd.read_csv(self.path, dtype=TEXT_COLUMNS, keep_default_na=False)
            missing = set(COLUMNS) - set(df.columns)
            if missing:
                raise PersistenceError(f"{self.path} is missing columns: {', '.join(sorted(missing))}")
            records = [SavedRecord.from_dict(row) for row in df[COLUMNS].to_dict("records")]
        except (ValueError, KeyError, pd.errors.ParserError) as exc:
            raise PersistenceError(f"Could not read {self.path}: {exc}") from exc

        saved = SavedRecordSet(records)
        print(f"🔁 {len(saved):,} saved scrobbles retrieved from file")
        return saved

    def save(self, record_set: SavedRecordSet) -> int:
        self.ensure_dir()
        df = pd.DataFrame([r.to_dict() for r in record_set], columns=COLUMNS)
        df.to_csv(self.path, index=False)
        return len(record_set)
