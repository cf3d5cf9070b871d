from typing import Optional

from scrobblefm.store.base import ScrobbleStore, StoreConfig
from scrobblefm.store.csv_store import CsvScrobbleStore
from scrobblefm.store.json_store import JsonScrobbleStore
from scrobblefm.store.sqlite_store import SqliteScrobbleStore
from scrobblefm.utils.env_loader import Config, StorageFormat

STORES = {
    StorageFormat.CSV: CsvScrobbleStore,
    StorageFormat.JSON: JsonScrobbleStore,
    StorageFormat.SQLITE: SqliteScrobbleStore,
}


def store_config_from(config: Config) -> StoreConfig:
    return StoreConfig(data_dir=config.data_dir)


def get_store(identity: str, storage_format: StorageFormat, store_config: StoreConfig = None) -> ScrobbleStore:
    return STORES[StorageFormat(storage_format)](identity, store_config)


def find_existing_store(identity: str, store_config: StoreConfig = None) -> Optional[ScrobbleStore]:
    """First backend that already has data for ``identity`` (csv, then json, then sqlite)."""
    for storage_format in (StorageFormat.CSV, StorageFormat.JSON, StorageFormat.SQLITE):
        store = get_store(identity, storage_format, store_config)
        if store.exists():
            return store
    return None
