from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from scrobblefm.fetch.errors import ConfigError, PersistenceError, RecordsNotFoundError
from scrobblefm.fetch.lastfm_client import fetch_profile, make_session
from scrobblefm.fetch.lastfm_fetcher import fetch_recent_tracks
from scrobblefm.models.scrobbles import SavedRecordSet
from scrobblefm.stats.listening_stats import ListeningStats, compute_stats
from scrobblefm.store.base import ScrobbleStore, store_lock
from scrobblefm.store.factory import find_existing_store, get_store, store_config_from
from scrobblefm.utils.env_loader import Config
from scrobblefm.utils.timestamps import current_unix_timestamp, start_of_local_day

# seconds added to the newest saved scrobble so it is not fetched again
BOUNDARY_EPSILON = 9


@dataclass(frozen=True)
class FetchResult:
    username: str
    fetched: int
    total: int
    expected: int
    current_day: bool = False
    path: Optional[Path] = None

    @property
    def drift(self) -> bool:
        """Saved total disagrees with Last.fm's play count. Advisory only."""
        return self.fetched > 0 and not self.current_day and self.total != self.expected


def resolve_min_timestamp(saved: SavedRecordSet, from_ts=0, new_file=False, current_day=False, now=None) -> int:
    if current_day:
        return start_of_local_day(now)
    from_ts = from_ts or 0
    if not new_file and saved is not None and not saved.is_empty():
        return max(from_ts, saved.most_recent().timestamp_utc + BOUNDARY_EPSILON)
    return from_ts


def load_saved(store: ScrobbleStore) -> SavedRecordSet:
    """Saved records for ``store``; missing or unreadable data counts as empty."""
    try:
        return store.load()
    except RecordsNotFoundError:
        print(f"📄 Existing file for `{store.identity}` not found. Creating new file...")
    except PersistenceError as exc:
        print(f"⚠️ {exc}. Starting again from an empty file...")
    return SavedRecordSet()


def run_fetch(
    config: Config,
    username=None,
    page=None,
    limit=None,
    from_ts=None,
    to_ts=None,
    new_file=False,
    current_day=False,
    session=None,
    show_progress=True,
) -> FetchResult:
    username = username or config.username
    if not username:
        raise ConfigError("No username given and LASTFM_USER is not set")

    own_session = session is None
    if own_session:
        session = make_session()

    try:
        print(f"📡 Fetching user profile `{username}`...")
        profile = fetch_profile(username, config.api_key, session=session, timeout=config.request_timeout)
        print(f"👤 Username: {profile.name}")
        print(f"🎧 Number of scrobbles: {profile.play_count_formatted}")

        store = get_store(profile.name, config.storage_format, store_config_from(config))
        with store_lock(store):
            saved = SavedRecordSet() if new_file else load_saved(store)
            min_ts = resolve_min_timestamp(saved, from_ts, new_file=new_file, current_day=current_day)
            max_ts = to_ts if to_ts is not None else current_unix_timestamp()

            new_tracks = fetch_recent_tracks(
                profile,
                config.api_key,
                page=page,
                limit=limit,
                from_ts=min_ts,
                to_ts=max_ts,
                session=session,
                max_workers=config.max_workers,
                max_retries=config.max_retries,
                timeout=config.request_timeout,
                deadline=config.deadline,
                show_progress=show_progress,
            )

            if not new_tracks:
                print("✅ No new tracks were retrieved from Last.fm")
                return FetchResult(profile.name, 0, len(saved), profile.play_count, current_day, store.path)

            if saved.is_empty():
                print(f"💾 Saving {len(new_tracks):,} tracks to {store.path}...")
                total = store.save(SavedRecordSet.from_entries(new_tracks))
            else:
                print(f"💾 Saving {len(new_tracks):,} new tracks to existing file...")
                total = store.append(saved, new_tracks)
    finally:
        if own_session:
            session.close()

    return FetchResult(profile.name, len(new_tracks), total, profile.play_count, current_day, store.path)


def run_stats(config: Config, username=None) -> Optional[ListeningStats]:
    """Stats for whichever store holds ``username``'s scrobbles, or None if none does."""
    username = username or config.username
    if not username:
        raise ConfigError("No username given and LASTFM_USER is not set")

    store = find_existing_store(username, store_config_from(config))
    if store is None:
        return None
    print(f"🧮 Crunching stats for {username}...")
    return compute_stats(store.load())
