from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterable, Iterator, List, Optional

from scrobblefm.fetch.errors import DecodeError
from scrobblefm.utils.timestamps import to_local_datetime


def as_int(raw) -> int:
    """Last.fm sends numbers as strings; anything unparsable counts as 0."""
    try:
        return int(raw)
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class PageMetadata:
    """The ``@attr`` envelope of a ``user.getRecentTracks`` page."""

    page: int
    per_page: int
    total: int
    total_pages: int

    @property
    def single_page(self) -> bool:
        return self.total_pages == 1

    @property
    def single_track(self) -> bool:
        return self.total == 1

    @property
    def last_page(self) -> bool:
        return self.page == self.total_pages

    @classmethod
    def from_attr(cls, attr) -> "PageMetadata":
        return cls(
            page=as_int(attr.get("page")),
            per_page=as_int(attr.get("perPage")),
            total=as_int(attr.get("total")),
            total_pages=as_int(attr.get("totalPages")),
        )


@dataclass(frozen=True, eq=False)
class RawEntry:
    """One row of ``recenttracks.track`` as Last.fm returns it.

    Two entries are equal when their combined titles match, whatever their
    timestamps; the API repeats logically identical rows with cosmetic
    differences.
    """

    name: str
    artist: str
    album: str
    loved: bool = False
    now_playing: bool = False
    timestamp: Optional[int] = None
    mbid: str = ""

    @property
    def combined_title(self) -> str:
        return f"{self.name} - {self.artist} - {self.album}"

    @property
    def transient(self) -> bool:
        return self.now_playing or self.timestamp is None

    def __eq__(self, other):
        if not isinstance(other, RawEntry):
            return NotImplemented
        return self.combined_title == other.combined_title

    def __hash__(self):
        return hash(self.combined_title)

    @classmethod
    def from_json(cls, track) -> "RawEntry":
        if not isinstance(track, dict):
            raise DecodeError(f"Expected a track object, got {type(track).__name__}")

        artist = track.get("artist") or {}
        album = track.get("album") or {}
        attr = track.get("@attr") or {}
        played = track.get("date")

        # extended=1 puts the artist under "name", plain responses under "#text"
        if isinstance(artist, dict):
            artist_name = artist.get("name") or artist.get("#text") or ""
        else:
            artist_name = str(artist)
        album_name = album.get("#text", "") if isinstance(album, dict) else str(album)

        timestamp = None
        if isinstance(played, dict) and played.get("uts") not in (None, ""):
            try:
                timestamp = int(played["uts"])
            except (TypeError, ValueError) as exc:
                raise DecodeError(f"Bad scrobble timestamp {played['uts']!r}") from exc

        return cls(
            name=track.get("name", ""),
            artist=artist_name,
            album=album_name,
            loved=str(track.get("loved", "0")) == "1",
            now_playing=str(attr.get("nowplaying", "")).lower() == "true",
            timestamp=timestamp,
            mbid=track.get("mbid") or "",
        )


@dataclass(frozen=True)
class SavedRecord:
    """A scrobble as it is written to disk."""

    title: str
    artist: str
    album: str
    loved: bool
    datetime_local: datetime
    timestamp_utc: int

    @property
    def date(self) -> date:
        return self.datetime_local.date()

    @property
    def time(self) -> time:
        return self.datetime_local.time()

    @property
    def month_year(self) -> str:
        return self.datetime_local.strftime("%B-%Y")

    @property
    def song_artist(self) -> str:
        return f"{self.title} - {self.artist}"

    @property
    def artist_album(self) -> str:
        return f"{self.artist} - {self.album}"

    @property
    def combined_title(self) -> str:
        return f"{self.title} - {self.artist} - {self.album}"

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "artist": self.artist,
            "album": self.album,
            "loved": self.loved,
            "datetime_local": self.datetime_local.isoformat(),
            "timestamp_utc": self.timestamp_utc,
        }

    @classmethod
    def from_dict(cls, row) -> "SavedRecord":
        timestamp_utc = int(row["timestamp_utc"])
        raw_local = row.get("datetime_local")
        if raw_local:
            datetime_local = datetime.fromisoformat(str(raw_local))
        else:
            datetime_local = to_local_datetime(timestamp_utc)
        loved = row.get("loved", False)
        if isinstance(loved, str):
            loved = loved.strip().lower() in ("true", "1")
        return cls(
            title=str(row.get("title", "")),
            artist=str(row.get("artist", "")),
            album=str(row.get("album", "")),
            loved=bool(loved),
            datetime_local=datetime_local,
            timestamp_utc=timestamp_utc,
        )


def to_saved_record(entry: RawEntry) -> SavedRecord:
    if entry.timestamp is None:
        raise ValueError(f"'{entry.combined_title}' has no timestamp and cannot be saved")
    return SavedRecord(
        title=entry.name,
        artist=entry.artist,
        album=entry.album,
        loved=entry.loved,
        datetime_local=to_local_datetime(entry.timestamp),
        timestamp_utc=entry.timestamp,
    )


class SavedRecordSet:
    """Saved scrobbles, newest first, without exact duplicates.

    The only way to add records is :meth:`append_batch` (or the constructor,
    which goes through the same merge), so the ordering and uniqueness hold
    after every change.
    """

    def __init__(self, records: Iterable[SavedRecord] = ()):
        self._records: List[SavedRecord] = []
        self._merge(records)

    @classmethod
    def from_entries(cls, entries: Iterable[RawEntry]) -> "SavedRecordSet":
        return cls().append_batch(entries)

    def append_batch(self, entries: Iterable[RawEntry]) -> "SavedRecordSet":
        new_records = [to_saved_record(e) for e in entries if not e.transient]
        if new_records:
            self._merge(new_records)
        return self

    def _merge(self, records):
        combined = sorted(
            [*self._records, *records],
            key=lambda r: r.timestamp_utc,
            reverse=True,
        )
        seen = set()
        merged = []
        for record in combined:
            if record in seen:
                continue
            seen.add(record)
            merged.append(record)
        self._records = merged

    @property
    def records(self):
        return tuple(self._records)

    def most_recent(self) -> Optional[SavedRecord]:
        return self._records[0] if self._records else None

    def oldest(self) -> Optional[SavedRecord]:
        return self._records[-1] if self._records else None

    def is_empty(self) -> bool:
        return not self._records

    def __len__(self):
        return len(self._records)

    def __iter__(self) -> Iterator[SavedRecord]:
        return iter(self._records)

    def __getitem__(self, index):
        return self._records[index]

    def __eq__(self, other):
        if not isinstance(other, SavedRecordSet):
            return NotImplemented
        return self._records == other._records

    def __repr__(self):
        return f"SavedRecordSet({len(self._records)} records)"
