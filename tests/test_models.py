"""
Tests for the record model: parsing Last.fm rows and merging saved scrobbles.
"""

from datetime import datetime, timezone

import pytest

from conftest import track_json
from scrobblefm.fetch.errors import DecodeError
from scrobblefm.models.profile import RemoteProfile
from scrobblefm.models.scrobbles import PageMetadata, RawEntry, SavedRecord, SavedRecordSet, to_saved_record


def entry(name, uts, artist="Artist", album="Album", loved=False):
    return RawEntry(name=name, artist=artist, album=album, loved=loved, timestamp=uts)


class TestRawEntry:
    def test_from_extended_json(self):
        e = RawEntry.from_json(track_json("Song", "Band", "Record", uts=1600000000, loved="1"))

        assert e.name == "Song"
        assert e.artist == "Band"
        assert e.album == "Record"
        assert e.loved is True
        assert e.now_playing is False
        assert e.timestamp == 1600000000

    def test_from_plain_json_reads_artist_text(self):
        raw = track_json("Song", uts=1)
        raw["artist"] = {"#text": "Plain Artist", "mbid": ""}

        assert RawEntry.from_json(raw).artist == "Plain Artist"

    def test_now_playing_has_no_timestamp(self):
        e = RawEntry.from_json(track_json("Live", now_playing=True))

        assert e.now_playing is True
        assert e.timestamp is None
        assert e.transient

    def test_equality_uses_combined_title_only(self):
        """Same track/artist/album at different times compare equal"""
        a = entry("Song", 100)
        b = entry("Song", 200, loved=True)

        assert a == b
        assert hash(a) == hash(b)
        assert a != entry("Song", 100, album="Other")
        assert a.combined_title == "Song - Artist - Album"

    def test_non_object_track_is_decode_error(self):
        with pytest.raises(DecodeError):
            RawEntry.from_json("not a track")

    def test_bad_timestamp_is_decode_error(self):
        raw = track_json("Song", uts=1)
        raw["date"]["uts"] = "yesterday"

        with pytest.raises(DecodeError):
            RawEntry.from_json(raw)


class TestSavedRecord:
    def test_to_saved_record_converts_timestamp(self):
        record = to_saved_record(entry("Song", 1600000000, loved=True))

        assert record.title == "Song"
        assert record.loved is True
        assert record.timestamp_utc == 1600000000
        assert record.datetime_local.tzinfo is not None
        assert record.datetime_local.timestamp() == 1600000000

    def test_to_saved_record_rejects_now_playing(self):
        with pytest.raises(ValueError):
            to_saved_record(RawEntry(name="Live", artist="A", album="B", now_playing=True))

    def test_helpers(self):
        record = SavedRecord(
            title="Song",
            artist="Band",
            album="Record",
            loved=False,
            datetime_local=datetime(2021, 3, 14, 15, 9, tzinfo=timezone.utc),
            timestamp_utc=1615734540,
        )

        assert record.month_year == "March-2021"
        assert record.song_artist == "Song - Band"
        assert record.artist_album == "Band - Record"
        assert record.date.isoformat() == "2021-03-14"

    def test_dict_round_trip(self):
        record = to_saved_record(entry("Song", 1600000000))

        assert SavedRecord.from_dict(record.to_dict()) == record

    def test_from_dict_without_local_time_derives_it(self):
        record = SavedRecord.from_dict({"title": "S", "artist": "A", "album": "", "loved": "False", "timestamp_utc": "10"})

        assert record.loved is False
        assert record.datetime_local.timestamp() == 10


class TestSavedRecordSet:
    def test_overlapping_batches_are_merged_without_duplicates(self):
        """Two page windows sharing a boundary scrobble"""
        first = [entry(f"Song {i}", 1000 + i) for i in range(5)]
        second = [entry(f"Song {i}", 1000 + i) for i in range(4, 9)]

        saved = SavedRecordSet().append_batch(first).append_batch(second)

        stamps = [r.timestamp_utc for r in saved]
        assert len(saved) == 9
        assert stamps == sorted(stamps, reverse=True)
        assert all(a > b for a, b in zip(stamps, stamps[1:]))
        assert len({hash(r) for r in saved}) == len(saved)

    def test_same_track_at_different_times_is_kept(self):
        saved = SavedRecordSet.from_entries([entry("Song", 100), entry("Song", 200)])

        assert len(saved) == 2

    def test_empty_batch_is_a_no_op(self):
        saved = SavedRecordSet.from_entries([entry("A", 3), entry("B", 2), entry("C", 1)])
        before = saved.records

        saved.append_batch([])

        assert saved.records == before

    def test_now_playing_entries_are_never_saved(self):
        saved = SavedRecordSet.from_entries([
            entry("A", 5),
            RawEntry(name="Live", artist="A", album="B", now_playing=True),
        ])

        assert [r.title for r in saved] == ["A"]

    def test_most_recent_and_oldest(self):
        saved = SavedRecordSet.from_entries([entry("Old", 1), entry("New", 9), entry("Mid", 5)])

        assert saved.most_recent().title == "New"
        assert saved.oldest().title == "Old"
        assert SavedRecordSet().most_recent() is None

    def test_constructor_sorts_and_dedupes(self):
        records = [to_saved_record(entry("A", 1)), to_saved_record(entry("B", 2)), to_saved_record(entry("A", 1))]

        saved = SavedRecordSet(records)

        assert [r.title for r in saved] == ["B", "A"]


class TestMetadataAndProfile:
    def test_page_metadata_parses_strings(self):
        meta = PageMetadata.from_attr({"page": "1", "perPage": "50", "total": "1", "totalPages": "1"})

        assert meta.single_page and meta.single_track and meta.last_page
        assert meta.per_page == 50

    def test_page_metadata_unparsable_values_are_zero(self):
        meta = PageMetadata.from_attr({"page": "x", "total": None})

        assert meta.page == 0
        assert meta.total == 0
        assert meta.total_pages == 0

    def test_profile_play_count(self):
        profile = RemoteProfile(name="demo", playcount="12345", registered="1262304000")

        assert profile.play_count == 12345
        assert profile.play_count_formatted == "12,345"
        assert profile.registered_timestamp == 1262304000

    def test_profile_unparsable_numbers_are_zero(self):
        profile = RemoteProfile(name="demo", playcount="lots", registered="", playlists=None)

        assert profile.play_count == 0
        assert profile.registered_timestamp == 0
        assert profile.playlist_count == 0
