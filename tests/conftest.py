import threading
from unittest.mock import Mock
from urllib.parse import parse_qs, urlparse

import pytest
import requests

from scrobblefm.models.profile import RemoteProfile


def track_json(name, artist="Artist", album="Album", uts=None, loved="0", now_playing=False):
    track = {
        "name": name,
        "artist": {"name": artist, "url": "", "mbid": ""},
        "album": {"#text": album, "mbid": ""},
        "loved": loved,
        "mbid": "",
        "streamable": "0",
    }
    if now_playing:
        track["@attr"] = {"nowplaying": "true"}
    else:
        track["date"] = {"uts": str(uts), "#text": ""}
    return track


def recent_tracks_json(tracks, page=1, per_page=50, total=None, total_pages=1, user="demo"):
    return {
        "recenttracks": {
            "@attr": {
                "page": str(page),
                "perPage": str(per_page),
                "user": user,
                "total": str(len(tracks) if total is None else total),
                "totalPages": str(total_pages),
            },
            "track": tracks,
        }
    }


def profile_json(name="demo", playcount="3"):
    return {
        "user": {
            "name": name,
            "playcount": playcount,
            "playlists": "0",
            "country": "None",
            "url": f"https://www.last.fm/user/{name}",
            "realname": "",
            "subscriber": "0",
            "type": "user",
            "registered": {"unixtime": "1262304000", "#text": 1262304000},
        }
    }


def fake_response(payload, status=200):
    response = Mock()
    response.status_code = status
    response.ok = status < 400
    response.reason = "OK" if status < 400 else "Error"
    response.json.return_value = payload
    return response


class FakeLastFm:
    """Stands in for a requests.Session talking to ws.audioscrobbler.com.

    ``pages`` maps page number to the track objects on that page;
    ``failures`` maps page number to how many times it should fail first.
    """

    def __init__(self, pages=None, playcount="3", username="demo", total=None, now_playing=None, failures=None):
        self.pages = pages or {}
        self.playcount = playcount
        self.username = username
        self.total = total
        self.now_playing = now_playing
        self.failures = dict(failures or {})
        self.calls = []
        self._lock = threading.Lock()

    @property
    def total_pages(self):
        return max(self.pages) if self.pages else 0

    def recent_track_calls(self):
        return [parse_qs(urlparse(url).query) for url in self.calls if "getRecentTracks" in url]

    def get(self, url, timeout=None):
        query = parse_qs(urlparse(url).query)
        with self._lock:
            self.calls.append(url)

        if query["method"][0] == "user.getInfo":
            return fake_response(profile_json(self.username, self.playcount))

        page = int(query["page"][0])
        with self._lock:
            if self.failures.get(page):
                self.failures[page] -= 1
                raise requests.ConnectionError(f"connection reset on page {page}")

        tracks = list(self.pages.get(page, []))
        if self.now_playing is not None:
            tracks.insert(0, self.now_playing)
        total = self.total if self.total is not None else sum(len(t) for t in self.pages.values())
        return fake_response(
            recent_tracks_json(
                tracks,
                page=page,
                per_page=int(query["limit"][0]),
                total=total,
                total_pages=self.total_pages,
                user=self.username,
            )
        )

    def close(self):
        pass


@pytest.fixture
def profile():
    return RemoteProfile(name="demo", playcount="3", registered="1262304000")
