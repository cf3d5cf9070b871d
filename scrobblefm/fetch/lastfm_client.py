from __future__ import annotations

from typing import List, Optional

import requests

from scrobblefm.fetch.errors import DecodeError, TransportError, service_error_for
from scrobblefm.models.profile import RemoteProfile
from scrobblefm.models.scrobbles import PageMetadata, RawEntry

API_ROOT = "http://ws.audioscrobbler.com/2.0/"
USER_AGENT = "scrobblefm/0.1"
DEFAULT_TIMEOUT = 60.0

RECENT_TRACKS_URL = (
    API_ROOT
    + "?method={method}&user={user}&api_key={api_key}&format=json&extended=1"
    + "&page={page}&limit={limit}&from={from_ts}&to={to_ts}"
)
USER_INFO_URL = API_ROOT + "?method={method}&user={user}&api_key={api_key}&format=json"


def make_session(user_agent: str = USER_AGENT) -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": user_agent})
    return session


def build_request_url(username, api_key, page, limit, from_ts, to_ts) -> str:
    """URL of one ``user.getRecentTracks`` page. Every parameter is always present."""
    return RECENT_TRACKS_URL.format(
        method="user.getRecentTracks",
        user=username,
        api_key=api_key,
        page=int(page),
        limit=int(limit),
        from_ts=int(from_ts),
        to_ts=int(to_ts),
    )


def _get_json(url, session=None, timeout=DEFAULT_TIMEOUT):
    getter = session.get if session is not None else requests.get
    try:
        response = getter(url, timeout=timeout)
    except requests.RequestException as exc:
        raise TransportError(f"Network error calling Last.fm: {exc}") from exc

    try:
        data = response.json()
    except ValueError as exc:
        raise DecodeError(
            f"Failed to decode JSON from Last.fm (HTTP {response.status_code})"
        ) from exc

    # error bodies come back with 4xx/5xx statuses, so check them before the status
    if isinstance(data, dict) and "error" in data:
        raise service_error_for(data.get("error"), data.get("message"))
    if not isinstance(data, dict):
        raise DecodeError(f"Expected a JSON object from Last.fm, got {type(data).__name__}")
    if not response.ok:
        raise TransportError(f"HTTP error from Last.fm: {response.status_code} {response.reason}")
    return data


def _recent_tracks(data):
    try:
        return data["recenttracks"]
    except KeyError as exc:
        raise DecodeError("Unexpected response: key 'recenttracks' missing") from exc


def fetch_profile(username, api_key, session=None, timeout=DEFAULT_TIMEOUT) -> RemoteProfile:
    url = USER_INFO_URL.format(method="user.getInfo", user=username, api_key=api_key)
    return RemoteProfile.from_json(_get_json(url, session=session, timeout=timeout))


def fetch_page_metadata(
    profile: RemoteProfile,
    api_key: str,
    page: int,
    page_size: int,
    from_ts: int,
    to_ts: int,
    session=None,
    timeout=DEFAULT_TIMEOUT,
) -> PageMetadata:
    url = build_request_url(profile.name, api_key, page, page_size, from_ts, to_ts)
    recent = _recent_tracks(_get_json(url, session=session, timeout=timeout))
    attr = recent.get("@attr")
    if not isinstance(attr, dict):
        raise DecodeError("Unexpected response: key '@attr' missing from recenttracks")
    return PageMetadata.from_attr(attr)


def fetch_page(url: str, session: Optional[requests.Session] = None, timeout=DEFAULT_TIMEOUT) -> List[RawEntry]:
    """Fetch and decode one page of recent tracks. No retries here."""
    recent = _recent_tracks(_get_json(url, session=session, timeout=timeout))
    tracks = recent.get("track", [])
    # a page holding a single track comes back as an object, not a list
    if isinstance(tracks, dict):
        tracks = [tracks]
    if not isinstance(tracks, list):
        raise DecodeError("Unexpected response: 'track' is not a list")
    return [RawEntry.from_json(track) for track in tracks]
