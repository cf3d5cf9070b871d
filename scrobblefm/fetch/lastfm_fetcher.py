from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import List, Optional

from tqdm import tqdm

from scrobblefm.fetch.errors import DecodeError, FetchTimeoutError, TransportError
from scrobblefm.fetch.lastfm_client import (
    DEFAULT_TIMEOUT,
    build_request_url,
    fetch_page,
    fetch_page_metadata,
    make_session,
)
from scrobblefm.models.profile import RemoteProfile
from scrobblefm.models.scrobbles import RawEntry
from scrobblefm.utils.timestamps import current_unix_timestamp

# Last.fm accepts at most this many tracks per page
MAX_PAGE_SIZE = 1000
PARALLEL_REQUESTS = 12
DEFAULT_MAX_RETRIES = 5
DEFAULT_BACKOFF = 0.5
MAX_BACKOFF = 30.0


def normalize_paging(page=None, limit=None):
    """Clamp page/limit: page defaults to 1, limit to MAX_PAGE_SIZE."""
    if page is None or page <= 0:
        page = 1
    if limit is None or limit <= 0:
        limit = MAX_PAGE_SIZE
    return page, min(limit, MAX_PAGE_SIZE)


def build_page_urls(profile: RemoteProfile, api_key, first_page, total_pages, limit, from_ts, to_ts) -> List[str]:
    return [
        build_request_url(profile.name, api_key, p, limit, from_ts, to_ts)
        for p in range(first_page, total_pages + 1)
    ]


def fetch_page_with_retry(
    url,
    session=None,
    max_retries=DEFAULT_MAX_RETRIES,
    backoff=DEFAULT_BACKOFF,
    timeout=DEFAULT_TIMEOUT,
    deadline_at: Optional[float] = None,
    sleep=time.sleep,
    cancelled: Optional[threading.Event] = None,
) -> List[RawEntry]:
    """Fetch one page, retrying transport and decode failures.

    Waits ``backoff * 2**attempt`` seconds (capped at MAX_BACKOFF) between
    attempts and re-raises the last failure after ``max_retries`` retries.
    Service errors are raised straight away. ``deadline_at`` is a
    ``time.monotonic()`` value past which no further retry is scheduled.
    Once ``cancelled`` is set the last failure is raised instead of retrying.
    """
    attempt = 0
    while True:
        try:
            return fetch_page(url, session=session, timeout=timeout)
        except (TransportError, DecodeError) as exc:
            if attempt >= max_retries or (cancelled is not None and cancelled.is_set()):
                raise
            delay = min(backoff * 2 ** attempt, MAX_BACKOFF)
            if deadline_at is not None and time.monotonic() + delay >= deadline_at:
                raise FetchTimeoutError(f"Deadline reached while retrying a page: {exc}") from exc
            attempt += 1
            sleep(delay)
            if cancelled is not None and cancelled.is_set():
                raise


def drop_now_playing(tracks: List[RawEntry]) -> List[RawEntry]:
    return [t for t in tracks if not t.transient]


def fetch_pages(
    urls,
    session=None,
    max_workers=PARALLEL_REQUESTS,
    max_retries=DEFAULT_MAX_RETRIES,
    backoff=DEFAULT_BACKOFF,
    timeout=DEFAULT_TIMEOUT,
    deadline: Optional[float] = None,
    show_progress=True,
) -> List[List[RawEntry]]:
    """Fetch every url with at most ``max_workers`` requests in flight.

    Pages are returned in completion order. When ``deadline`` seconds pass
    before all pages are in, the pending fetches are abandoned and
    FetchTimeoutError is raised.
    """
    if not urls:
        return []

    deadline_at = time.monotonic() + deadline if deadline else None
    cancelled = threading.Event()
    executor = ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(urls))))
    futures = [
        executor.submit(
            fetch_page_with_retry, url, session, max_retries, backoff, timeout, deadline_at, cancelled=cancelled
        )
        for url in urls
    ]

    pages = []
    try:
        with tqdm(total=len(urls), unit="page", desc="Fetching pages", disable=not show_progress) as bar:
            for future in as_completed(futures, timeout=deadline):
                pages.append(future.result())
                bar.update(1)
    except FuturesTimeoutError as exc:
        raise FetchTimeoutError(
            f"Gave up after {deadline}s with {len(urls) - len(pages)} of {len(urls)} pages outstanding"
        ) from exc
    finally:
        # pages still retrying stop at their next attempt
        cancelled.set()
        executor.shutdown(wait=False, cancel_futures=True)

    return pages


def fetch_recent_tracks(
    profile: RemoteProfile,
    api_key: str,
    page=1,
    limit=MAX_PAGE_SIZE,
    from_ts=0,
    to_ts=None,
    *,
    session=None,
    max_workers=PARALLEL_REQUESTS,
    max_retries=DEFAULT_MAX_RETRIES,
    backoff=DEFAULT_BACKOFF,
    timeout=DEFAULT_TIMEOUT,
    deadline: Optional[float] = None,
    show_progress=True,
) -> List[RawEntry]:
    """Fetch every scrobble between ``from_ts`` and ``to_ts``, newest first.

    One metadata request sizes the job, then pages ``page..totalPages`` are
    fetched concurrently. The "now playing" pseudo-track is never returned.
    """
    page, limit = normalize_paging(page, limit)
    if to_ts is None:
        to_ts = current_unix_timestamp()

    own_session = session is None
    if own_session:
        session = make_session()

    try:
        print("📡 Fetching metadata...")
        metadata = fetch_page_metadata(profile, api_key, page, limit, from_ts, to_ts, session=session, timeout=timeout)

        if metadata.single_page and metadata.single_track:
            print("🎵 Fetching one new track...")
            urls = [build_request_url(profile.name, api_key, page, limit, from_ts, to_ts)]
        else:
            urls = build_page_urls(profile, api_key, page, metadata.total_pages, limit, from_ts, to_ts)
            if metadata.single_page:
                print(f"🎵 Fetching {metadata.total:,} tracks from one page...")
            elif urls:
                print(f"🎵 Fetching {metadata.total:,} tracks from {len(urls):,} pages...")

        pages = fetch_pages(
            urls,
            session=session,
            max_workers=max_workers,
            max_retries=max_retries,
            backoff=backoff,
            timeout=timeout,
            deadline=deadline,
            show_progress=show_progress,
        )
    finally:
        if own_session:
            session.close()

    tracks = [track for entries in pages for track in entries]
    tracks = drop_now_playing(tracks)
    tracks.sort(key=lambda t: t.timestamp, reverse=True)
    return tracks
