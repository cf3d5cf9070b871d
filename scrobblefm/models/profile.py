from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from scrobblefm.fetch.errors import DecodeError
from scrobblefm.models.scrobbles import as_int


@dataclass(frozen=True)
class RemoteProfile:
    """Snapshot of a ``user.getInfo`` response, taken once per run."""

    name: str
    playcount: str
    registered: str
    playlists: Optional[str] = None
    country: Optional[str] = None
    url: Optional[str] = None
    realname: Optional[str] = None
    subscriber: Optional[str] = None
    user_type: Optional[str] = None

    @property
    def play_count(self) -> int:
        return as_int(self.playcount)

    @property
    def play_count_formatted(self) -> str:
        return f"{self.play_count:,}"

    @property
    def registered_timestamp(self) -> int:
        return as_int(self.registered)

    @property
    def playlist_count(self) -> int:
        return as_int(self.playlists)

    @classmethod
    def from_json(cls, data) -> "RemoteProfile":
        try:
            user = data["user"]
            registered = user.get("registered") or {}
            if isinstance(registered, dict):
                # newer responses carry "#text", older ones "unixtime"
                registered = registered.get("unixtime") or registered.get("#text") or "0"
            return cls(
                name=user["name"],
                playcount=str(user.get("playcount", "0")),
                registered=str(registered),
                playlists=user.get("playlists"),
                country=user.get("country"),
                url=user.get("url"),
                realname=user.get("realname"),
                subscriber=user.get("subscriber"),
                user_type=user.get("type"),
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise DecodeError(f"Unexpected user.getInfo response: {exc}") from exc
