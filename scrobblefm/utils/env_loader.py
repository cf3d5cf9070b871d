from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from scrobblefm.fetch.errors import ConfigError

DEFAULT_DATA_DIR = "data"
DEFAULT_MAX_WORKERS = 12
DEFAULT_MAX_RETRIES = 5
DEFAULT_TIMEOUT = 60.0


class StorageFormat(str, Enum):
    CSV = "csv"
    JSON = "json"
    SQLITE = "sqlite"

    @property
    def extension(self) -> str:
        return "db" if self is StorageFormat.SQLITE else self.value

    @classmethod
    def parse(cls, raw: Optional[str]) -> "StorageFormat":
        if not raw:
            return cls.CSV
        value = raw.strip().lower()
        # accept the file extension as an alias
        if value == "db":
            value = "sqlite"
        try:
            return cls(value)
        except ValueError:
            raise ConfigError(f"Unknown storage format '{raw}' (expected csv, json or sqlite)") from None


@dataclass(frozen=True)
class Config:
    api_key: str
    username: str
    storage_format: StorageFormat = StorageFormat.CSV
    data_dir: Path = Path(DEFAULT_DATA_DIR)
    max_workers: int = DEFAULT_MAX_WORKERS
    max_retries: int = DEFAULT_MAX_RETRIES
    request_timeout: float = DEFAULT_TIMEOUT
    deadline: Optional[float] = None


def load_env():
    load_dotenv()

    return {
        "LASTFM_API_KEY": os.getenv("LASTFM_API_KEY"),
        "LASTFM_USER": os.getenv("LASTFM_USER"),
        "LASTFM_STORAGE_FORMAT": os.getenv("LASTFM_STORAGE_FORMAT"),
        "LASTFM_DATA_DIR": os.getenv("LASTFM_DATA_DIR"),
        "LASTFM_MAX_WORKERS": os.getenv("LASTFM_MAX_WORKERS"),
        "LASTFM_MAX_RETRIES": os.getenv("LASTFM_MAX_RETRIES"),
        "LASTFM_TIMEOUT": os.getenv("LASTFM_TIMEOUT"),
        "LASTFM_DEADLINE": os.getenv("LASTFM_DEADLINE"),
    }


def _as_number(env, key, cast, default, allow_zero=False):
    raw = env.get(key)
    if raw in (None, ""):
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got '{raw}'") from None
    if value < 0 or (value == 0 and not allow_zero):
        raise ConfigError(f"{key} must be {'zero or more' if allow_zero else 'positive'}, got '{raw}'")
    return value


def load_config(env=None, require_username=True, require_api_key=True) -> Config:
    """Resolve the raw environment values into a :class:`Config`.

    ``env`` defaults to :func:`load_env`, so a ``.env`` file in the working
    directory is honoured. The username may be left out when the caller
    always passes one explicitly, and the API key when nothing is fetched.
    """
    env = load_env() if env is None else env

    api_key = (env.get("LASTFM_API_KEY") or "").strip()
    if require_api_key and not api_key:
        raise ConfigError("LASTFM_API_KEY is not set - add it to your .env file")

    username = (env.get("LASTFM_USER") or "").strip()
    if require_username and not username:
        raise ConfigError("LASTFM_USER is not set - add it to your .env file or pass a username")

    return Config(
        api_key=api_key,
        username=username,
        storage_format=StorageFormat.parse(env.get("LASTFM_STORAGE_FORMAT")),
        data_dir=Path(env.get("LASTFM_DATA_DIR") or DEFAULT_DATA_DIR),
        max_workers=_as_number(env, "LASTFM_MAX_WORKERS", int, DEFAULT_MAX_WORKERS),
        max_retries=_as_number(env, "LASTFM_MAX_RETRIES", int, DEFAULT_MAX_RETRIES, allow_zero=True),
        request_timeout=_as_number(env, "LASTFM_TIMEOUT", float, DEFAULT_TIMEOUT),
        deadline=_as_number(env, "LASTFM_DEADLINE", float, None),
    )
