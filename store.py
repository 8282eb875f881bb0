"""
Provides the durable key/value storage the shell keeps per browser profile.

The store mirrors browser local storage: every key and value is a string,
writes land one key at a time with no multi-key atomicity, and sign-out
wipes the whole store rather than removing individual keys. Two backends
are offered: an in-memory store for tests and ephemeral clients, and a
JSON file per profile for the Socket.IO server.
"""
import json
import logging
import os
from typing import Optional, Protocol

from tracer import trace

# --- Key names ---
IS_LOGGED_IN = "isLoggedIn"
USER_NAME = "userName"
USER_EMAIL = "userEmail"
USER_FIRM = "userFirm"
USER_PRACTICE = "userPractice"
USER_PLAN = "userPlan"
NOTIFICATIONS = "notifications"
CITATIONS = "citations"
AUTO_SAVE = "autoSave"
LANGUAGE = "language"
DATE_FORMAT = "dateFormat"
THEME = "theme"
REMEMBER_ME = "rememberMe"

ALL_KEYS = [
    IS_LOGGED_IN,
    USER_NAME,
    USER_EMAIL,
    USER_FIRM,
    USER_PRACTICE,
    USER_PLAN,
    NOTIFICATIONS,
    CITATIONS,
    AUTO_SAVE,
    LANGUAGE,
    DATE_FORMAT,
    THEME,
    REMEMBER_ME,
]


class PersistenceUnavailable(Exception):
    """Raised when the backing medium of a store cannot be read or written."""


class PersistentStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def clear(self) -> None: ...


def encode_flag(value: bool) -> str:
    return "true" if value else "false"


def read_flag(value: Optional[str], default: bool) -> bool:
    """
    Decodes a stored boolean.

    Flags that default to on are only off when explicitly stored as "false";
    flags that default to off are only on when explicitly stored as "true".
    """
    if default:
        return value != "false"
    return value == "true"


def _require_string(key: str, value) -> None:
    if not isinstance(value, str):
        raise TypeError(f"Store values must be strings; got {type(value).__name__} for '{key}'.")


class MemoryStore:
    """A process-local store, used for tests and clients without a profile."""

    def __init__(self, initial: Optional[dict] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        _require_string(key, value)
        self._data[key] = value

    def clear(self) -> None:
        self._data.clear()

    def as_dict(self) -> dict:
        return dict(self._data)


class JsonFileStore:
    """
    Persists a profile's keys to a single JSON file.

    Several connections may open the same profile, so the file is the only
    source of truth: every read and every write starts by reloading it, and
    every change rewrites it in full. A missing file is an empty store; a
    corrupt file is logged and treated as empty so a bad write never locks a
    user out.
    """

    @trace
    def __init__(self, path: str):
        self.path = path
        self._data: dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        self._data = {}
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logging.warning(f"Ignoring corrupt store file '{self.path}': {e}")
            return
        except OSError as e:
            raise PersistenceUnavailable(f"Could not read store file '{self.path}': {e}") from e
        if isinstance(data, dict):
            self._data = {key: value for key, value in data.items() if isinstance(value, str)}

    def _flush(self) -> None:
        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2)
        except OSError as e:
            raise PersistenceUnavailable(f"Could not write store file '{self.path}': {e}") from e

    def get(self, key: str) -> Optional[str]:
        self._load()
        return self._data.get(key)

    @trace
    def set(self, key: str, value: str) -> None:
        _require_string(key, value)
        self._load()
        self._data[key] = value
        self._flush()

    @trace
    def clear(self) -> None:
        self._data = {}
        self._flush()


def profile_store_path(store_dir: str, profile_id: str) -> str:
    """Builds the JSON file path for a profile, keeping only filename-safe characters."""
    safe_id = "".join(c for c in profile_id if c.isalnum() or c in ["_", "-"]).strip() or "default"
    return os.path.join(store_dir, f"{safe_id[:63]}.json")
