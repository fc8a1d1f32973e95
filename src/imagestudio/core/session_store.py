"""Local history of generation sessions.

A *session* groups the series outcomes produced while an editor works on one
thing, plus the ids of the assets they kept.  :class:`SessionStore` keeps the
current (unsaved) session in memory and the list of saved sessions in a
key-value storage backend, under a single fixed key, as one serialised JSON
list.

Storage Backends
----------------
The store talks to storage only through the three-method
:class:`SessionStorage` port, so the host decides where history lives:

- :class:`JsonFileStorage`: a single JSON object on disk mapping keys to
  serialised values.
- :class:`MemoryStorage`: a process-local dict, for tests and embedding.

Persistence Rules
-----------------
- The saved list is read once, when the store is created.  A missing,
  unreadable or corrupt value yields an empty list and a logged warning.
- Every mutation of the saved list (save, delete) is written through to
  storage immediately.
- ``create_new_session`` and ``add_to_session`` only touch the in-memory
  current session; nothing is persisted until ``save_session``.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
import uuid
from pathlib import Path
from typing import Protocol

from pydantic import TypeAdapter, ValidationError

from imagestudio.core.config import StudioConfig
from imagestudio.core.models import GenerationSession, SeriesGenerationOutcome

logger = logging.getLogger(__name__)

STORAGE_KEY = "gemini-generation-sessions"

_SESSION_LIST = TypeAdapter(list[GenerationSession])


class SessionStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """In-memory :class:`SessionStorage`."""

    def __init__(self, items: dict[str, str] | None = None) -> None:
        self.items: dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> str | None:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


class JsonFileStorage:
    """:class:`SessionStorage` backed by one JSON file.

    The file holds a JSON object whose values are the serialised strings
    stored under each key.  A missing or invalid file reads as empty.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as exc:
            logger.warning("Could not read session storage %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        # Readers only ever see a complete file.
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get_item(self, key: str) -> str | None:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


def new_session_id() -> str:
    """Return a unique, time-derived session id."""
    return f"session-{time.time_ns() // 1_000_000}-{uuid.uuid4().hex[:6]}"


class SessionStore:
    """Current session plus the persisted list of saved sessions.

    Attributes:
        session (GenerationSession | None): The active session, if any.
        sessions (list[GenerationSession]): Saved sessions, oldest first.
    """

    def __init__(self, storage: SessionStorage, *, key: str = STORAGE_KEY) -> None:
        self._storage = storage
        self._key = key
        self.session: GenerationSession | None = None
        self.sessions: list[GenerationSession] = self._load()

    @classmethod
    def from_config(cls, config: StudioConfig) -> SessionStore:
        """Open the session history file named by ``config.sessions_path``."""
        return cls(JsonFileStorage(config.sessions_path))

    def _load(self) -> list[GenerationSession]:
        try:
            raw = self._storage.get_item(self._key)
            if not raw:
                return []
            return _SESSION_LIST.validate_json(raw)
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning("Failed to load sessions, starting with an empty history: %s", exc)
            return []

    def _persist(self) -> None:
        payload = _SESSION_LIST.dump_json(self.sessions, by_alias=True).decode("utf-8")
        self._storage.set_item(self._key, payload)

    # -- Current session ----------------------------------------------------

    def create_new_session(self) -> GenerationSession:
        """Start a fresh, empty current session (not persisted until saved)."""
        self.session = GenerationSession(id=new_session_id())
        return self.session

    def add_to_session(self, result: SeriesGenerationOutcome) -> GenerationSession:
        """Append *result* to the current session, creating one if needed."""
        if self.session is None:
            self.session = GenerationSession(id=new_session_id(), results=[result])
        else:
            self.session = self.session.model_copy(
                update={"results": [*self.session.results, result]}
            )
        return self.session

    def record_saved_images(self, asset_ids: list[str]) -> GenerationSession:
        """Remember the ids of uploaded assets on the current session."""
        if self.session is None:
            self.create_new_session()
        self.session = self.session.model_copy(
            update={"saved_images": [*self.session.saved_images, *asset_ids]}
        )
        return self.session

    def clear_session(self) -> None:
        self.session = None

    # -- Saved sessions -----------------------------------------------------

    def save_session(self) -> GenerationSession | None:
        """Upsert the current session into the saved list and persist it.

        Returns:
            The saved session, or ``None`` when there is no current session.
        """
        if self.session is None:
            return None

        for position, saved in enumerate(self.sessions):
            if saved.id == self.session.id:
                self.sessions[position] = self.session
                break
        else:
            self.sessions.append(self.session)

        self._persist()
        logger.info("Saved session %s (%d result(s)).", self.session.id, len(self.session.results))
        return self.session

    def load_session(self, session_id: str) -> GenerationSession | None:
        """Make the saved session *session_id* current; ``None`` if unknown."""
        found = next((saved for saved in self.sessions if saved.id == session_id), None)
        if found is not None:
            self.session = found
        return found

    def delete_session(self, session_id: str) -> bool:
        """Delete a saved session, clearing it if it is the current one.

        Returns:
            ``True`` if a saved session was removed.
        """
        remaining = [saved for saved in self.sessions if saved.id != session_id]
        removed = len(remaining) != len(self.sessions)
        self.sessions = remaining
        if self.session is not None and self.session.id == session_id:
            self.session = None
        if removed:
            self._persist()
        return removed
