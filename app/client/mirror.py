"""Typed view over the client's local storage.

Layout (every value is a JSON string):

  authToken            bearer token, or a ``local_token_...`` for offline users
  userData             public user profile
  userProgress         progress document, same shape as the server's
  userStatistics       statistics, same wire names as the server's
  localUsers           users registered while offline (Argon2 hashes)
  localQuizResults     quiz results committed locally, in commit order
  localAssignments     assignments committed locally
  localJournalEntries  journal entries committed locally

A stored value that does not parse falls back to the empty default.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from app.client.storage import LocalStorage
from app.models.progress import Item, ProgressDoc, Statistics, empty_progress, normalize_progress

logger = logging.getLogger(__name__)

AUTH_TOKEN = "authToken"
USER_DATA = "userData"
USER_PROGRESS = "userProgress"
USER_STATISTICS = "userStatistics"
LOCAL_USERS = "localUsers"

# Offline queue per sequence.  Material and video views have none.
OFFLINE_QUEUES: Mapping[str, str] = {
    "quizScores": "localQuizResults",
    "assignments": "localAssignments",
    "journalEntries": "localJournalEntries",
}


class LocalMirror:
    def __init__(self, storage: LocalStorage) -> None:
        self._storage = storage

    @property
    def storage(self) -> LocalStorage:
        return self._storage

    def _read_json(self, key: str, expected: type) -> Any:
        raw = self._storage.get_item(key)
        if raw is None:
            return None
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed local value for %s", key)
            return None
        if not isinstance(value, expected):
            logger.warning("Ignoring local value for %s: expected %s", key, expected.__name__)
            return None
        return value

    def _write_json(self, key: str, value: Any) -> None:
        self._storage.set_item(key, json.dumps(value, ensure_ascii=False))

    # --- Progress and statistics -------------------------------------------

    def progress(self) -> ProgressDoc:
        raw = self._read_json(USER_PROGRESS, dict)
        return normalize_progress(raw) if raw is not None else empty_progress()

    def save_progress(self, progress: ProgressDoc) -> None:
        self._write_json(USER_PROGRESS, progress)

    def statistics(self) -> Statistics:
        return Statistics.from_dict(self._read_json(USER_STATISTICS, dict))

    def save_statistics(self, statistics: Statistics) -> None:
        self._write_json(USER_STATISTICS, statistics.to_dict())

    def replace_from_user(self, user: Mapping[str, Any]) -> None:
        """Overwrite profile, progress and statistics with a server user."""
        self.save_user_data(user)
        self.save_progress(normalize_progress(user.get("progress")))
        self.save_statistics(Statistics.from_dict(user.get("statistics")))

    # --- Session -----------------------------------------------------------

    def token(self) -> str | None:
        return self._storage.get_item(AUTH_TOKEN)

    def save_token(self, token: str) -> None:
        self._storage.set_item(AUTH_TOKEN, token)

    def user_data(self) -> dict[str, Any] | None:
        return self._read_json(USER_DATA, dict)

    def save_user_data(self, user: Mapping[str, Any]) -> None:
        self._write_json(USER_DATA, {k: v for k, v in user.items() if k != "passwordHash"})

    def clear_session(self) -> None:
        self._storage.remove_item(AUTH_TOKEN)
        self._storage.remove_item(USER_DATA)

    # --- Offline users and queues ------------------------------------------

    def local_users(self) -> list[dict[str, Any]]:
        return self._read_json(LOCAL_USERS, list) or []

    def save_local_users(self, users: list[dict[str, Any]]) -> None:
        self._write_json(LOCAL_USERS, users)

    def queue(self, sequence: str) -> list[Item]:
        key = OFFLINE_QUEUES.get(sequence)
        if key is None:
            return []
        return self._read_json(key, list) or []

    def enqueue(self, sequence: str, item: Item) -> None:
        key = OFFLINE_QUEUES.get(sequence)
        if key is None:
            return
        self._write_json(key, [*self.queue(sequence), item])
