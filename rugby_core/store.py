"""
Match persistence capability and a JSON-file implementation.

The core only hands over snapshots; how they are stored is up to the store.
"""
import json
import logging
import os
import time
import uuid
from typing import List, Optional, Protocol

from .events import parse_log
from .snapshot import player_stat_deltas

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Saving a match to the external store failed; the caller may retry.

    ``match_id`` is set when the record was written before the failure, so a
    retry updates that record instead of creating another.
    """

    def __init__(self, message: str, match_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.match_id = match_id


class MatchStore(Protocol):
    def save_live_match(self, snapshot: dict, existing_match_id: Optional[str] = None) -> str:
        ...

    def save_finished_match(self, snapshot: dict, existing_match_id: Optional[str] = None) -> str:
        ...

    def get_match(self, match_id: str) -> Optional[dict]:
        ...


class JsonMatchStore:
    """
    Stores each match as ``<directory>/<match id>.json``.

    Finishing a match also increments the participating players' stats,
    once, through the optional roster.
    """

    def __init__(self, directory: str, roster=None) -> None:
        self.directory = directory
        self.roster = roster

    def _path(self, match_id: str) -> str:
        return os.path.join(self.directory, f"{match_id}.json")

    def _write(self, record: dict) -> None:
        if not os.path.exists(self.directory):
            os.makedirs(self.directory)
        with open(self._path(record["id"]), "w", encoding="utf-8") as f:
            json.dump(record, f, indent=2)

    def _save(self, record: dict) -> None:
        try:
            self._write(record)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Could not save match {record['id']}: {e}") from e

    def _record(self, snapshot: dict, status: str, existing_match_id: Optional[str]) -> dict:
        now = int(time.time() * 1000)
        existing = self.get_match(existing_match_id) if existing_match_id else None
        record = dict(existing or {})
        record.update(snapshot)
        record["id"] = existing["id"] if existing else str(uuid.uuid4())
        record["status"] = status
        record.setdefault("createdAt", now)
        record["updatedAt"] = now
        log = snapshot.get("log") or []
        record["startedAt"] = log[0]["timestamp"] if log else now
        if status == "completed":
            record["endedAt"] = now
        return record

    def save_live_match(self, snapshot: dict, existing_match_id: Optional[str] = None) -> str:
        """
        Save an in-progress match.

        Returns:
            The match id (the existing one when it was found)

        Raises:
            PersistenceError: If the file cannot be written
        """
        record = self._record(snapshot, "playing", existing_match_id)
        self._save(record)
        logger.info(f"Saved live match {record['id']}")
        return record["id"]

    def save_finished_match(self, snapshot: dict, existing_match_id: Optional[str] = None) -> str:
        """
        Save a completed match and update player stats from its log.

        The record carries ``statsApplied``; stats are applied while it is
        false, so re-saving a finished match does not count it twice and a
        save whose stats update failed applies them on retry.

        Raises:
            PersistenceError: If the file cannot be written or the stats update fails
        """
        record = self._record(snapshot, "completed", existing_match_id)
        record["statsApplied"] = bool(record.get("statsApplied"))
        self._save(record)

        if self.roster is not None and not record["statsApplied"]:
            deltas = player_stat_deltas(
                parse_log(record.get("log") or []), record.get("playerIds") or []
            )
            try:
                self.roster.apply_stat_deltas(deltas)
            except Exception as e:
                raise PersistenceError(
                    f"Could not update player stats for match {record['id']}: {e}",
                    match_id=record["id"],
                ) from e
            record["statsApplied"] = True
            self._save(record)
        logger.info(f"Saved finished match {record['id']}")
        return record["id"]

    def get_match(self, match_id: str) -> Optional[dict]:
        """Load a stored match, or None when there is no such file."""
        path = self._path(match_id)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Could not read match {match_id}: {e}") from e

    def list_matches(self, status: Optional[str] = None, limit: Optional[int] = None) -> List[dict]:
        """Stored matches, most recently updated first."""
        if not os.path.exists(self.directory):
            return []
        matches = []
        for filename in os.listdir(self.directory):
            if not filename.endswith(".json"):
                continue
            match = self.get_match(filename[: -len(".json")])
            if match is None:
                continue
            if status and match.get("status") != status:
                continue
            matches.append(match)
        matches.sort(key=lambda m: m.get("updatedAt") or m.get("createdAt") or 0, reverse=True)
        return matches[:limit] if limit else matches
