"""Local session store mirrored to a JSON document."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from voicefit.core.constants import STORE_SCHEMA_VERSION
from voicefit.core.models import NewSession, WorkoutSession

logger = logging.getLogger(__name__)


class StoreWriteError(RuntimeError):
    """Raised (or recorded) when the sessions file cannot be written."""


def _now_ms() -> int:
    return int(time.time() * 1000)


class SessionStore:
    """Owns the canonical list of workout sessions.

    The whole collection is re-serialized on every mutation. A failed write
    leaves the in-memory change in place and is kept on ``write_error`` so
    the caller can warn the user.
    """

    def __init__(
        self,
        path: Path,
        clock: Callable[[], int] = _now_ms,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ) -> None:
        self.path = path
        self._clock = clock
        self._id_factory = id_factory
        self._sessions: List[WorkoutSession] = []
        self._damaged = False
        self.write_error: Optional[StoreWriteError] = None

    @classmethod
    def open(cls, path: Path, **kwargs: Any) -> "SessionStore":
        store = cls(path, **kwargs)
        store.load()
        return store

    @staticmethod
    def parse(text: str) -> List[WorkoutSession]:
        """Decode a sessions document; raises ValueError when it is unusable."""
        return SessionStore._decode(text)[0]

    @staticmethod
    def _decode(text: str) -> Tuple[List[WorkoutSession], int]:
        """Return the readable sessions and how many records were skipped."""
        document = json.loads(text)
        if isinstance(document, list):
            records = document
        elif isinstance(document, dict):
            version = document.get("version")
            if not isinstance(version, int) or version > STORE_SCHEMA_VERSION:
                raise ValueError(f"unsupported sessions schema version: {version!r}")
            records = document.get("sessions")
            if not isinstance(records, list):
                raise ValueError("sessions document has no session list")
        else:
            raise ValueError("sessions document must be an object or a list")

        sessions: List[WorkoutSession] = []
        skipped = 0
        for index, record in enumerate(records):
            try:
                if not isinstance(record, dict):
                    raise ValueError("session records must be objects")
                sessions.append(WorkoutSession.from_dict(record))
            except ValueError as exc:
                skipped += 1
                logger.warning("Skipping session record %d: %s", index, exc)
        return sessions, skipped

    @property
    def backup_path(self) -> Path:
        """Where an unreadable sessions file is moved before it is overwritten."""
        return self.path.with_name(f"{self.path.name}.corrupt")

    def load(self) -> None:
        """Replace the in-memory list with the persisted snapshot, if usable.

        If the file or any record in it could not be read, the file is moved
        to ``backup_path`` on the next write instead of being overwritten.
        """
        self._sessions = []
        self._damaged = False
        if not self.path.exists():
            logger.debug("No sessions file at %s, starting empty", self.path)
            return
        try:
            self._sessions, skipped = self._decode(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Failed to load sessions from %s: %s", self.path, exc)
            self._sessions = []
            self._damaged = True
            return
        if skipped:
            logger.warning(
                "Failed to load %d of %d sessions from %s",
                skipped,
                skipped + len(self._sessions),
                self.path,
            )
            self._damaged = True
        logger.debug("Loaded %d sessions from %s", len(self._sessions), self.path)

    def _move_damaged_aside(self) -> None:
        if not (self._damaged and self.path.exists()):
            return
        backup = self.backup_path
        if backup.exists():
            backup = self.path.with_name(f"{self.path.name}.corrupt-{self._clock()}")
        os.replace(self.path, backup)
        logger.warning("Kept unreadable sessions file as %s", backup)

    def dump(self) -> str:
        document: Dict[str, Any] = {
            "version": STORE_SCHEMA_VERSION,
            "sessions": [session.to_dict() for session in self._sessions],
        }
        return json.dumps(document, indent=2, ensure_ascii=False) + "\n"

    def _persist(self) -> None:
        self.write_error = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._move_damaged_aside()
            self._damaged = False
            fd, temp_name = tempfile.mkstemp(
                prefix=".sessions-", suffix=".json", dir=str(self.path.parent)
            )
            tmp_path = Path(temp_name)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(self.dump())
                os.replace(tmp_path, self.path)
            finally:
                tmp_path.unlink(missing_ok=True)
        except OSError as exc:
            self.write_error = StoreWriteError(f"Could not save sessions to {self.path}: {exc}")
            logger.warning("%s", self.write_error)

    def list(self) -> List[WorkoutSession]:
        return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> Optional[WorkoutSession]:
        for session in self._sessions:
            if session.id == session_id:
                return session
        return None

    def find_prefix(self, prefix: str) -> Optional[WorkoutSession]:
        """Resolve a full id or an unambiguous id prefix."""
        exact = self.get(prefix)
        if exact is not None or not prefix:
            return exact
        matches = [session for session in self._sessions if session.id.startswith(prefix)]
        return matches[0] if len(matches) == 1 else None

    def _fresh_id(self) -> str:
        taken = {session.id for session in self._sessions}
        session_id = self._id_factory()
        while session_id in taken:
            session_id = self._id_factory()
        return session_id

    def add(self, new_session: NewSession) -> WorkoutSession:
        """Assign id and timestamp, prepend, persist.

        Raises ValueError, leaving the store untouched, if an exercise has no name.
        """
        new_session = new_session.cleaned()
        session = WorkoutSession(
            id=self._fresh_id(),
            date=new_session.date,
            created_at=self._clock(),
            raw_transcription=new_session.raw_transcription,
            exercises=new_session.exercises,
            notes=new_session.notes,
        )
        self._sessions.insert(0, session)
        logger.info("Saved session %s for %s", session.id, session.date)
        self._persist()
        return session

    def delete(self, session_id: str) -> bool:
        """Remove the session with ``session_id``; absent ids are a no-op."""
        for index, session in enumerate(self._sessions):
            if session.id == session_id:
                del self._sessions[index]
                logger.info("Deleted session %s", session_id)
                self._persist()
                return True
        logger.debug("Delete ignored, no session %s", session_id)
        return False
