"""
Patient-app session state.

The logged-in patient is owned by an explicit ``SessionContext`` instead of
ad-hoc reads of persisted storage. Expiry is checked every time the session
is read, and an expired session is cleared on that read.
"""
import json
import logging
import os
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from ..core.config import settings

logger = logging.getLogger(__name__)

STORAGE_KEY = "patient_session"


@dataclass
class PatientSession:
    access_id: str
    patient_id: str
    email: str
    patient_name: Optional[str] = None
    allowed_pages: List[str] = field(default_factory=list)
    token: Optional[str] = None
    expires_at: Optional[str] = None  # ISO-8601, UTC

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if not self.expires_at:
            return False
        return (now or datetime.utcnow()) >= datetime.fromisoformat(self.expires_at)

    def can_view(self, page: str) -> bool:
        return page in self.allowed_pages


class SessionStorage:
    """Key/value persistence for client-side state."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryStorage(SessionStorage):
    def __init__(self):
        self._data = {}

    def get(self, key):
        return self._data.get(key)

    def set(self, key, value):
        self._data[key] = value

    def remove(self, key):
        self._data.pop(key, None)


class JsonFileStorage(SessionStorage):
    """Stores every key in one JSON document on disk."""

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, encoding="utf-8") as fh:
                return json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, exc)
            return {}

    def _save(self, data: dict) -> None:
        with open(self.path, "w", encoding="utf-8") as fh:
            json.dump(data, fh)

    def get(self, key):
        return self._load().get(key)

    def set(self, key, value):
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key):
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)


def default_storage() -> SessionStorage:
    if settings.PATIENT_SESSION_FILE:
        return JsonFileStorage(settings.PATIENT_SESSION_FILE)
    return MemoryStorage()


class SessionContext:
    def __init__(
        self,
        storage: Optional[SessionStorage] = None,
        ttl: Optional[timedelta] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.storage = storage or default_storage()
        self.ttl = ttl or timedelta(minutes=settings.PATIENT_SESSION_TTL_MINUTES)
        self.clock = clock

    def login(self, access: dict, token: Optional[str] = None) -> PatientSession:
        """Start a session from an ``authenticate_patient`` result."""
        patient = access.get("patients") or {}
        session = PatientSession(
            access_id=access["id"],
            patient_id=access["patient_id"],
            email=access["email"],
            patient_name=patient.get("name"),
            allowed_pages=list(access.get("allowed_pages") or []),
            token=token,
            expires_at=(self.clock() + self.ttl).isoformat(),
        )
        self.storage.set(STORAGE_KEY, json.dumps(asdict(session)))
        logger.info("Patient session started for %s", session.patient_id)
        return session

    def logout(self) -> None:
        self.storage.remove(STORAGE_KEY)

    def current(self) -> Optional[PatientSession]:
        raw = self.storage.get(STORAGE_KEY)
        if not raw:
            return None
        try:
            session = PatientSession(**json.loads(raw))
        except (TypeError, ValueError) as exc:
            logger.warning("Discarding malformed patient session: %s", exc)
            self.logout()
            return None
        if session.is_expired(self.clock()):
            logger.info("Patient session for %s expired", session.patient_id)
            self.logout()
            return None
        return session

    @property
    def is_authenticated(self) -> bool:
        return self.current() is not None
