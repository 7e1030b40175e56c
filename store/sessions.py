# store/sessions.py
"""Recording sessions and the stores that keep them.

``actionsCount`` and ``hasCaptures`` are computed from ``actions`` on every
access, so no store can let them drift from the action list.
"""
import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol

import orjson
from pydantic import BaseModel, ConfigDict, Field, computed_field

from recorder.actions import Action, actions_count, has_captures

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def share_url(session_id: str) -> str:
    return f"/recording/{session_id}"


class NewSession(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    description: Optional[str] = None
    actions: List[Action] = Field(default_factory=list)


class SessionPatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    actions: Optional[List[Action]] = None


class Session(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    title: str
    description: Optional[str] = None
    actions: List[Action] = Field(default_factory=list)
    is_shared: bool = Field(False, alias="isShared")
    share_url: Optional[str] = Field(None, alias="shareUrl")
    created_at: datetime = Field(default_factory=_now, alias="createdAt")
    updated_at: datetime = Field(default_factory=_now, alias="updatedAt")

    @computed_field(alias="actionsCount")
    @property
    def actions_count(self) -> int:
        return actions_count(self.actions)

    @computed_field(alias="hasCaptures")
    @property
    def has_captures(self) -> bool:
        return has_captures(self.actions)

    def to_json(self) -> bytes:
        return orjson.dumps(
            self.model_dump(mode="json", by_alias=True, exclude_none=True),
            option=orjson.OPT_INDENT_2,
        )

    @classmethod
    def from_json(cls, data: bytes) -> "Session":
        raw = orjson.loads(data)
        # derived fields are recomputed, never trusted from disk
        raw.pop("actionsCount", None)
        raw.pop("hasCaptures", None)
        return cls.model_validate(raw)


class SessionStore(Protocol):
    def create(self, draft: NewSession) -> Session: ...

    def get_by_id(self, session_id: str) -> Optional[Session]: ...

    def update(self, session_id: str, patch: SessionPatch) -> Optional[Session]: ...

    def delete(self, session_id: str) -> bool: ...

    def set_shared(self, session_id: str, shared: bool) -> Optional[Session]: ...

    def get_shared(self, session_id: str) -> Optional[Session]: ...

    def list_all(self) -> List[Session]: ...


def _new_session(draft: NewSession) -> Session:
    now = _now()
    return Session(
        id=str(uuid.uuid4()),
        title=draft.title,
        description=draft.description,
        actions=list(draft.actions),
        created_at=now,
        updated_at=now,
    )


def _patched(session: Session, patch: SessionPatch) -> Session:
    changes = patch.model_dump(exclude_unset=True)
    # title and actions are required; None leaves them as they are
    for name in ("title", "actions"):
        if name in changes and changes[name] is None:
            del changes[name]
    if patch.actions is not None:
        changes["actions"] = list(patch.actions)
    changes["updated_at"] = _now()
    return session.model_copy(update=changes)


def _shared(session: Session, shared: bool) -> Session:
    return session.model_copy(update={
        "is_shared": shared,
        "share_url": share_url(session.id) if shared else None,
        "updated_at": _now(),
    })


class MemorySessionStore:
    def __init__(self):
        self._sessions: Dict[str, Session] = {}

    def create(self, draft: NewSession) -> Session:
        session = _new_session(draft)
        self._sessions[session.id] = session
        return session

    def get_by_id(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def update(self, session_id: str, patch: SessionPatch) -> Optional[Session]:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        session = self._sessions[session_id] = _patched(session, patch)
        return session

    def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def set_shared(self, session_id: str, shared: bool) -> Optional[Session]:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        session = self._sessions[session_id] = _shared(session, shared)
        return session

    def get_shared(self, session_id: str) -> Optional[Session]:
        session = self._sessions.get(session_id)
        # unshared is reported exactly like missing
        if session is None or not session.is_shared:
            return None
        return session

    def list_all(self) -> List[Session]:
        return sorted(self._sessions.values(), key=lambda s: s.created_at, reverse=True)


class FileSessionStore:
    """One JSON document per session under ``directory``."""

    def __init__(self, directory: str):
        os.makedirs(directory, exist_ok=True)
        self.directory = directory

    def _path(self, session_id: str) -> Optional[str]:
        try:
            uuid.UUID(session_id)
        except (ValueError, TypeError, AttributeError):
            return None
        return os.path.join(self.directory, f"{session_id}.json")

    def _read(self, session_id: str) -> Optional[Session]:
        path = self._path(session_id)
        if path is None or not os.path.exists(path):
            return None
        with open(path, "rb") as f:
            return Session.from_json(f.read())

    def _write(self, session: Session) -> Session:
        path = self._path(session.id)
        tmp = path + ".tmp"
        with open(tmp, "wb") as f:
            f.write(session.to_json())
        os.replace(tmp, path)
        return session

    def create(self, draft: NewSession) -> Session:
        return self._write(_new_session(draft))

    def get_by_id(self, session_id: str) -> Optional[Session]:
        return self._read(session_id)

    def update(self, session_id: str, patch: SessionPatch) -> Optional[Session]:
        session = self._read(session_id)
        if session is None:
            return None
        return self._write(_patched(session, patch))

    def delete(self, session_id: str) -> bool:
        path = self._path(session_id)
        if path is None or not os.path.exists(path):
            return False
        os.remove(path)
        return True

    def set_shared(self, session_id: str, shared: bool) -> Optional[Session]:
        session = self._read(session_id)
        if session is None:
            return None
        return self._write(_shared(session, shared))

    def get_shared(self, session_id: str) -> Optional[Session]:
        session = self._read(session_id)
        if session is None or not session.is_shared:
            return None
        return session

    def list_all(self) -> List[Session]:
        sessions = []
        for name in os.listdir(self.directory):
            if not name.endswith(".json"):
                continue
            try:
                session = self._read(name[: -len(".json")])
            except (OSError, ValueError) as e:
                logger.warning("skipping unreadable session file %s: %s", name, e)
                continue
            if session is not None:
                sessions.append(session)
        return sorted(sessions, key=lambda s: s.created_at, reverse=True)
