"""
Data Storage Service

SQLAlchemy-backed storage for equipment status logs, chat sessions and
chat messages. SQLite by default; any SQLAlchemy URL in production.

Every method may raise ``StoreError``. Queries without an explicit limit
are capped at ``DEFAULT_PAGE_SIZE`` rows, mirroring hosted databases that
silently truncate unbounded selects. Callers needing more than the
default page size MUST pass an explicit limit or range.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

from sqlalchemy import create_engine, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..core.config import settings
from ..models import Base, ChatMessage, ChatSession, Equipment, EquipmentStatusLog
from .status_log import StatusLogEntry

logger = logging.getLogger("oee_copilot.data_store")

DEFAULT_PAGE_SIZE = 1000
IMPORT_BATCH_SIZE = 100
SESSION_TITLE_LENGTH = 50
DEFAULT_SESSION_TITLE = "New Chat"
MESSAGE_ROLES = ("user", "assistant")


class StoreError(RuntimeError):
    """A storage operation failed."""


def session_title_from_message(message: Optional[str]) -> str:
    text = (message or "").strip()
    if not text:
        return DEFAULT_SESSION_TITLE
    if len(text) > SESSION_TITLE_LENGTH:
        return text[:SESSION_TITLE_LENGTH] + "..."
    return text


def _session_to_dict(s: ChatSession) -> Dict[str, Any]:
    return {
        "id": s.id,
        "title": s.title,
        "created_at": s.created_at.isoformat() if s.created_at else None,
        "updated_at": s.updated_at.isoformat() if s.updated_at else None,
    }


def _message_to_dict(m: ChatMessage) -> Dict[str, Any]:
    return {
        "id": m.id,
        "session_id": m.session_id,
        "role": m.role,
        "content": m.content,
        "timestamp": m.timestamp.isoformat() if m.timestamp else None,
    }


def _log_to_entry(row: EquipmentStatusLog) -> StatusLogEntry:
    return StatusLogEntry(
        equipment_name=row.equipment_name,
        status=row.status,
        date=row.date,
        duration_minutes=max(row.duration_minutes or 0, 0),
        start_time=row.start_time,
        end_time=row.end_time,
        reason=row.reason,
        issue=row.issue,
        alert=row.alert,
        comment=row.comment,
    )


def _entry_to_log(entry: StatusLogEntry) -> EquipmentStatusLog:
    return EquipmentStatusLog(
        equipment_name=entry.equipment_name,
        status=entry.status,
        date=entry.date,
        start_time=entry.start_time,
        end_time=entry.end_time,
        duration_minutes=entry.duration_minutes,
        reason=entry.reason,
        issue=entry.issue,
        alert=entry.alert,
        comment=entry.comment,
    )


class DataStore:
    """
    Relational store for the copilot.
    Each method runs in its own short transaction.
    """

    def __init__(self, database_url: str):
        connect_args = {}
        if database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            db_path = database_url.split("///", 1)[-1]
            if db_path and db_path != ":memory:" and "///" in database_url:
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(database_url, connect_args=connect_args)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        Base.metadata.create_all(self.engine)

    @contextmanager
    def _transaction(self, action: str) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("[DataStore] %s failed: %s", action, e)
            raise StoreError(f"{action} failed") from e
        finally:
            session.close()

    # ============ Equipment Status Logs ============

    def insert_logs(self, entries: Sequence[StatusLogEntry]) -> int:
        """Append log entries."""
        with self._transaction("insert_logs") as session:
            session.add_all([_entry_to_log(e) for e in entries])
        return len(entries)

    def replace_all_logs(
        self,
        entries: Sequence[StatusLogEntry],
        batch_size: int = IMPORT_BATCH_SIZE,
    ) -> int:
        """
        Delete every log row, then insert ``entries`` in batches.

        The equipment table is rebuilt from the unique names. Readers on
        other connections may briefly observe an empty table.
        """
        with self._transaction("replace_all_logs") as session:
            session.query(EquipmentStatusLog).delete(synchronize_session=False)
            for start in range(0, len(entries), batch_size):
                batch = entries[start:start + batch_size]
                session.add_all([_entry_to_log(e) for e in batch])
                session.flush()

            session.query(Equipment).delete(synchronize_session=False)
            names = sorted({e.equipment_name for e in entries})
            session.add_all([Equipment(name=name) for name in names])

        logger.info("[DataStore] Replaced status logs with %d rows (%d equipment)",
                    len(entries), len(names))
        return len(entries)

    def query_recent_logs(
        self,
        limit: Optional[int] = None,
        descending: bool = True,
    ) -> List[StatusLogEntry]:
        """Most recently stored rows first (or oldest first)."""
        if limit is None:
            logger.debug("[DataStore] No limit given, capping at %d rows", DEFAULT_PAGE_SIZE)
            limit = DEFAULT_PAGE_SIZE
        return self.query_logs_range(0, limit - 1, descending=descending)

    def query_logs_range(self, start: int, end: int, descending: bool = True) -> List[StatusLogEntry]:
        """Rows ``start`` through ``end`` inclusive."""
        if end < start:
            return []
        with self._transaction("query_logs_range") as session:
            created = EquipmentStatusLog.created_at
            order = [created.desc(), EquipmentStatusLog.date.desc()] if descending \
                else [created.asc(), EquipmentStatusLog.date.asc()]
            rows = (
                session.query(EquipmentStatusLog)
                .order_by(*order)
                .offset(start)
                .limit(end - start + 1)
                .all()
            )
            return [_log_to_entry(r) for r in rows]

    def count_logs(self) -> int:
        with self._transaction("count_logs") as session:
            return int(session.query(func.count(EquipmentStatusLog.id)).scalar() or 0)

    def list_equipment(self) -> List[str]:
        with self._transaction("list_equipment") as session:
            return [row.name for row in session.query(Equipment).order_by(Equipment.name).all()]

    # ============ Chat Sessions ============

    def create_session(self, title: str = DEFAULT_SESSION_TITLE, session_id: Optional[str] = None) -> Dict[str, Any]:
        now = datetime.utcnow()
        with self._transaction("create_session") as session:
            chat = ChatSession(title=title or DEFAULT_SESSION_TITLE, created_at=now, updated_at=now)
            if session_id:
                chat.id = session_id
            session.add(chat)
            session.flush()
            return _session_to_dict(chat)

    def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        with self._transaction("get_session") as session:
            chat = session.get(ChatSession, session_id)
            return _session_to_dict(chat) if chat else None

    def ensure_session(self, session_id: str, first_message: Optional[str] = None) -> Dict[str, Any]:
        """Return the session, creating it (titled from the first message) if missing."""
        existing = self.get_session(session_id)
        if existing:
            return existing
        return self.create_session(session_title_from_message(first_message), session_id=session_id)

    def list_sessions(self) -> List[Dict[str, Any]]:
        """Sessions, most recently updated first."""
        with self._transaction("list_sessions") as session:
            rows = session.query(ChatSession).order_by(ChatSession.updated_at.desc()).all()
            return [_session_to_dict(s) for s in rows]

    def rename_session(self, session_id: str, title: str) -> Optional[Dict[str, Any]]:
        with self._transaction("rename_session") as session:
            chat = session.get(ChatSession, session_id)
            if chat is None:
                return None
            chat.title = title
            chat.updated_at = datetime.utcnow()
            session.flush()
            return _session_to_dict(chat)

    def touch_session(self, session_id: str) -> None:
        with self._transaction("touch_session") as session:
            chat = session.get(ChatSession, session_id)
            if chat is not None:
                chat.updated_at = datetime.utcnow()

    def delete_session(self, session_id: str) -> bool:
        """Delete a session and all its messages."""
        with self._transaction("delete_session") as session:
            chat = session.get(ChatSession, session_id)
            if chat is None:
                return False
            session.delete(chat)
            return True

    # ============ Chat Messages ============

    def append_message(self, session_id: str, role: str, content: str) -> Dict[str, Any]:
        if role not in MESSAGE_ROLES:
            raise ValueError(f"Unsupported message role: {role}")
        with self._transaction("append_message") as session:
            msg = ChatMessage(
                session_id=session_id,
                role=role,
                content=content,
                timestamp=datetime.utcnow(),
            )
            session.add(msg)
            session.flush()
            return _message_to_dict(msg)

    def query_messages(self, session_id: str, ascending: bool = True) -> List[Dict[str, Any]]:
        with self._transaction("query_messages") as session:
            order = ChatMessage.timestamp.asc() if ascending else ChatMessage.timestamp.desc()
            rows = (
                session.query(ChatMessage)
                .filter(ChatMessage.session_id == session_id)
                .order_by(order)
                .all()
            )
            return [_message_to_dict(m) for m in rows]

    def query_recent_messages(self, session_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        """The last ``limit`` messages, returned oldest first."""
        with self._transaction("query_recent_messages") as session:
            rows = (
                session.query(ChatMessage)
                .filter(ChatMessage.session_id == session_id)
                .order_by(ChatMessage.timestamp.desc())
                .limit(limit)
                .all()
            )
            return [_message_to_dict(m) for m in reversed(rows)]


@lru_cache()
def get_data_store() -> DataStore:
    return DataStore(settings.DATABASE_URL)
