"""SQLite-backed persistence for sessions, messages and attached standards."""

from __future__ import annotations

import contextlib
import re
import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterator

from agentswitcher.agent import Kind, find

COMPACTION_INTERVAL = 12
MAX_RECENT_MESSAGES = 24
TITLE_LIMIT = 48

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_SCHEMA = """
PRAGMA foreign_keys = ON;
PRAGMA journal_mode = WAL;

CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    agent TEXT NOT NULL,
    title TEXT NOT NULL,
    summary TEXT NOT NULL DEFAULT '',
    user_prompt_count INTEGER NOT NULL DEFAULT 0,
    compacted_prompt_count INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL,
    role TEXT NOT NULL,
    content TEXT NOT NULL,
    created_at TEXT NOT NULL,
    FOREIGN KEY(session_id) REFERENCES sessions(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_sessions_agent_updated_at
    ON sessions(agent, updated_at DESC);

CREATE INDEX IF NOT EXISTS idx_messages_session_id_id
    ON messages(session_id, id);

CREATE TABLE IF NOT EXISTS session_standards (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL,
    path TEXT NOT NULL,
    created_at TEXT NOT NULL,
    UNIQUE(session_id, path),
    FOREIGN KEY(session_id) REFERENCES sessions(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_session_standards_session_id
    ON session_standards(session_id, id);
"""

_SESSION_COLUMNS = (
    "id, agent, title, summary, user_prompt_count, compacted_prompt_count, created_at, updated_at"
)
_MESSAGE_COLUMNS = "id, session_id, role, content, created_at"

_TIME_PATTERN = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})$"
)


class StoreError(Exception):
    """Raised when a database operation fails."""


@dataclass
class Session:
    id: str = ""
    agent: Kind | str = ""
    title: str = ""
    summary: str = ""
    user_prompt_count: int = 0
    compacted_prompt_count: int = 0
    created_at: datetime = _ZERO_TIME
    updated_at: datetime = _ZERO_TIME


@dataclass
class Message:
    id: int = 0
    session_id: str = ""
    role: str = ""
    content: str = ""
    created_at: datetime = _ZERO_TIME


@dataclass
class Standard:
    id: int = 0
    session_id: str = ""
    path: str = ""
    created_at: datetime = _ZERO_TIME


@dataclass
class ContextSnapshot:
    session: Session
    standards: list[Standard] = field(default_factory=list)
    recent_messages: list[Message] = field(default_factory=list)


def _format_time(moment: datetime) -> str:
    moment = moment.astimezone(timezone.utc)
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    fraction = f"{moment.microsecond:06d}".rstrip("0")
    if fraction:
        text += "." + fraction
    return text + "Z"


def _parse_time(text: str) -> datetime:
    match = _TIME_PATTERN.match(text or "")
    if not match:
        return _ZERO_TIME
    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    micro = int(((match.group(7) or "") + "000000")[:6])
    zone = match.group(8)
    if zone == "Z":
        tz = timezone.utc
    else:
        sign = 1 if zone[0] == "+" else -1
        tz = timezone(sign * timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6])))
    try:
        return datetime(year, month, day, hour, minute, second, micro, tzinfo=tz)
    except ValueError:
        return _ZERO_TIME


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_kind(name: str) -> Kind | str:
    try:
        return Kind(name)
    except ValueError:
        return name


def _session_from_row(row: tuple) -> Session:
    return Session(
        id=row[0],
        agent=_to_kind(row[1]),
        title=row[2],
        summary=row[3],
        user_prompt_count=row[4],
        compacted_prompt_count=row[5],
        created_at=_parse_time(row[6]),
        updated_at=_parse_time(row[7]),
    )


def _message_from_row(row: tuple) -> Message:
    return Message(
        id=row[0], session_id=row[1], role=row[2], content=row[3], created_at=_parse_time(row[4])
    )


def _standard_from_row(row: tuple) -> Standard:
    return Standard(id=row[0], session_id=row[1], path=row[2], created_at=_parse_time(row[3]))


@contextlib.contextmanager
def _failure(action: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise StoreError(f"{action}: {exc}") from exc


def default_title(kind: Kind | str) -> str:
    """Title given to a session before its first prompt."""
    definition = find(kind)
    if definition is None:
        return "New session"
    return f"New {definition.label} session"


def make_title(prompt: str, kind: Kind | str) -> str:
    """Derive a session title from its first prompt."""
    trimmed = prompt.strip()
    if not trimmed:
        return default_title(kind)
    if len(trimmed) > TITLE_LIMIT:
        return trimmed[:TITLE_LIMIT] + "..."
    return trimmed


def new_uuid() -> str:
    """Return a random version-4 UUID string."""
    return str(uuid.uuid4())


class Repository:
    """Stores sessions, their messages and their standards files in SQLite."""

    def __init__(self, path: str) -> None:
        with _failure("open sqlite database"):
            self._db = sqlite3.connect(str(path), check_same_thread=False)
        try:
            self._db.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            self._db.close()
            raise StoreError(f"initialize sqlite schema: {exc}") from exc

    def close(self) -> None:
        self._db.close()

    def __enter__(self) -> Repository:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def create_session(self, kind: Kind | str) -> Session:
        now = _now()
        session = Session(
            id=new_uuid(),
            agent=kind,
            title=default_title(kind),
            created_at=now,
            updated_at=now,
        )
        with _failure("create session"), self._db:
            self._db.execute(
                "INSERT INTO sessions (id, agent, title, summary, user_prompt_count,"
                " compacted_prompt_count, created_at, updated_at)"
                " VALUES (?, ?, ?, '', 0, 0, ?, ?)",
                (session.id, str(kind), session.title, _format_time(now), _format_time(now)),
            )
        return session

    def list_sessions(self, kind: Kind | str, limit: int) -> list[Session]:
        with _failure("list sessions"):
            rows = self._db.execute(
                f"SELECT {_SESSION_COLUMNS} FROM sessions WHERE agent = ?"
                " ORDER BY updated_at DESC LIMIT ?",
                (str(kind), limit),
            ).fetchall()
        return [_session_from_row(row) for row in rows]

    def list_all_sessions(self, limit: int) -> list[Session]:
        with _failure("list all sessions"):
            rows = self._db.execute(
                f"SELECT {_SESSION_COLUMNS} FROM sessions ORDER BY updated_at DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [_session_from_row(row) for row in rows]

    def update_session_agent(self, session_id: str, kind: Kind | str) -> Session:
        with _failure("update session agent"), self._db:
            self._db.execute(
                "UPDATE sessions SET agent = ?, updated_at = ? WHERE id = ?",
                (str(kind), _format_time(_now()), session_id),
            )
        return self.get_session(session_id)

    def get_session(self, session_id: str) -> Session:
        with _failure(f"get session {session_id}"):
            row = self._db.execute(
                f"SELECT {_SESSION_COLUMNS} FROM sessions WHERE id = ?", (session_id,)
            ).fetchone()
        if row is None:
            raise StoreError(f"get session {session_id}: no rows in result set")
        return _session_from_row(row)

    def get_context_snapshot(self, session_id: str) -> ContextSnapshot:
        session = self.get_session(session_id)
        standards = self.list_standards(session_id)
        with _failure("list messages"):
            rows = self._db.execute(
                f"SELECT {_MESSAGE_COLUMNS} FROM messages WHERE session_id = ?"
                " ORDER BY id DESC LIMIT ?",
                (session_id, MAX_RECENT_MESSAGES),
            ).fetchall()
        messages = [_message_from_row(row) for row in reversed(rows)]
        return ContextSnapshot(session=session, standards=standards, recent_messages=messages)

    def list_standards(self, session_id: str) -> list[Standard]:
        with _failure("list standards"):
            rows = self._db.execute(
                "SELECT id, session_id, path, created_at FROM session_standards"
                " WHERE session_id = ? ORDER BY path ASC",
                (session_id,),
            ).fetchall()
        return [_standard_from_row(row) for row in rows]

    def replace_standards(self, session_id: str, paths: list[str]) -> None:
        now = _format_time(_now())
        with _failure("replace standards"), self._db:
            self._db.execute("DELETE FROM session_standards WHERE session_id = ?", (session_id,))
            for path in paths:
                try:
                    self._db.execute(
                        "INSERT INTO session_standards (session_id, path, created_at)"
                        " VALUES (?, ?, ?)",
                        (session_id, path.strip(), now),
                    )
                except sqlite3.Error as exc:
                    raise StoreError(f"insert standard {path}: {exc}") from exc
            self._db.execute(
                "UPDATE sessions SET updated_at = ? WHERE id = ?", (now, session_id)
            )

    def list_messages(self, session_id: str) -> list[Message]:
        with _failure("list session messages"):
            rows = self._db.execute(
                f"SELECT {_MESSAGE_COLUMNS} FROM messages WHERE session_id = ? ORDER BY id ASC",
                (session_id,),
            ).fetchall()
        return [_message_from_row(row) for row in rows]

    def add_exchange(self, session_id: str, user_prompt: str, assistant_reply: str) -> Session:
        now = _format_time(_now())
        with _failure("add exchange"), self._db:
            self._db.execute(
                "INSERT INTO messages (session_id, role, content, created_at)"
                " VALUES (?, 'user', ?, ?)",
                (session_id, user_prompt.strip(), now),
            )
            self._db.execute(
                "INSERT INTO messages (session_id, role, content, created_at)"
                " VALUES (?, 'assistant', ?, ?)",
                (session_id, assistant_reply.strip(), now),
            )
            row = self._db.execute(
                f"SELECT {_SESSION_COLUMNS} FROM sessions WHERE id = ?", (session_id,)
            ).fetchone()
            if row is None:
                raise StoreError("query session in transaction: no rows in result set")
            current = _session_from_row(row)
            title = current.title
            if current.user_prompt_count == 0:
                title = make_title(user_prompt, current.agent)
            self._db.execute(
                "UPDATE sessions SET title = ?, user_prompt_count = user_prompt_count + 1,"
                " updated_at = ? WHERE id = ?",
                (title, now, session_id),
            )
        return self.get_session(session_id)

    def save_compaction(
        self, session_id: str, summary: str, compacted_prompt_count: int
    ) -> Session:
        with _failure("save compaction"), self._db:
            self._db.execute(
                "UPDATE sessions SET summary = ?, compacted_prompt_count = ?, updated_at = ?"
                " WHERE id = ?",
                (summary.strip(), compacted_prompt_count, _format_time(_now()), session_id),
            )
        return self.get_session(session_id)

    def need_compaction(self, session: Session) -> bool:
        return session.user_prompt_count - session.compacted_prompt_count >= COMPACTION_INTERVAL

    def get_messages_for_compaction(self, session_id: str) -> list[Message]:
        session = self.get_session(session_id)
        with _failure("load compaction messages"):
            rows = self._db.execute(
                f"SELECT {_MESSAGE_COLUMNS} FROM messages WHERE session_id = ? ORDER BY id ASC",
                (session_id,),
            ).fetchall()

        messages = []
        user_prompts_seen = 0
        for message in map(_message_from_row, rows):
            if message.role == "user":
                user_prompts_seen += 1
            if user_prompts_seen > session.compacted_prompt_count:
                messages.append(message)
        return messages