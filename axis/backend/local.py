import asyncio
import json
import time
from collections.abc import Sequence
from pathlib import Path
from uuid import uuid4

import aiosqlite
import psutil

from axis.backend.base import Responder
from axis.errors import BackendError
from axis.logging import get_logger
from axis.models import InteractionLog, SystemStats, Token, tokenize

_logger = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS logs (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    session_id TEXT NOT NULL,
    timestamp INTEGER NOT NULL,
    user_tokens TEXT NOT NULL,
    ai_response TEXT NOT NULL,
    provider_used TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_logs_session ON logs(session_id);
"""

SQL_INSERT_LOG = """
INSERT INTO logs (id, session_id, timestamp, user_tokens, ai_response, provider_used)
VALUES (?, ?, ?, ?, ?, ?)
"""

SQL_ALL_LOGS = "SELECT * FROM logs ORDER BY seq"

SQL_SESSION_LOGS = "SELECT * FROM logs WHERE session_id = ? ORDER BY seq"

CPU_SAMPLE_INTERVAL = 0.1  # seconds


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _dump_tokens(tokens: tuple[Token, ...]) -> str:
    return json.dumps([{"id": t.id, "text": t.text, "timestamp": t.timestamp, "tags": list(t.tags)} for t in tokens])


def _load_tokens(raw: str) -> tuple[Token, ...]:
    return tuple(
        Token(id=t["id"], text=t["text"], timestamp=t["timestamp"], tags=tuple(t.get("tags", ())))
        for t in json.loads(raw or "[]")
    )


def _row_to_log(row: aiosqlite.Row) -> InteractionLog:
    return InteractionLog(
        id=row["id"],
        session_id=row["session_id"],
        timestamp=row["timestamp"],
        user_tokens=_load_tokens(row["user_tokens"]),
        ai_response=row["ai_response"],
        provider_used=row["provider_used"],
    )


async def echo_responder(text: str, history: Sequence[InteractionLog]) -> tuple[str, str]:
    """Offline responder: repeats the input, prefixed with the session depth."""
    return f"echo({len(history)}): {text}", "Echo"


def sample_vitals() -> SystemStats:
    cpu = psutil.cpu_percent(interval=CPU_SAMPLE_INTERVAL)
    memory = psutil.virtual_memory()
    battery = psutil.sensors_battery() if hasattr(psutil, "sensors_battery") else None
    # Desktops without a battery report full and on mains
    level, charging = (100, True) if battery is None else (int(battery.percent), bool(battery.power_plugged))
    return SystemStats(
        cpu_usage=max(0, min(100, int(cpu))),
        memory_used=int(memory.used),
        memory_total=int(memory.total),
        battery_level=max(0, min(100, level)),
        is_charging=charging,
    )


class LocalBackend:
    """In-process backend: SQLite history, psutil vitals, caller-supplied responder."""

    def __init__(self, db_path: Path, responder: Responder | None = None):
        self.db_path = db_path
        self.responder = responder
        self._conn: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        if self._conn is not None:
            return
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self.db_path)
        self._conn.row_factory = aiosqlite.Row
        await self._conn.execute("PRAGMA journal_mode=WAL;")
        await self._conn.executescript(SCHEMA)
        await self._conn.commit()

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("LocalBackend not connected")
        return self._conn

    async def save_log(self, log: InteractionLog) -> None:
        await self.conn.execute(
            SQL_INSERT_LOG,
            (
                log.id,
                log.session_id,
                log.timestamp,
                _dump_tokens(log.user_tokens),
                log.ai_response,
                log.provider_used,
            ),
        )
        await self.conn.commit()

    async def session_logs(self, session_id: str) -> list[InteractionLog]:
        rows = await self.conn.execute_fetchall(SQL_SESSION_LOGS, (session_id,))
        return [_row_to_log(row) for row in rows]

    async def ask(self, input: str, session_id: str) -> None:
        if self.responder is None:
            raise BackendError("No responder configured for the local backend")
        now = _now_ms()
        tokens = tokenize(input, now)
        history = await self.session_logs(session_id)
        try:
            response, provider = await self.responder(input, history)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise BackendError(f"Responder failed: {e}") from e

        await self.save_log(
            InteractionLog(
                id=str(uuid4()),
                session_id=session_id,
                timestamp=now,
                user_tokens=tokens,
                ai_response=response,
                provider_used=provider,
            )
        )

    async def fetch_history(self) -> list[InteractionLog]:
        rows = await self.conn.execute_fetchall(SQL_ALL_LOGS)
        return [_row_to_log(row) for row in rows]

    async def delete_session(self, session_id: str) -> None:
        cursor = await self.conn.execute("DELETE FROM logs WHERE session_id = ?", (session_id,))
        await self.conn.commit()
        _logger.info("Deleted %d logs for session %s", cursor.rowcount, session_id)

    async def get_vitals(self) -> SystemStats:
        try:
            return await asyncio.to_thread(sample_vitals)
        except (psutil.Error, OSError) as e:
            raise BackendError(f"Vitals unavailable: {e}") from e
