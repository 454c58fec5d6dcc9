from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import importlib
import json
import logging
from typing import Any

from tracker.domain.dto import CreateSubmissionCommand
from tracker.domain.errors import DomainInvariantError
from tracker.domain.ids import new_notification_log_id, new_submission_id, new_tracking_code
from tracker.domain.models import (
    NotificationChannel,
    NotificationLogSnapshot,
    SendStatus,
    SubmissionSnapshot,
    SubmissionStatus,
)
from tracker.repositories.sql_loader import load_sql

try:
    asyncpg_module = importlib.import_module("asyncpg")
except ModuleNotFoundError:  # pragma: no cover
    asyncpg_module = None  # type: ignore[assignment]


SQL_CREATE_SUBMISSION = load_sql("create_submission.sql")
SQL_GET_SUBMISSION = load_sql("get_submission.sql")
SQL_FIND_BY_TRACKING_CODE = load_sql("find_by_tracking_code.sql")
SQL_COMPARE_AND_SET_STATUS = load_sql("compare_and_set_status.sql")
SQL_INSERT_NOTIFICATION_LOG = load_sql("insert_notification_log.sql")
SQL_LIST_NOTIFICATION_LOGS = load_sql("list_notification_logs.sql")

SCHEMA_UP_SQL = "bootstrap_up.sql"

logger = logging.getLogger("tracker.db")


def _is_unique_violation(exc: Exception) -> bool:
    return getattr(exc, "sqlstate", None) == "23505"


def _constraint_name(exc: Exception) -> str | None:
    return getattr(exc, "constraint_name", None)


@dataclass
class AsyncpgPoolManager:
    dsn: str
    pool: Any | None = None

    async def startup(self) -> None:
        if asyncpg_module is None:  # pragma: no cover
            raise RuntimeError("asyncpg is required for postgres repository mode")

        async def _init_connection(conn: Any) -> None:
            await conn.set_type_codec(
                "json",
                encoder=json.dumps,
                decoder=json.loads,
                schema="pg_catalog",
            )
            await conn.set_type_codec(
                "jsonb",
                encoder=json.dumps,
                decoder=json.loads,
                schema="pg_catalog",
            )

        self.pool = await asyncpg_module.create_pool(
            dsn=self.dsn,
            min_size=1,
            max_size=5,
            init=_init_connection,
        )

    async def shutdown(self) -> None:
        if self.pool is None:
            return
        await self.pool.close()
        self.pool = None


@dataclass
class DatabaseInitializer:
    """Applies the bootstrap schema at most once per process start-up.

    Owned by the runtime container and called from the application lifespan.
    """

    pool_manager: AsyncpgPoolManager
    schema_sql: str = field(default_factory=lambda: load_sql(SCHEMA_UP_SQL), repr=False)
    initialized: bool = False
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def ensure_initialized(self) -> bool:
        """Return True when this call applied the schema."""
        async with self._lock:
            if self.initialized:
                return False
            if self.pool_manager.pool is None:
                await self.pool_manager.startup()
            async with self.pool_manager.pool.acquire() as conn:
                await conn.execute(self.schema_sql)
            self.initialized = True
            logger.info("database schema ensured", extra={"service": "db"})
            return True


@dataclass
class PostgresSubmissionRepository:
    pool_manager: AsyncpgPoolManager

    def _pool(self) -> Any:
        if self.pool_manager.pool is None:
            raise RuntimeError("postgres pool is not initialized")
        return self.pool_manager.pool

    async def create_submission(self, cmd: CreateSubmissionCommand) -> SubmissionSnapshot:
        pool = self._pool()
        async with pool.acquire() as conn:
            for _ in range(5):
                tracking_code = cmd.tracking_code or new_tracking_code()
                try:
                    row = await conn.fetchrow(
                        SQL_CREATE_SUBMISSION,
                        new_submission_id(),
                        tracking_code,
                        cmd.name,
                        cmd.national_id,
                        cmd.whatsapp_number,
                        cmd.email,
                        cmd.service_type,
                        cmd.status.value,
                    )
                except Exception as exc:
                    if not _is_unique_violation(exc):
                        raise
                    if cmd.tracking_code is not None and _constraint_name(exc) == "submissions_tracking_code_key":
                        raise DomainInvariantError(f"tracking code already exists: {tracking_code}") from exc
                    continue
                if row is None:
                    raise DomainInvariantError("failed to create submission")
                return _submission_from_row(row)
        raise DomainInvariantError("failed to allocate unique submission identifiers")

    async def get_submission(self, *, submission_id: str) -> SubmissionSnapshot | None:
        pool = self._pool()
        async with pool.acquire() as conn:
            row = await conn.fetchrow(SQL_GET_SUBMISSION, submission_id)
        if row is None:
            return None
        return _submission_from_row(row)

    async def find_by_tracking_code(self, *, tracking_code: str) -> SubmissionSnapshot | None:
        pool = self._pool()
        async with pool.acquire() as conn:
            row = await conn.fetchrow(SQL_FIND_BY_TRACKING_CODE, tracking_code)
        if row is None:
            return None
        return _submission_from_row(row)

    async def compare_and_set_status(
        self,
        *,
        submission_id: str,
        expected_status: SubmissionStatus,
        new_status: SubmissionStatus,
    ) -> SubmissionSnapshot | None:
        pool = self._pool()
        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                SQL_COMPARE_AND_SET_STATUS,
                submission_id,
                expected_status.value,
                new_status.value,
            )
        if row is None:
            return None
        return _submission_from_row(row)

    async def append_notification_log(
        self,
        *,
        submission_id: str,
        channel: NotificationChannel,
        send_status: SendStatus,
        payload: dict[str, object],
    ) -> NotificationLogSnapshot:
        pool = self._pool()
        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                SQL_INSERT_NOTIFICATION_LOG,
                new_notification_log_id(),
                submission_id,
                channel.value,
                send_status.value,
                payload,
            )
        if row is None:
            raise DomainInvariantError("failed to append notification log")
        return _log_from_row(row)

    async def list_notification_logs(self, *, submission_id: str) -> list[NotificationLogSnapshot]:
        pool = self._pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(SQL_LIST_NOTIFICATION_LOGS, submission_id)
        return [_log_from_row(row) for row in rows]


def _submission_from_row(row: Any) -> SubmissionSnapshot:
    return SubmissionSnapshot(
        submission_id=row["id"],
        tracking_code=row["tracking_code"],
        name=row["name"],
        national_id=row["national_id"],
        whatsapp_number=row["whatsapp_number"],
        email=row["email"],
        service_type=row["service_type"],
        status=SubmissionStatus(row["status"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _log_from_row(row: Any) -> NotificationLogSnapshot:
    return NotificationLogSnapshot(
        log_id=row["id"],
        submission_id=row["submission_id"],
        channel=NotificationChannel(row["channel"]),
        send_status=SendStatus(row["send_status"]),
        payload=_json_object(row["payload"]),
        created_at=row["created_at"],
    )


def _json_object(value: object) -> dict[str, object]:
    if isinstance(value, dict):
        return dict(value)
    if isinstance(value, str):
        parsed = json.loads(value)
        if isinstance(parsed, dict):
            return parsed
    return {}
