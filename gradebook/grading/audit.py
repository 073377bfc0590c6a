"""Fail-safe audit trail.

Every entry lands in a bounded in-memory ring buffer first, then is written to
the ``audit_logs`` table in its own transaction. Nothing here raises into the
operation being audited: a failed durable write is logged and the entry stays
in the buffer only.
"""

from __future__ import annotations

import collections
import concurrent.futures
import functools
import logging
import queue
import threading
import typing as t

import sqlalchemy.exc
import sqlalchemy.orm

from gradebook.core.provider import TimestampProvider
from gradebook.model import AuditActionType, AuditLogEntry, AuditLogID
from gradebook.storage import audit_log as audit_log_storage

logger = logging.getLogger(__name__)


class AuditTrail(object):
    def __init__(
        self,
        sessionmaker: sqlalchemy.orm.sessionmaker[sqlalchemy.orm.Session],
        clock: TimestampProvider,
        buffer_size: int = 100,
        default_limit: int = 50,
        background: bool = False,
        workers: int = 2,
    ):
        self._sessionmaker = sessionmaker
        self._clock = clock
        self._default_limit = default_limit
        self._buffer: collections.deque[AuditLogEntry] = collections.deque(maxlen=buffer_size)
        self._lock = threading.Lock()
        self._errors: queue.SimpleQueue[Exception] = queue.SimpleQueue()
        self._pending: set[concurrent.futures.Future[AuditLogID]] = set()
        self._pool: concurrent.futures.ThreadPoolExecutor | None = None
        if background:
            self._pool = concurrent.futures.ThreadPoolExecutor(max_workers=workers, thread_name_prefix="audit")

    def record(
        self,
        actor_id: str,
        actor_name: str,
        action_type: AuditActionType,
        target_id: str,
        details: str,
        metadata: dict[str, t.Any] | None = None,
    ) -> AuditLogID | None:
        """Buffer and durably write an entry, waiting for the write.

        Returns:
            the new entry's id, or None if the durable write failed
        """
        entry = self._buffer_entry(actor_id, actor_name, action_type, target_id, details, metadata)
        if entry is None:
            return None
        return self._persist(entry)

    def emit(
        self,
        actor_id: str,
        actor_name: str,
        action_type: AuditActionType,
        target_id: str,
        details: str,
        metadata: dict[str, t.Any] | None = None,
    ) -> None:
        """Fire-and-forget variant of `record`.

        With a worker pool the durable write happens off-thread. Either way a
        failed write is logged and collected for `drain_errors`.
        """
        entry = self._buffer_entry(actor_id, actor_name, action_type, target_id, details, metadata)
        if entry is None:
            return

        if self._pool is None:
            self._persist(entry)
            return

        try:
            future = self._pool.submit(self._write, entry)
        except RuntimeError:
            # pool already shut down
            self._persist(entry)
            return

        with self._lock:
            self._pending.add(future)
        future.add_done_callback(functools.partial(self._on_write_done, entry))

    def find(
        self,
        limit: int | None = None,
        actor_id: str | None = None,
        action_type: AuditActionType | None = None,
        target_id: str | None = None,
    ) -> list[AuditLogEntry]:
        """Most recent entries first; served from the buffer if the store cannot be read."""
        limit = limit or self._default_limit
        try:
            with self._sessionmaker() as session, session.begin():
                entries = audit_log_storage.find(
                    limit=limit,
                    actor_id=actor_id,
                    action_type=action_type,
                    target_id=target_id,
                    session=session,
                )
            return list(entries)
        except sqlalchemy.exc.SQLAlchemyError:
            logger.exception("audit store unreadable, serving from memory buffer")

        matches = [
            entry
            for entry in self.recent()
            if (actor_id is None or entry.actor_id == actor_id)
            and (action_type is None or entry.action_type is action_type)
            and (target_id is None or entry.target_id == target_id)
        ]
        return matches[:limit]

    def recent(self) -> list[AuditLogEntry]:
        """Copy of the memory buffer, newest first."""
        with self._lock:
            return list(reversed(self._buffer))

    def drain_errors(self) -> list[Exception]:
        errors: list[Exception] = []
        while True:
            try:
                errors.append(self._errors.get_nowait())
            except queue.Empty:
                return errors

    def flush(self, timeout: float | None = None) -> None:
        """Wait for background writes that have been submitted so far."""
        with self._lock:
            pending = list(self._pending)
        concurrent.futures.wait(pending, timeout=timeout)

    def close(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None

    def _buffer_entry(
        self,
        actor_id: str,
        actor_name: str,
        action_type: AuditActionType,
        target_id: str,
        details: str,
        metadata: dict[str, t.Any] | None,
    ) -> AuditLogEntry | None:
        try:
            entry = AuditLogEntry(
                log_id=AuditLogID(),
                actor_id=actor_id,
                actor_name=actor_name,
                action_type=action_type,
                target_id=target_id,
                details=details,
                timestamp=self._clock(),
                metadata=metadata,
            )
        except Exception:
            logger.exception(
                "could not build audit entry",
                extra={"actor_id": actor_id, "action_type": str(action_type), "target_id": target_id},
            )
            return None

        with self._lock:
            self._buffer.append(entry)
        logger.info(
            details,
            extra={
                "audit_log_id": entry.log_id,
                "actor_id": actor_id,
                "action_type": entry.action_type.value,
                "target_id": target_id,
            },
        )
        return entry

    def _persist(self, entry: AuditLogEntry) -> AuditLogID | None:
        try:
            return self._write(entry)
        except Exception as e:
            self._report(entry, e)
            return None

    def _write(self, entry: AuditLogEntry) -> AuditLogID:
        with self._sessionmaker() as session, session.begin():
            audit_log_storage.create(
                {
                    "log_id": entry.log_id,
                    "actor_id": entry.actor_id,
                    "actor_name": entry.actor_name,
                    "action_type": entry.action_type,
                    "target_id": entry.target_id,
                    "details": entry.details,
                    "timestamp": entry.timestamp,
                    "metadata": entry.metadata,
                },
                session=session,
            )
        return entry.log_id

    def _on_write_done(self, entry: AuditLogEntry, future: concurrent.futures.Future[AuditLogID]) -> None:
        with self._lock:
            self._pending.discard(future)
        exc = future.exception()
        if isinstance(exc, Exception):
            self._report(entry, exc)

    def _report(self, entry: AuditLogEntry, exc: Exception) -> None:
        self._errors.put(exc)
        logger.error(
            "audit write failed; entry retained in memory only",
            exc_info=exc,
            extra={
                "audit_log_id": entry.log_id,
                "action_type": entry.action_type.value,
                "target_id": entry.target_id,
            },
        )
