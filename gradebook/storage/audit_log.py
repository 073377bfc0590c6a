"""Storage functions for the audit trail.

Entries are write-once: this module deliberately offers no update or delete.
"""

from __future__ import annotations

import datetime
import typing as t

import sqlalchemy as sqla

from gradebook.core import di
from gradebook.model import AuditActionType, AuditLogEntry, AuditLogID

from . import Session
from .table import audit_logs

_table = audit_logs.__table__


def _to_entry(row: t.Mapping[str, t.Any]) -> AuditLogEntry:
    return AuditLogEntry(**row)


def get(log_id: AuditLogID, session: Session = di.Provide["storage.persistent.session"]) -> AuditLogEntry | None:
    stmt = sqla.select(_table).where(_table.c.log_id == log_id)
    row = session.execute(stmt).mappings().one_or_none()
    return _to_entry(row) if row else None


def find(
    *,
    limit: int = 50,
    actor_id: str | None = None,
    action_type: AuditActionType | None = None,
    target_id: str | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[AuditLogEntry, ...]:
    """Most recent entries first, optionally filtered."""
    stmt = sqla.select(_table).order_by(_table.c.timestamp.desc()).limit(limit)
    if actor_id is not None:
        stmt = stmt.where(_table.c.actor_id == actor_id)
    if action_type is not None:
        stmt = stmt.where(_table.c.action_type == action_type.value)
    if target_id is not None:
        stmt = stmt.where(_table.c.target_id == target_id)

    rows = session.execute(stmt).mappings().all()
    return tuple(_to_entry(row) for row in rows)


def create(params: AuditLogCreateParams, session: Session = di.Provide["storage.persistent.session"]) -> AuditLogEntry:
    log_id = params.get("log_id") or AuditLogID()
    stmt = sqla.insert(_table).values(
        log_id=log_id,
        actor_id=params["actor_id"],
        actor_name=params["actor_name"],
        action_type=params["action_type"].value,
        target_id=params["target_id"],
        details=params["details"],
        timestamp=params["timestamp"],
        metadata=params.get("metadata"),
    )
    session.execute(stmt)
    session.flush()
    result = get(log_id, session=session)
    assert result is not None
    return result


class AuditLogCreateParams(t.TypedDict, total=False):
    log_id: AuditLogID
    actor_id: t.Required[str]
    actor_name: t.Required[str]
    action_type: t.Required[AuditActionType]
    target_id: t.Required[str]
    details: t.Required[str]
    timestamp: t.Required[datetime.datetime]
    metadata: dict[str, t.Any] | None
