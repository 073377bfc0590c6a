from __future__ import annotations

import gradebook.lib.cli as click
from gradebook.core import di
from gradebook.grading import AuditTrail
from gradebook.model import AuditActionType

from .grade import echo_json


@click.group("audit")
def audit(): ...


@audit.command()
@click.option("-n", "--limit", type=int, default=None)
@click.option("--actor-id", default=None)
@click.option("--action-type", type=click.EnumType(AuditActionType), default=None)
@click.option("--target-id", default=None)
@di.inject
def tail(
    limit: int | None,
    actor_id: str | None,
    action_type: AuditActionType | None,
    target_id: str | None,
    trail: AuditTrail = di.Provide["grading.audit"],
):
    """Most recent audit entries, newest first."""
    echo_json(trail.find(limit=limit, actor_id=actor_id, action_type=action_type, target_id=target_id))


command = audit
