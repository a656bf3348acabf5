"""
orderdesk/audit.py

Audit logging helpers.

Goals:
- Capture WHO did WHAT to WHICH entity, with BEFORE/AFTER snapshots.
- Store username snapshot so the entry stays readable if the user is renamed.
- Store IP address when the action happens inside a request.

IMPORTANT:
- This helper ADDS AuditLog entries to the current SQLAlchemy session.
  The caller controls transaction boundaries (commit/rollback).
- CLI commands (seed-demo) run without a request; user and IP are then empty.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from flask import has_request_context, request
from flask_login import current_user

from .extensions import db
from .models import AuditLog


def _safe_str(value: Any) -> Optional[str]:
    """Stable string form for JSON/DB storage (Decimal, datetime, ...)."""
    if value is None:
        return None
    return str(value)


def serialize_model(instance: Any) -> Dict[str, Optional[str]]:
    """
    Snapshot a model's scalar columns as strings.

    Relationships are not followed; ledger rows are audited on their own.
    """
    return {column.name: _safe_str(getattr(instance, column.name)) for column in instance.__table__.columns}


def log_action(
    entity: Any,
    action: str,
    *,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Add an AuditLog entry to the current db session.

    Parameters:
        entity: model instance with .id (flush first for new rows)
        action: CREATE / TRANSITION / NEGOTIATE / APPROVE / PAYMENT / DELETE
        before: dict snapshot (optional)
        after: dict snapshot (optional)
    """
    entity_id = getattr(entity, "id", None)
    if entity_id is None:
        raise ValueError("log_action entity must have an 'id' attribute (after flush).")

    user_id = None
    username = None
    ip_address = None
    if has_request_context():
        ip_address = request.remote_addr
        if current_user.is_authenticated:
            user_id = current_user.id
            username = current_user.username

    db.session.add(
        AuditLog(
            user_id=user_id,
            username_snapshot=username,
            entity_type=entity.__class__.__name__,
            entity_id=int(entity_id),
            action=str(action),
            before_data=json.dumps(before, ensure_ascii=False) if before else None,
            after_data=json.dumps(after, ensure_ascii=False) if after else None,
            ip_address=ip_address,
        )
    )
