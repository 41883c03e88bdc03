"""Audit log service."""

import contextlib
from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import Session

from ..rate_limit import get_client_ip
from .models import AuditLog


def _session_user_id(request: Request) -> UUID | None:
    uid = request.session.get("user_id") if "session" in request.scope else None
    if uid:
        with contextlib.suppress(ValueError, AttributeError):
            return UUID(uid)
    return None


def audit(
    db: Session,
    request: Request,
    action: str,
    detail: str = "",
    user_id: UUID | None = None,
    schedule_id: UUID | None = None,
) -> None:
    """Write an audit log entry. The caller commits."""
    if user_id is None:
        user_id = _session_user_id(request)

    db.add(
        AuditLog(
            user_id=user_id,
            schedule_id=schedule_id,
            action=action,
            detail=detail,
            ip_address=get_client_ip(request),
        )
    )
