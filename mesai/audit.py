from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from mesai.models import ActivityLog

logger = logging.getLogger("mesai.audit")


def log_activity(
    db: Session,
    *,
    performed_by: str,
    action_type: str,
    resource_type: str,
    resource_id: str | int | None = None,
    company_id: int | None = None,
    employee_id: int | None = None,
    details: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> None:
    entry = ActivityLog(
        created_at=datetime.now(timezone.utc),
        company_id=company_id,
        employee_id=employee_id,
        performed_by=performed_by,
        action_type=action_type,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        details=details or {},
    )
    db.add(entry)
    try:
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(
            "activity_log_write_failed",
            extra={
                "request_id": request_id,
                "action_type": action_type,
                "performed_by": performed_by,
                "resource_type": resource_type,
            },
        )
        return

    logger.info(
        "activity_event",
        extra={
            "request_id": request_id,
            "action_type": action_type,
            "performed_by": performed_by,
            "resource_type": resource_type,
            "resource_id": entry.resource_id,
            "company_id": company_id,
            "employee_id": employee_id,
            "details": details or {},
        },
    )
