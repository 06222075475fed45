import json
from typing import Optional

from sqlmodel import Session

from ..models.Activity import ActivityAction, ActivityLog


def log_activity(
    db: Session,
    action: ActivityAction,
    client_ip: str = "",
    user_agent: str = "",
    user_id: Optional[int] = None,
    details: Optional[dict] = None,
) -> ActivityLog:
    """
    Appends an entry to the activity log.
    """
    entry = ActivityLog(
        user_id=user_id,
        action=action.value,
        details=json.dumps(details or {}),
        client_ip=client_ip or "",
        user_agent=user_agent or "",
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)

    return entry
