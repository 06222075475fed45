import time
from datetime import timedelta
from typing import Optional

from sqlalchemy import func
from sqlmodel import Session, select

from ..activity.service import log_activity
from ..auth.errors import RateLimited
from ..core.logging import get_logger
from ..core.settings import Settings
from ..models.Activity import ActivityAction, ActivityLog
from ..models.User import User
from ..tokens.store import to_datetime

logger = get_logger(__name__)


class ThrottleGuard:
    """
    Sliding-window limits per client address.

    Login: blocked once LOGIN_FAILURE_LIMIT failures fall inside the trailing
    window. Registration: blocked once REGISTRATION_LIMIT accounts were created
    from the address inside its window. Blocks lift on their own as the window
    moves; there is no manual unblock.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def _window_start(self, seconds: int, now: Optional[float]):
        current = to_datetime(time.time() if now is None else now)
        return current - timedelta(seconds=seconds)

    def record_failure(
        self,
        session: Session,
        client_ip: str,
        user_id: Optional[int] = None,
        details: Optional[dict] = None,
        user_agent: str = "",
    ) -> ActivityLog:
        return log_activity(
            session,
            ActivityAction.LOGIN_FAILED,
            client_ip=client_ip,
            user_agent=user_agent,
            user_id=user_id,
            details=details,
        )

    def failure_count(self, session: Session, client_ip: str, now: Optional[float] = None) -> int:
        statement = select(func.count(ActivityLog.id)).where(
            ActivityLog.action == ActivityAction.LOGIN_FAILED.value,
            ActivityLog.client_ip == client_ip,
            ActivityLog.created_at > self._window_start(self.settings.LOGIN_FAILURE_WINDOW_SECONDS, now),
        )
        return session.exec(statement).one()

    def is_blocked(self, session: Session, client_ip: str, now: Optional[float] = None) -> bool:
        return self.failure_count(session, client_ip, now) >= self.settings.LOGIN_FAILURE_LIMIT

    def registration_blocked(self, session: Session, client_ip: str, now: Optional[float] = None) -> bool:
        statement = select(func.count(User.id)).where(
            User.registration_ip == client_ip,
            User.registered_at > self._window_start(self.settings.REGISTRATION_WINDOW_SECONDS, now),
        )
        return session.exec(statement).one() >= self.settings.REGISTRATION_LIMIT

    def ensure_login_allowed(self, session: Session, client_ip: str) -> None:
        if self.is_blocked(session, client_ip):
            logger.warning("login_throttled", client_ip=client_ip)
            raise RateLimited("Too many failed attempts. Try again later.")

    def ensure_registration_allowed(self, session: Session, client_ip: str) -> None:
        if self.registration_blocked(session, client_ip):
            logger.warning("registration_throttled", client_ip=client_ip)
            raise RateLimited("Too many registrations from this address. Try again later.")
