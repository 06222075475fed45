import hashlib
import time
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import case, delete, func, or_, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..auth.errors import TokenRevoked
from ..core.logging import get_logger
from ..models.SessionToken import SessionToken, TokenStats

logger = get_logger(__name__)


class StoreUnavailable(Exception):
    """The token table could not be read or written."""


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def to_datetime(epoch: float) -> datetime:
    return datetime.fromtimestamp(epoch, timezone.utc)


class TokenStore:
    """
    Server-side ledger of issued tokens.

    Revocation lives only here: a token whose row is inactive stays
    cryptographically valid but is refused by the session manager.
    Rows are keyed by the SHA-256 of the token, never the token itself.
    """

    def __init__(self, engine: Engine, fail_mode: str = "open"):
        if fail_mode not in ("open", "closed"):
            raise ValueError(f"Unknown revocation fail mode: {fail_mode!r}")
        self.engine = engine
        self.fail_mode = fail_mode

    def make_row(
        self,
        user_id: int,
        token: str,
        kind: str,
        expires_at: float,
        client_ip: str = "",
        client_agent: str = "",
    ) -> SessionToken:
        return SessionToken(
            user_id=user_id,
            token_hash=hash_token(token),
            token_type=kind,
            expires_at=to_datetime(expires_at),
            is_active=True,
            client_ip=client_ip or "",
            user_agent=client_agent or "",
        )

    def save(
        self,
        user_id: int,
        token: str,
        kind: str,
        expires_at: float,
        client_ip: str = "",
        client_agent: str = "",
    ) -> bool:
        """
        Persists a freshly issued token. Failures are logged, never raised:
        the token still works, it just cannot be revoked server-side.
        """
        row = self.make_row(user_id, token, kind, expires_at, client_ip, client_agent)
        try:
            with Session(self.engine) as session:
                session.add(row)
                session.commit()
            return True
        except SQLAlchemyError as e:
            logger.error("token_save_failed", user_id=user_id, token_type=kind, error=str(e))
            return False

    def is_active(self, token: str, now: Optional[float] = None) -> bool:
        current = to_datetime(time.time() if now is None else now)
        statement = select(SessionToken.id).where(
            SessionToken.token_hash == hash_token(token),
            SessionToken.is_active == True,  # noqa: E712
            SessionToken.expires_at > current,
        )
        try:
            with Session(self.engine) as session:
                return session.exec(statement).first() is not None
        except SQLAlchemyError as e:
            # Fail-open weakens revocation for as long as the outage lasts
            logger.warning("token_lookup_failed", fail_mode=self.fail_mode, error=str(e))
            return self.fail_mode == "open"

    def deactivate(self, token: str, user_id: Optional[int] = None) -> bool:
        """
        Marks a single token inactive. Returns True if a row changed.
        With ``user_id`` only a row owned by that user is touched.
        """
        statement = (
            update(SessionToken)
            .where(SessionToken.token_hash == hash_token(token), SessionToken.is_active == True)  # noqa: E712
            .values(is_active=False)
        )
        if user_id is not None:
            statement = statement.where(SessionToken.user_id == user_id)
        try:
            with Session(self.engine) as session:
                result = session.connection().execute(statement)
                session.commit()
                return result.rowcount > 0
        except SQLAlchemyError as e:
            logger.error("token_deactivate_failed", error=str(e))
            return False

    def deactivate_all_for_user(self, user_id: int) -> int:
        statement = (
            update(SessionToken)
            .where(SessionToken.user_id == user_id, SessionToken.is_active == True)  # noqa: E712
            .values(is_active=False)
        )
        try:
            with Session(self.engine) as session:
                result = session.connection().execute(statement)
                session.commit()
                return result.rowcount
        except SQLAlchemyError as e:
            logger.error("token_deactivate_all_failed", user_id=user_id, error=str(e))
            return 0

    def purge_expired_or_inactive(self, now: Optional[float] = None) -> int:
        current = to_datetime(time.time() if now is None else now)
        statement = delete(SessionToken).where(
            or_(SessionToken.expires_at < current, SessionToken.is_active == False)  # noqa: E712
        )
        try:
            with Session(self.engine) as session:
                result = session.connection().execute(statement)
                session.commit()
                return result.rowcount
        except SQLAlchemyError as e:
            logger.error("token_purge_failed", error=str(e))
            return 0

    def rotate(self, old_token: str, replacements: Iterable[SessionToken]) -> None:
        """
        Deactivates ``old_token`` and inserts ``replacements`` in one transaction.

        Raises TokenRevoked when the old row was no longer active (already
        rotated by a concurrent request) and StoreUnavailable on database errors.
        Nothing is written in either case.
        """
        statement = (
            update(SessionToken)
            .where(SessionToken.token_hash == hash_token(old_token), SessionToken.is_active == True)  # noqa: E712
            .values(is_active=False)
        )
        try:
            with Session(self.engine) as session:
                result = session.connection().execute(statement)
                if result.rowcount != 1:
                    session.rollback()
                    raise TokenRevoked("Refresh token already used")
                for row in replacements:
                    session.add(row)
                session.commit()
        except SQLAlchemyError as e:
            logger.error("token_rotate_failed", error=str(e))
            raise StoreUnavailable(str(e)) from e

    def stats(self, user_id: Optional[int] = None, now: Optional[float] = None) -> Optional[TokenStats]:
        current = to_datetime(time.time() if now is None else now)
        statement = select(
            func.count(SessionToken.id),
            func.sum(case((SessionToken.is_active == True, 1), else_=0)),  # noqa: E712
            func.sum(case((SessionToken.expires_at > current, 1), else_=0)),
            func.sum(case((SessionToken.token_type == "access", 1), else_=0)),
            func.sum(case((SessionToken.token_type == "refresh", 1), else_=0)),
        )
        if user_id is not None:
            statement = statement.where(SessionToken.user_id == user_id)
        try:
            with Session(self.engine) as session:
                total, active, valid, access, refresh = session.exec(statement).one()
        except SQLAlchemyError as e:
            logger.error("token_stats_failed", user_id=user_id, error=str(e))
            return None
        return TokenStats(
            total=total or 0,
            active=active or 0,
            valid=valid or 0,
            access_tokens=access or 0,
            refresh_tokens=refresh or 0,
        )
