import time
from typing import Callable, Optional

from pydantic import ValidationError

from ..auth import signing
from ..auth.errors import AuthError, InvalidSignature, InvalidTokenType, TokenRevoked, Unauthorized
from ..core.logging import get_logger
from ..core.settings import Settings
from ..models.SessionToken import TokenPair, TokenPayload, TokenStats, TokenType
from .store import StoreUnavailable, TokenStore

logger = get_logger(__name__)


class SessionManager:
    """
    Issues, verifies, revokes and rotates access/refresh token pairs.

    A token is accepted only when its signature verifies, its ``exp`` is in
    the future and its store row is still active. Revoked or expired tokens
    never come back, whatever their signature says.
    """

    def __init__(self, store: TokenStore, settings: Settings, clock: Callable[[], float] = time.time):
        self.store = store
        self.settings = settings
        self.clock = clock

    def _lifetime(self, kind: TokenType) -> int:
        if kind == TokenType.REFRESH:
            return self.settings.REFRESH_TOKEN_EXPIRE_SECONDS
        return self.settings.ACCESS_TOKEN_EXPIRE_SECONDS

    def _sign(self, user_id: int, snapshot: dict, kind: TokenType) -> tuple[str, int]:
        payload = signing.build_payload(
            issuer=self.settings.JWT_ISSUER,
            audience=self.settings.JWT_AUDIENCE,
            user_id=user_id,
            token_type=kind.value,
            issued_at=int(self.clock()),
            lifetime=self._lifetime(kind),
            data=snapshot,
        )
        header = {"typ": "JWT", "alg": self.settings.JWT_ALGORITHM}
        return signing.sign(header, payload, self.settings.JWT_SECRET), payload["exp"]

    def _build_pair(self, user_id: int, snapshot: dict) -> tuple[TokenPair, dict]:
        access_token, access_exp = self._sign(user_id, snapshot, TokenType.ACCESS)
        refresh_token, refresh_exp = self._sign(user_id, snapshot, TokenType.REFRESH)
        pair = TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.settings.ACCESS_TOKEN_EXPIRE_SECONDS,
        )
        return pair, {TokenType.ACCESS: access_exp, TokenType.REFRESH: refresh_exp}

    def issue_token_pair(
        self,
        user_id: int,
        snapshot: Optional[dict] = None,
        client_ip: str = "",
        user_agent: str = "",
    ) -> TokenPair:
        """
        Signs a new access/refresh pair and records both in the store.
        Other pairs the user already holds stay valid (one per device).
        """
        snapshot = snapshot or {}
        pair, expiries = self._build_pair(user_id, snapshot)
        self.store.save(user_id, pair.access_token, TokenType.ACCESS.value, expiries[TokenType.ACCESS], client_ip, user_agent)
        self.store.save(user_id, pair.refresh_token, TokenType.REFRESH.value, expiries[TokenType.REFRESH], client_ip, user_agent)
        logger.info("token_pair_issued", user_id=user_id)
        return pair

    def verify(self, token: str) -> TokenPayload:
        """
        Raises Unauthorized with the failing stage kept in ``reason``.
        """
        now = self.clock()
        try:
            claims = signing.verify(token, self.settings.JWT_SECRET, now=now, algorithm=self.settings.JWT_ALGORITHM)
            try:
                payload = TokenPayload.model_validate(claims)
            except ValidationError:
                raise InvalidSignature("Token payload is missing required claims")
            if not self.store.is_active(token, now=now):
                raise TokenRevoked("Token has been revoked")
        except AuthError as e:
            logger.info("token_rejected", reason=e.reason)
            raise Unauthorized.from_error(e)
        return payload

    def revoke(self, token: str, user_id: Optional[int] = None) -> bool:
        changed = self.store.deactivate(token, user_id)
        logger.info("token_revoked", changed=changed)
        return changed

    def revoke_all(self, user_id: int) -> int:
        count = self.store.deactivate_all_for_user(user_id)
        logger.info("user_tokens_revoked", user_id=user_id, count=count)
        return count

    def refresh(self, refresh_token: str, client_ip: str = "", user_agent: str = "") -> TokenPair:
        """
        Single-use rotation: the presented refresh token is deactivated and a
        brand new pair is issued in the same transaction.
        """
        payload = self.verify(refresh_token)
        if payload.type != TokenType.REFRESH:
            logger.info("token_rejected", reason=InvalidTokenType.reason, user_id=payload.user_id)
            raise InvalidTokenType("Invalid refresh token")

        pair, expiries = self._build_pair(payload.user_id, payload.data)
        rows = [
            self.store.make_row(payload.user_id, pair.access_token, TokenType.ACCESS.value,
                                expiries[TokenType.ACCESS], client_ip, user_agent),
            self.store.make_row(payload.user_id, pair.refresh_token, TokenType.REFRESH.value,
                                expiries[TokenType.REFRESH], client_ip, user_agent),
        ]
        try:
            self.store.rotate(refresh_token, rows)
        except TokenRevoked as e:
            logger.info("token_rejected", reason=e.reason, user_id=payload.user_id)
            raise Unauthorized.from_error(e)
        except StoreUnavailable:
            raise Unauthorized(reason="store_unavailable")

        logger.info("token_pair_rotated", user_id=payload.user_id)
        return pair

    def cleanup_expired_tokens(self) -> int:
        purged = self.store.purge_expired_or_inactive(now=self.clock())
        if purged:
            logger.info("tokens_purged", count=purged)
        return purged

    def token_stats(self, user_id: Optional[int] = None) -> Optional[TokenStats]:
        return self.store.stats(user_id, now=self.clock())
