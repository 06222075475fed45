import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Request

from ..core.database import engine
from ..core.settings import settings
from ..models.SessionToken import TokenPayload, TokenType
from ..throttle.guard import ThrottleGuard
from ..tokens.manager import SessionManager
from ..tokens.store import TokenStore
from .errors import InvalidTokenType, Unauthorized

BEARER_PATTERN = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)
AUTH_HEADER = "X-Auth-Token"
QUERY_PARAM = "token"


@dataclass(frozen=True)
class Identity:
    """
    Who is calling. Handed to every protected handler explicitly.
    """
    user_id: int
    payload: TokenPayload


# Built once per process from the shared engine; override in tests
@lru_cache
def get_session_manager() -> SessionManager:
    return SessionManager(TokenStore(engine, settings.REVOCATION_FAIL_MODE), settings)


@lru_cache
def get_throttle_guard() -> ThrottleGuard:
    return ThrottleGuard(settings)


def extract_token(request: Request, allow_query: Optional[bool] = None) -> Optional[str]:
    """
    First match wins: Authorization bearer header, then X-Auth-Token,
    then the ``token`` query parameter (legacy clients, leaks into logs).
    """
    authorization = request.headers.get("Authorization")
    if authorization:
        match = BEARER_PATTERN.match(authorization.strip())
        if match:
            return match.group(1).strip()

    header_token = request.headers.get(AUTH_HEADER)
    if header_token:
        return header_token.strip()

    if allow_query is None:
        allow_query = settings.ALLOW_QUERY_TOKEN
    if allow_query:
        query_token = request.query_params.get(QUERY_PARAM)
        if query_token:
            return query_token

    return None


def authorize(request: Request, manager: SessionManager) -> Identity:
    token = extract_token(request)
    if not token:
        raise Unauthorized("Authentication token required", reason="missing")
    payload = manager.verify(token)
    if payload.type != TokenType.ACCESS:
        # Refresh tokens only mint new pairs
        raise InvalidTokenType("Access token required")
    return Identity(user_id=payload.user_id, payload=payload)


async def get_identity(
    request: Request,
    manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> Identity:
    return authorize(request, manager)


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "0.0.0.0"


def client_agent(request: Request) -> str:
    return request.headers.get("User-Agent", "")
