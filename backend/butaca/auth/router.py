import time
from typing import Annotated

from fastapi import APIRouter, Body, Depends, Request, status
from sqlmodel import Session

from ..activity.service import log_activity
from ..core.database import get_session
from ..models.Activity import ActivityAction
from ..models.SessionToken import (
    AuthResponse,
    LogoutRequest,
    LogoutResponse,
    RefreshRequest,
    TokenInfo,
    VerifyResponse,
)
from ..models.User import LoginRequest, RegisterRequest, UserResponse
from ..throttle.guard import ThrottleGuard
from ..tokens.manager import SessionManager
from .dependencies import (
    Identity,
    client_agent,
    client_ip,
    extract_token,
    get_identity,
    get_session_manager,
    get_throttle_guard,
)
from .errors import Unauthorized
from .service import authenticate_user, get_active_user, register_user

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    request: Request,
    session: Session = Depends(get_session),
    manager: SessionManager = Depends(get_session_manager),
    guard: ThrottleGuard = Depends(get_throttle_guard),
):
    """
    Create an account and sign the user in straight away.
    """
    ip, agent = client_ip(request), client_agent(request)
    user = await register_user(session, guard, data, ip, agent)
    tokens = manager.issue_token_pair(user.id, user.snapshot(), ip, agent)
    return AuthResponse(user=UserResponse.model_validate(user), tokens=tokens)

@router.post("/login", response_model=AuthResponse)
async def login(
    data: LoginRequest,
    request: Request,
    session: Session = Depends(get_session),
    manager: SessionManager = Depends(get_session_manager),
    guard: ThrottleGuard = Depends(get_throttle_guard),
):
    """
    Login with email and password to get an access/refresh token pair.
    """
    ip, agent = client_ip(request), client_agent(request)
    user = await authenticate_user(session, guard, data, ip, agent)

    manager.cleanup_expired_tokens()
    tokens = manager.issue_token_pair(user.id, user.snapshot(), ip, agent)
    return AuthResponse(user=UserResponse.model_validate(user), tokens=tokens)

@router.post("/logout", response_model=LogoutResponse)
async def logout(
    request: Request,
    identity: Annotated[Identity, Depends(get_identity)],
    data: LogoutRequest | None = Body(default=None),
    session: Session = Depends(get_session),
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Revoke the presented token, or every token of the user with logout_all.
    """
    data = data or LogoutRequest()
    if data.logout_all:
        manager.revoke_all(identity.user_id)
        action, message = ActivityAction.LOGOUT_ALL, "Logged out from all sessions"
    else:
        manager.revoke(extract_token(request), identity.user_id)
        if data.refresh_token:
            manager.revoke(data.refresh_token, identity.user_id)
        action, message = ActivityAction.LOGOUT, "Logged out successfully"

    log_activity(session, action, client_ip(request), client_agent(request), identity.user_id, {"logout_all": data.logout_all})
    manager.cleanup_expired_tokens()
    return LogoutResponse(message=message, logout_all=data.logout_all, timestamp=int(time.time()))

@router.api_route("/verify", methods=["GET", "POST"], response_model=VerifyResponse)
async def verify(
    identity: Annotated[Identity, Depends(get_identity)],
    session: Session = Depends(get_session),
):
    """
    Check a token and return the current profile behind it.
    """
    user = get_active_user(session, identity.user_id)
    if user is None:
        raise Unauthorized(reason="user_inactive")
    token_info = TokenInfo(
        expires_at=identity.payload.exp,
        issued_at=identity.payload.iat,
        type=identity.payload.type,
    )
    return VerifyResponse(user=UserResponse.model_validate(user), token_info=token_info)

@router.post("/refresh", response_model=AuthResponse)
async def refresh(
    request: Request,
    data: RefreshRequest | None = Body(default=None),
    session: Session = Depends(get_session),
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Exchange a refresh token for a new pair. The presented token is spent.
    """
    refresh_token = (data.refresh_token if data else None) or extract_token(request)
    if not refresh_token:
        raise Unauthorized("Refresh token required", reason="missing")

    ip, agent = client_ip(request), client_agent(request)
    tokens = manager.refresh(refresh_token, ip, agent)

    payload = manager.verify(tokens.access_token)
    user = get_active_user(session, payload.user_id)
    if user is None:
        manager.revoke(tokens.access_token)
        manager.revoke(tokens.refresh_token)
        raise Unauthorized(reason="user_inactive")

    log_activity(session, ActivityAction.TOKEN_REFRESH, ip, agent, user.id)
    return AuthResponse(user=UserResponse.model_validate(user), tokens=tokens)
