from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from ..auth.dependencies import Identity, get_identity, get_session_manager
from ..auth.errors import Unauthorized
from ..auth.service import get_active_user
from ..core.database import get_session
from ..models.SessionToken import TokenStats
from ..models.User import UserResponse
from ..tokens.manager import SessionManager

router = APIRouter(prefix="/users", tags=["users"])

@router.get("/me", response_model=UserResponse)
async def read_current_user(
    identity: Annotated[Identity, Depends(get_identity)],
    session: Session = Depends(get_session),
):
    """
    Get the profile of the authenticated user.
    """
    user = get_active_user(session, identity.user_id)
    if user is None:
        raise Unauthorized(reason="user_inactive")
    return user

@router.get("/me/sessions", response_model=TokenStats)
async def read_session_stats(
    identity: Annotated[Identity, Depends(get_identity)],
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Count the tokens issued to the authenticated user.
    """
    stats = manager.token_stats(identity.user_id)
    if stats is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Session statistics unavailable")
    return stats
