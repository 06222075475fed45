from urllib.parse import urlencode

from fastapi import HTTPException, status
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..activity.service import log_activity
from ..core.logging import get_logger
from ..core.settings import settings
from ..models.Activity import ActivityAction
from ..models.User import LoginRequest, RegisterRequest, User, utcnow
from ..throttle.guard import ThrottleGuard

logger = get_logger(__name__)

# Password hashing
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
    argon2__time_cost=settings.PASSWORD_HASH_TIME_COST,
    argon2__memory_cost=settings.PASSWORD_HASH_MEMORY_COST,
    argon2__parallelism=8
)

def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password + settings.PASSWORD_PEPPER, hashed_password)

def get_password_hash(password):
    return pwd_context.hash(password + settings.PASSWORD_PEPPER)

def default_avatar(name: str) -> str:
    query = urlencode({"name": name, "background": "667eea", "color": "fff", "size": 200})
    return f"https://ui-avatars.com/api/?{query}"

def invalid_credentials() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

async def register_user(
    session: Session,
    guard: ThrottleGuard,
    data: RegisterRequest,
    client_ip: str,
    user_agent: str = "",
) -> User:
    """
    Creates an account. Limited per originating address, independently of
    the login failure counter.
    """
    existing = session.exec(select(User).where(User.email == data.email)).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    guard.ensure_registration_allowed(session, client_ip)

    avatar = data.avatar.strip() if data.avatar else ""
    user = User(
        name=data.name,
        email=data.email,
        hashed_password=get_password_hash(data.password),
        avatar=avatar or default_avatar(data.name),
        is_active=True,
        registration_ip=client_ip,
    )
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        # Lost a race against another registration for the same email
        session.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    session.refresh(user)

    log_activity(session, ActivityAction.REGISTER, client_ip, user_agent, user.id, {"email": user.email})
    logger.info("user_registered", user_id=user.id)
    return user

async def authenticate_user(
    session: Session,
    guard: ThrottleGuard,
    data: LoginRequest,
    client_ip: str,
    user_agent: str = "",
) -> User:
    """
    Checks credentials for a login attempt. Every failure is recorded against
    the client address so the guard can block brute force.
    """
    guard.ensure_login_allowed(session, client_ip)

    user = session.exec(select(User).where(User.email == data.email)).first()
    if not user:
        guard.record_failure(session, client_ip, details={"email": data.email, "reason": "user_not_found"}, user_agent=user_agent)
        raise invalid_credentials()

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account disabled. Contact the administrator.")

    if not verify_password(data.password, user.hashed_password):
        guard.record_failure(session, client_ip, user.id, {"email": data.email, "reason": "invalid_password"}, user_agent)
        raise invalid_credentials()

    user.last_access_at = utcnow()
    user.last_access_ip = client_ip
    session.add(user)
    session.commit()
    session.refresh(user)

    log_activity(session, ActivityAction.LOGIN_SUCCESS, client_ip, user_agent, user.id, {"email": user.email})
    return user

def get_active_user(session: Session, user_id: int) -> User | None:
    user = session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user
