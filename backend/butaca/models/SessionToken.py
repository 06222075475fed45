from datetime import datetime
from enum import Enum
from typing import Any
from sqlmodel import SQLModel, Field

from .User import UserResponse, utcnow

class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"

class TokenPayload(SQLModel):
    iss: str # Issuer name
    aud: str # Audience
    iat: int # Issued at (epoch seconds)
    exp: int # Expiration time (epoch seconds)
    user_id: int
    type: TokenType
    data: dict[str, Any] = {} # User snapshot (name, email, avatar)
    jti: str | None = None # Unique token id

class TokenPair(SQLModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int # Access token lifetime in seconds

class TokenStats(SQLModel):
    total: int = 0
    active: int = 0
    valid: int = 0
    access_tokens: int = 0
    refresh_tokens: int = 0

class SessionToken(SQLModel, table=True):
    __tablename__ = "session_tokens"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(index=True)
    token_hash: str = Field(index=True, unique=True) # SHA-256 of the signed token
    token_type: str
    expires_at: datetime
    is_active: bool = Field(default=True)
    client_ip: str = Field(default="")
    user_agent: str = Field(default="")
    created_at: datetime = Field(default_factory=utcnow)

# Request / response bodies
class RefreshRequest(SQLModel):
    refresh_token: str | None = None

class LogoutRequest(SQLModel):
    logout_all: bool = False
    refresh_token: str | None = None

class AuthResponse(SQLModel):
    user: UserResponse
    tokens: TokenPair

class TokenInfo(SQLModel):
    expires_at: int
    issued_at: int
    type: TokenType

class VerifyResponse(SQLModel):
    user: UserResponse
    token_info: TokenInfo

class LogoutResponse(SQLModel):
    message: str
    logout_all: bool
    timestamp: int
