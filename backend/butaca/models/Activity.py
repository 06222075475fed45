from datetime import datetime
from enum import Enum
from typing import Optional
from sqlmodel import Field, SQLModel

from .User import utcnow

class ActivityAction(str, Enum):
    LOGIN_FAILED = "login_failed"
    LOGIN_SUCCESS = "login_success"
    LOGOUT = "logout"
    LOGOUT_ALL = "logout_all"
    REGISTER = "register"
    TOKEN_REFRESH = "token_refresh"

class ActivityLog(SQLModel, table=True):
    __tablename__ = "activity_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, index=True) # Unknown for failed logins on missing accounts
    action: str = Field(index=True)
    details: str = Field(default="{}")  # JSON dump
    client_ip: str = Field(default="", index=True)
    user_agent: str = Field(default="")
    created_at: datetime = Field(default_factory=utcnow, index=True)
