from datetime import datetime, timezone
from sqlmodel import Field, SQLModel
from pydantic import EmailStr, field_validator

def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)

# ==========================================
# SQLModel (Database Entity + Base Pydantic)
# ==========================================
class User(SQLModel, table=True):
    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(nullable=False)
    email: str = Field(unique=True, index=True, nullable=False) # Always lowercase
    hashed_password: str = Field(nullable=False)
    avatar: str | None = Field(default=None, nullable=True)
    is_active: bool = Field(default=True)
    registered_at: datetime = Field(default_factory=utcnow)
    registration_ip: str = Field(default="", index=True)
    last_access_at: datetime | None = Field(default=None, nullable=True)
    last_access_ip: str | None = Field(default=None, nullable=True)

    def snapshot(self) -> dict:
        """
        Denormalized profile embedded in every token payload.
        """
        return {"name": self.name, "email": self.email, "avatar": self.avatar}

# ==========================================
# Pydantic Models (DTOs)
# ==========================================

# Properties to receive via API on registration
class RegisterRequest(SQLModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)
    avatar: str | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Name must be between 2 and 100 characters")
        return value

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

# Properties to receive via API on login
class LoginRequest(SQLModel):
    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

# Properties to return via API
class UserResponse(SQLModel):
    id: int
    name: str
    email: str
    avatar: str | None = None
    is_active: bool
    registered_at: datetime | None = None
    last_access_at: datetime | None = None
