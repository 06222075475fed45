from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Butaca10"
    DATABASE_URL: str = "sqlite:///./data/butaca.db"

    # Token Config
    JWT_SECRET: str
    JWT_ALGORITHM: Literal["HS256", "HS384", "HS512"] = "HS256"
    JWT_ISSUER: str = "Butaca10"
    JWT_AUDIENCE: str = "butaca10-app"
    ACCESS_TOKEN_EXPIRE_SECONDS: int = 86400  # 24 hours
    REFRESH_TOKEN_EXPIRE_SECONDS: int = 604800  # 7 days

    # What to assume when the token store cannot be queried during verification
    REVOCATION_FAIL_MODE: Literal["open", "closed"] = "open"

    # Throttling
    LOGIN_FAILURE_LIMIT: int = 10
    LOGIN_FAILURE_WINDOW_SECONDS: int = 3600
    REGISTRATION_LIMIT: int = 3
    REGISTRATION_WINDOW_SECONDS: int = 3600

    # Legacy clients still send ?token=...
    ALLOW_QUERY_TOKEN: bool = True

    # Security
    PASSWORD_PEPPER: str = ""
    PASSWORD_HASH_TIME_COST: int = 2
    PASSWORD_HASH_MEMORY_COST: int = 102400

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    model_config = SettingsConfigDict(env_file=".env")

settings = Settings()
