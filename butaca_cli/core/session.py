# butaca_cli/core/session.py
import json
from typing import Optional

from .config import APP_DIR, SESSION_FILE


def save_tokens(access_token: str, refresh_token: Optional[str] = None) -> None:
    """
    Stores the token pair in SESSION_FILE (owner-readable only).
    """
    APP_DIR.mkdir(parents=True, exist_ok=True)
    data = {"access_token": access_token, "refresh_token": refresh_token}
    with open(SESSION_FILE, "w", encoding="utf-8") as f:
        json.dump(data, f)
    SESSION_FILE.chmod(0o600)


def _load() -> dict:
    if not SESSION_FILE.exists():
        return {}
    try:
        with open(SESSION_FILE, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError):
        # An unreadable session file means there is no usable session
        return {}
    return data if isinstance(data, dict) else {}


def load_token() -> Optional[str]:
    return _load().get("access_token")


def load_refresh_token() -> Optional[str]:
    return _load().get("refresh_token")


def is_logged_in() -> bool:
    return load_token() is not None


def clear_token() -> None:
    """
    Deletes the session file, ending the local session.
    """
    if SESSION_FILE.exists():
        SESSION_FILE.unlink()
