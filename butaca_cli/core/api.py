import requests
from typing import Optional, Tuple
from .config import BASE_URL, TIMEOUT

def _auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}

def api_register(name: str, email: str, password: str, avatar: Optional[str] = None) -> Tuple[int, dict]:
    """
    Creates an account. Returns (status_code, body); status 0 means the
    backend could not be reached.
    """
    url = f"{BASE_URL}/auth/register"
    data = {"name": name, "email": email, "password": password}
    if avatar:
        data["avatar"] = avatar

    try:
        resp = requests.post(url, json=data, timeout=TIMEOUT)
        return resp.status_code, resp.json()
    except (requests.RequestException, ValueError):
        return 0, {}

def api_login(email: str, password: str) -> Tuple[int, dict]:
    """
    Logs in and returns (status_code, body) with the user and token pair.
    """
    url = f"{BASE_URL}/auth/login"
    data = {"email": email, "password": password}

    try:
        resp = requests.post(url, json=data, timeout=TIMEOUT)
        return resp.status_code, resp.json()
    except (requests.RequestException, ValueError):
        return 0, {}

def api_logout(token: str, refresh_token: Optional[str] = None, logout_all: bool = False) -> bool:
    """
    Revokes the session on the backend.
    """
    url = f"{BASE_URL}/auth/logout"
    data = {"logout_all": logout_all}
    if refresh_token:
        data["refresh_token"] = refresh_token

    try:
        resp = requests.post(url, json=data, headers=_auth_headers(token), timeout=TIMEOUT)
        return resp.status_code == 200
    except requests.RequestException:
        return False

def api_refresh(refresh_token: str) -> Optional[dict]:
    """
    Spends the refresh token and returns the new token pair, or None.
    """
    url = f"{BASE_URL}/auth/refresh"

    try:
        resp = requests.post(url, json={"refresh_token": refresh_token}, timeout=TIMEOUT)
        if resp.status_code != 200:
            return None
        return resp.json().get("tokens")
    except (requests.RequestException, ValueError):
        return None

def api_get_me(token: str) -> Tuple[int, Optional[dict]]:
    """
    Fetches the profile behind the access token.
    """
    url = f"{BASE_URL}/users/me"

    try:
        resp = requests.get(url, headers=_auth_headers(token), timeout=TIMEOUT)
        if resp.status_code != 200:
            return resp.status_code, None
        return resp.status_code, resp.json()
    except (requests.RequestException, ValueError):
        return 0, None
