import json
import time
import uuid
from typing import Any, Optional

from jose import jws
from jose.exceptions import JWSError

from .errors import InvalidSignature, MalformedToken, TokenExpired

ALGORITHM = "HS256"
HEADER = {"typ": "JWT", "alg": ALGORITHM}


def sign(header: dict, payload: dict, secret: str) -> str:
    """
    Produces b64url(header).b64url(payload).b64url(HMAC-SHA256(secret, first two segments)).
    Segments are unpadded URL-safe base64.
    """
    extra_headers = {k: v for k, v in header.items() if k != "alg"}
    return jws.sign(payload, secret, headers=extra_headers, algorithm=header.get("alg", ALGORITHM))


def verify(token: str, secret: str, now: Optional[float] = None, algorithm: str = ALGORITHM) -> dict[str, Any]:
    """
    Checks structure, signature and expiry. Returns the decoded payload.

    Raises MalformedToken, InvalidSignature or TokenExpired.
    """
    if not isinstance(token, str) or token.count(".") != 2:
        raise MalformedToken("Malformed token")

    try:
        # jose compares the HMAC with hmac.compare_digest
        raw_payload = jws.verify(token, secret, algorithms=[algorithm])
    except JWSError as e:
        raise InvalidSignature(f"Invalid token: {e}")

    try:
        payload = json.loads(raw_payload)
    except (TypeError, ValueError):
        raise InvalidSignature("Invalid token payload")
    if not isinstance(payload, dict):
        raise InvalidSignature("Invalid token payload")

    exp = payload.get("exp")
    if exp is not None:
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            raise InvalidSignature("Invalid expiration claim")
        current = time.time() if now is None else now
        if exp <= current:
            raise TokenExpired("Token has expired")

    return payload


def build_payload(
    *,
    issuer: str,
    audience: str,
    user_id: int,
    token_type: str,
    issued_at: int,
    lifetime: int,
    data: Optional[dict] = None,
) -> dict[str, Any]:
    return {
        "iss": issuer,
        "aud": audience,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "user_id": user_id,
        "type": token_type,
        "data": data or {},
        # Keeps two tokens minted in the same second apart
        "jti": uuid.uuid4().hex,
    }
