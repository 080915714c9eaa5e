"""
JWT helpers for auth scenarios.

The harness never validates tokens issued by the services; it only peeks at
their claims and forges untrusted ones the gateway is expected to reject.
"""
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import jwt

ALGORITHM = "HS256"


def mint_token(username: str, secret: str, roles: Optional[List[str]] = None,
               ttl: timedelta = timedelta(hours=1)) -> str:
    if roles is None:
        roles = ["USER"]
    now = datetime.now(timezone.utc)
    payload = {
        "sub": username,
        "username": username,
        "roles": roles,
        "iat": now,
        "exp": now + ttl,
        "token_type": "access",
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def forge_untrusted_token(username: str = "testuser") -> str:
    """Well-formed token signed with a throwaway secret."""
    return mint_token(username, secrets.token_hex(32))


def peek_claims(token: str) -> Dict[str, Any]:
    """Claims of a token without verifying it. Raises jwt.DecodeError for non-JWT input."""
    return jwt.decode(token, options={"verify_signature": False})
