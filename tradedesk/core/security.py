from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt

def token_expiry(token: str) -> Optional[datetime]:
    """Read `exp` without verifying the signature; the backend verifies it."""
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return None
    exp = claims.get("exp")
    if exp is None:
        return None
    return datetime.fromtimestamp(int(exp), tz=timezone.utc)

def is_token_expired(token: str, leeway: int = 60) -> bool:
    expires_at = token_expiry(token)
    if expires_at is None:
        return False
    return datetime.now(timezone.utc) + timedelta(seconds=leeway) >= expires_at

def mask_token(token: str) -> str:
    return f"{token[:20]}..." if len(token) > 20 else "***"
