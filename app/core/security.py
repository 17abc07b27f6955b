"""Bearer token helpers"""
from datetime import datetime, timezone
from typing import Optional
from jose import JWTError, jwt


def token_expiry(token: str) -> Optional[datetime]:
    """
    Read the `exp` claim of a JWT without verifying its signature.

    The signing key belongs to the prediction backend; this side only needs
    to know when to stop sending the token. Opaque (non-JWT) tokens have no
    known expiry and return None.
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return None

    exp = claims.get("exp")
    if exp is None:
        return None
    try:
        return datetime.fromtimestamp(float(exp), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def is_token_expired(token: str, now: Optional[datetime] = None) -> bool:
    """Check whether a token has passed its `exp` claim"""
    expiry = token_expiry(token)
    if expiry is None:
        return False
    return expiry <= (now or datetime.now(timezone.utc))
