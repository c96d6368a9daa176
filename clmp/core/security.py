import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt, JWTError
from clmp.core.config import SUPABASE_JWT_SECRET, ALGORITHM, JWT_AUDIENCE
from clmp.core.errors import UnauthenticatedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Verified caller identity issued by the identity provider."""
    id: str
    email: Optional[str] = None
    role: Optional[str] = None


def decode_access_token(token: str) -> Identity:
    """
    Verify a Supabase access token and return the identity it carries.

    Args:
        token: Raw bearer token (without the "Bearer " prefix)

    Returns:
        Identity with the subject id, email and auth role claims

    Raises:
        UnauthenticatedError: If the token is missing, expired, badly signed
            or has no subject
    """
    if not SUPABASE_JWT_SECRET:
        logger.error("SUPABASE_JWT_SECRET not configured - cannot verify tokens")
        raise UnauthenticatedError("Unauthorized")

    options = {} if JWT_AUDIENCE else {"verify_aud": False}
    try:
        payload = jwt.decode(
            token,
            SUPABASE_JWT_SECRET,
            algorithms=[ALGORITHM],
            audience=JWT_AUDIENCE or None,
            options=options,
        )
    except JWTError as e:
        logger.warning(f"Token verification failed: {e}")
        raise UnauthenticatedError("Unauthorized")

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthenticatedError("Unauthorized")

    return Identity(id=user_id, email=payload.get("email"), role=payload.get("role"))


def create_access_token(user_id: str, email: Optional[str] = None, expires_delta: timedelta = None) -> str:
    """Mint a token in the identity provider's format (used by tooling and tests)."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=60))
    to_encode = {
        "sub": user_id,
        "email": email,
        "role": "authenticated",
        "exp": int(expire.timestamp()),
    }
    if JWT_AUDIENCE:
        to_encode["aud"] = JWT_AUDIENCE
    return jwt.encode(to_encode, SUPABASE_JWT_SECRET, algorithm=ALGORITHM)
