from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError

from luxe.core import config
from luxe.core.errors import NotAuthenticated

ALGORITHM = "HS256"


def decode_token(token: str) -> dict:
    """Verify a Supabase access token and return its claims."""
    try:
        return jwt.decode(
            token,
            config.SUPABASE_JWT_SECRET,
            algorithms=[ALGORITHM],
            audience=config.JWT_AUDIENCE,
        )
    except JWTError as e:
        raise NotAuthenticated("Invalid token") from e


def create_token(subject: str, email: Optional[str] = None, expires_minutes: int = 60,
                 metadata: Optional[dict] = None) -> str:
    # Tokens are normally minted by Supabase Auth; this mirrors their claim
    # layout for service-to-service calls and local tooling.
    expires = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode = {
        "sub": subject,
        "aud": config.JWT_AUDIENCE,
        "exp": expires,
        "role": "authenticated",
    }
    if email:
        to_encode["email"] = email
    if metadata:
        to_encode["user_metadata"] = metadata
    return jwt.encode(to_encode, config.SUPABASE_JWT_SECRET, algorithm=ALGORITHM)
