from datetime import datetime, timedelta, timezone

import jwt

from backend.core import config

def create_session_token(
    user_id: int,
    email: str,
    name: str | None,
    role: str,
    expires_seconds: int | None = None,
) -> str:
    expire_seconds = expires_seconds or config.SESSION_MAX_AGE_SECONDS
    issued_at = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "name": name or "",
        "role": role,
        "exp": issued_at + timedelta(seconds=expire_seconds),
        "iat": issued_at,
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_session_token(token: str) -> dict:
    return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
