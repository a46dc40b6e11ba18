import logging

import jwt
from fastapi import Cookie, HTTPException, status
from pydantic import BaseModel

from backend.auth import jwt_handler
from backend.auth.roles import normalize_role
from backend.core import config

logger = logging.getLogger(__name__)


class SessionUser(BaseModel):
    id: int
    email: str
    name: str = ''
    role: str


def _unauthorized() -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Unauthorized')


def get_current_user(
    session_token: str | None = Cookie(default=None, alias=config.SESSION_COOKIE_NAME),
) -> SessionUser:
    if not session_token:
        raise _unauthorized()

    try:
        payload = jwt_handler.decode_session_token(session_token)
    except jwt.InvalidTokenError as exc:
        logger.info('Rejected session cookie: %s', exc)
        raise _unauthorized() from exc

    subject = payload.get('sub')
    if not subject or not str(subject).isdigit():
        raise _unauthorized()

    return SessionUser(
        id=int(subject),
        email=payload.get('email', ''),
        name=payload.get('name', ''),
        role=normalize_role(payload.get('role')),
    )
