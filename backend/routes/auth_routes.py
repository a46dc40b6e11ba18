import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.auth.dependencies import SessionUser, get_current_user
from backend.auth.passwords import verify_password
from backend.auth.roles import ROLE_PERMISSIONS, default_redirect_path, normalize_role
from backend.core import config
from backend.database import get_db
from backend.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(tags=['auth'])


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError('Email is required.')
        return normalized

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value:
            raise ValueError('Password is required.')
        return value


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=token,
        max_age=config.SESSION_MAX_AGE_SECONDS,
        httponly=True,
        secure=config.SESSION_COOKIE_SECURE,
        samesite='lax',
        path='/',
    )


@router.post('/login')
def login(data: LoginRequest, response: Response, db: Session = Depends(get_db)):
    try:
        user = db.query(User).filter(User.email == data.email).first()
        if user is None or not verify_password(data.password, user.hashed_password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail='Invalid email or password.',
            )

        if (user.status or 'ACTIVE').upper() != 'ACTIVE':
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Account is not active.',
            )

        user.last_login = datetime.now()
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Login failed for %s.', data.email)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Login failed.',
        ) from exc

    role = normalize_role(user.role)
    token = jwt_handler.create_session_token(user.id, user.email, user.full_name, role)
    set_session_cookie(response, token)
    logger.info('User %s signed in as %s', user.id, role)

    return {
        'id': user.id,
        'name': user.full_name or '',
        'email': user.email,
        'role': role.lower(),
        'permissions': sorted(ROLE_PERMISSIONS[role]),
        'redirectPath': default_redirect_path(role),
    }


@router.post('/logout')
def logout(response: Response):
    response.delete_cookie(key=config.SESSION_COOKIE_NAME, path='/')
    return {'success': True}


@router.get('/me')
def me(current_user: SessionUser = Depends(get_current_user)):
    return {
        'id': current_user.id,
        'email': current_user.email,
        'name': current_user.name,
        'role': current_user.role.lower(),
    }
