import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import SessionUser, get_current_user
from backend.auth.roles import VETERINARIAN
from backend.database import get_db
from backend.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(tags=['veterinarians'])


@router.get('')
def list_veterinarians(
    current_user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    del current_user

    try:
        veterinarians = db.query(User).filter(
            User.role == VETERINARIAN,
            User.status == 'ACTIVE',
        ).order_by(User.full_name.asc()).all()
    except SQLAlchemyError as exc:
        logger.exception('Error fetching veterinarians.')
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Failed to fetch veterinarians.',
        ) from exc

    return {
        'veterinarians': [
            {'id': veterinarian.id, 'name': veterinarian.full_name or '', 'email': veterinarian.email}
            for veterinarian in veterinarians
        ]
    }
