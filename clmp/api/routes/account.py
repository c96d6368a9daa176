"""
Account lifecycle endpoints.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from clmp.core.auth_dependency import get_db, get_current_identity
from clmp.core.security import Identity
from clmp.schemas.account import DeleteUserRequest, DeleteUserResponse
from clmp.services import account_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/account", tags=["Account"])


@router.post("/delete-user", response_model=DeleteUserResponse, status_code=status.HTTP_200_OK)
def delete_user(
    payload: Optional[DeleteUserRequest] = None,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """
    Delete a user account.

    Users may delete their own account; admins may delete any account
    except the last holder of a privileged role.
    """
    target_user_id = payload.user_id if payload else None
    account_service.delete_account(db, identity, target_user_id)
    return {"message": "User deleted successfully"}
