# backend/app/api/dependencies/auth.py
"""
Identity dependencies.

Authentication happens at the upstream gateway, which forwards the
authenticated member id in the ``X-User-Id`` header. These dependencies
only resolve that id to a ``User`` row and enforce account status and role.
"""

import asyncio
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from ...core.enums import UserStatus
from ...models.user import User
from ...repositories.factory import RepositoryFactory
from .database import get_db

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"


async def get_current_user(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the gateway-supplied user id to a User row."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Not authenticated", "code": "UNAUTHORIZED"},
        )

    user_repository = RepositoryFactory.create_user_repository(db)
    user = await asyncio.to_thread(user_repository.get_by_id, x_user_id.strip())
    if user is None:
        logger.warning("Unknown user id %s in %s header", x_user_id, USER_ID_HEADER)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Not authenticated", "code": "UNAUTHORIZED"},
        )
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if current_user.user_status != UserStatus.ACTIVE.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": "Account suspended", "code": "ACCOUNT_SUSPENDED"},
        )
    return current_user


async def require_admin(current_user: User = Depends(get_current_active_user)) -> User:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": "Admin access required", "code": "FORBIDDEN"},
        )
    return current_user
