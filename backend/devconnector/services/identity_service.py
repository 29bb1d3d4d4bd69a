"""
DevConnector Backend — Identity Service
=========================================

What:  Resolves a user id to the profile fields posts and comments snapshot.
Why:   Posts carry the author's name and avatar as they were at write time;
       this is the one place those fields are read.
Who:   Called by PostService on create_post and add_comment.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from devconnector.exceptions import NotFoundError, StoreError
from devconnector.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserProfile:
    id: uuid.UUID
    name: str
    avatar: Optional[str] = None


class IdentityService:
    """Read-only view over the users table."""

    async def get_profile(self, db: AsyncSession, user_id: uuid.UUID) -> UserProfile:
        """
        Raises:
            NotFoundError: no account with this id (e.g. deleted after the token was issued)
            StoreError: query execution failed
        """
        try:
            result = await db.execute(select(User).where(User.id == user_id))
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error resolving user %s: %s", user_id, str(e))
            raise StoreError(context={"user_id": str(user_id), "error_type": type(e).__name__})

        if user is None:
            raise NotFoundError("User not found.", resource="user", resource_id=str(user_id))

        return UserProfile(id=user.id, name=user.name, avatar=user.avatar)


identity_service = IdentityService()
