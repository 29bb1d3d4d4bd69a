"""
DevConnector Backend — Post SQLAlchemy Model
==============================================

What:  ORM model representing the `posts` table.
Why:   A post is stored as one self-contained document: scalar fields plus
       its likes and comments as embedded JSON arrays. Deleting the row
       deletes everything that hangs off the post.
How:   `likes` and `comments` are JSON columns; `version` is the mapper's
       version counter, so every UPDATE is conditional on the version that
       was read. A concurrent writer turns our flush into a StaleDataError
       instead of silently overwriting its change.

Embedded shapes:
    likes:    [{"user": "<uuid>"}, ...]                       (one per user)
    comments: [{"id", "text", "name", "avatar", "user", "date"}, ...]
              newest first; validated through schemas.post.Comment

Index on date DESC:
    The post feed is always read newest first.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from devconnector.database import Base


class Post(Base):
    """
    Lifecycle:
        1. Created by an authenticated user (likes and comments empty)
        2. Mutated by like toggles and comment add/remove (any user)
        3. Deleted by its owner only
    """

    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Owner. Serialized as "user" in the API.
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    text: Mapped[str] = mapped_column(Text, nullable=False)

    # Author snapshot taken at creation time; not re-synced on profile edits
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar: Mapped[str | None] = mapped_column(String(512), nullable=True, default=None)

    likes: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    comments: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("idx_posts_date", date.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<Post(id={self.id}, user={self.user_id}, likes={len(self.likes or [])}, "
            f"comments={len(self.comments or [])})>"
        )
