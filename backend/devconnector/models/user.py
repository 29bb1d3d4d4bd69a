"""
DevConnector Backend — User SQLAlchemy Model
==============================================

What:  ORM model for the `users` table.
Why:   Posts and comments snapshot the author's display name and avatar;
       this table is where those fields are looked up.
Who:   Read by IdentityService. Accounts are created by the registration
       flow, which lives outside this service.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from devconnector.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    # Gravatar URL in practice; optional for accounts without one
    avatar: Mapped[str | None] = mapped_column(String(512), nullable=True, default=None)

    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name='{self.name}')>"
