"""
DevConnector Backend — Pydantic Request/Response Schemas
=========================================================

What:  Pydantic models defining the API contract between frontend and backend.
Why:   Strict input validation, automatic serialization, and OpenAPI doc generation.
How:   FastAPI uses these models to validate request bodies and serialize
       responses. `Comment` and `Like` double as the validated record types
       for the JSON arrays embedded in a post row.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


# ══════════════════════════════════════════════════════════════════════════
# Embedded Records: stored inside posts.likes / posts.comments
# ══════════════════════════════════════════════════════════════════════════


class Like(BaseModel):
    """One user's like on a post. Presence in the list is the like."""
    user: uuid.UUID = Field(description="ID of the user who liked the post")

    model_config = {"frozen": True}


class Comment(BaseModel):
    """
    What:  A comment embedded in a post.
    How:   Built by PostService with a fresh id and timestamp; stored with
           model_dump(mode="json") and read back with model_validate().
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, description="Comment identifier")
    text: str = Field(description="Comment body")
    name: str = Field(description="Author display name at the time of commenting")
    avatar: Optional[str] = Field(default=None, description="Author avatar URL")
    user: uuid.UUID = Field(description="ID of the comment author")
    date: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the comment was made (UTC)",
    )

    model_config = {"frozen": True}

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Text is required.")
        return v

    def to_document(self) -> Dict[str, Any]:
        """JSON-safe dict for the embedded comments column."""
        return self.model_dump(mode="json")


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class PostCreate(BaseModel):
    """Body of POST /posts. Blank text is rejected by PostService with itemized errors."""
    text: str = Field(description="Post body")


class CommentCreate(BaseModel):
    """Body of POST /posts/comments/{id}."""
    text: str = Field(description="Comment body")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class PostResponse(BaseModel):
    """
    What:  Full representation of a post, including its likes and comments.
    Who:   Returned by create, get, list and like-toggle.
    """
    id: uuid.UUID = Field(description="Unique post identifier (UUID)")
    user: uuid.UUID = Field(description="ID of the post owner")
    text: str = Field(description="Post body")
    name: str = Field(description="Owner display name at the time of posting")
    avatar: Optional[str] = Field(default=None, description="Owner avatar URL")
    likes: List[Like] = Field(default_factory=list)
    comments: List[Comment] = Field(default_factory=list, description="Newest first")
    date: datetime = Field(description="When the post was created (UTC)")

    @classmethod
    def from_model(cls, post) -> "PostResponse":
        return cls(
            id=post.id,
            user=post.user_id,
            text=post.text,
            name=post.name,
            avatar=post.avatar,
            likes=[Like.model_validate(like) for like in post.likes or []],
            comments=[Comment.model_validate(c) for c in post.comments or []],
            date=post.date,
        )


class MessageResponse(BaseModel):
    msg: str


class FieldError(BaseModel):
    msg: str
    param: Optional[str] = None
    location: Optional[str] = None


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "validation_error",
            "msg": "Text is required.",
            "errors": [{"msg": "Text is required.", "param": "text", "location": "body"}],
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    msg: str = Field(description="Human-readable error description")
    errors: Optional[List[FieldError]] = Field(default=None, description="Itemized field errors")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
