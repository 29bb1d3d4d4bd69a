"""
DevConnector Backend — Post Service (Business Logic)
======================================================

What:  Create/list/get/delete posts, toggle likes, add/remove comments.
Why:   Keeps ownership rules and the like/comment list mutations out of the
       route handlers, so they can be tested against a session directly.
Who:   Called by routes/posts.py with a DB session and a RequestContext.

Write Strategy (optimistic concurrency):
    Every write to an existing post is read → mutate in memory → flush.
    The Post mapper carries a version counter, so the UPDATE only matches
    the row version we read. If another request wrote in between, the
    flush raises StaleDataError; we roll back and redo the whole
    read-modify-write with tenacity (exponential backoff + jitter).

        load post (v3) ──▶ mutate ──▶ UPDATE ... WHERE version = 3
                                          │
                        0 rows ◀──────────┘  (someone else wrote v4)
                          │
                     rollback, retry from load

    Retries exhausted → StoreError (500). A lost update is never possible.

Error Handling Strategy:
    NotFoundError / AuthorizationError / ValidationError propagate as-is.
    SQLAlchemy errors are wrapped in StoreError (details logged, never returned).
"""

import logging
import uuid
from typing import Awaitable, Callable, Dict, List, Optional, TypeVar

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from devconnector.config import settings
from devconnector.exceptions import (
    AuthorizationError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from devconnector.models.post import Post
from devconnector.schemas.post import Comment, Like, PostResponse
from devconnector.security import RequestContext
from devconnector.services.identity_service import identity_service

logger = logging.getLogger(__name__)

T = TypeVar("T")

POST_NOT_FOUND = "Post not found."
COMMENT_NOT_FOUND = "Comment does not exist."
TEXT_REQUIRED = "Text is required."
NOT_POST_OWNER = "User not authorized to perform this action."
NOT_COMMENT_OWNER = "User not authorized."


def _parse_id(raw: str, message: str, resource: str) -> uuid.UUID:
    """Malformed ids can never match a record, so they are reported as not found."""
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        raise NotFoundError(message, resource=resource, resource_id=str(raw))


def _require_text(text: Optional[str]) -> str:
    if text is None or not text.strip():
        raise ValidationError(TEXT_REQUIRED, field="text")
    return text


class PostService:
    """
    Business logic layer for posts, likes and comments.

    Stateless: receives the session and caller context on every call.
    """

    # ── Reads ─────────────────────────────────────────────────────────────

    async def _load_post(self, db: AsyncSession, post_id: uuid.UUID) -> Post:
        result = await db.execute(select(Post).where(Post.id == post_id))
        post = result.scalar_one_or_none()
        if post is None:
            raise NotFoundError(POST_NOT_FOUND, resource="post", resource_id=str(post_id))
        return post

    async def list_posts(self, db: AsyncSession) -> List[PostResponse]:
        """All posts, newest first."""
        try:
            result = await db.execute(select(Post).order_by(desc(Post.date)))
            posts = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing posts: %s", str(e), exc_info=True)
            raise StoreError(context={"error_type": type(e).__name__})
        return [PostResponse.from_model(post) for post in posts]

    async def get_post(self, db: AsyncSession, post_id: str) -> PostResponse:
        """
        Raises:
            NotFoundError: unknown or malformed post id (→ 404)
            StoreError: query execution failed (→ 500)
        """
        pid = _parse_id(post_id, POST_NOT_FOUND, "post")
        try:
            post = await self._load_post(db, pid)
        except SQLAlchemyError as e:
            logger.error("Database error fetching post %s: %s", pid, str(e))
            raise StoreError(context={"post_id": str(pid), "error_type": type(e).__name__})
        return PostResponse.from_model(post)

    # ── Writes ────────────────────────────────────────────────────────────

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(settings.write_retry_max_attempts),
            wait=wait_exponential_jitter(
                initial=settings.write_retry_initial_wait,
                max=settings.write_retry_max_wait,
                jitter=settings.write_retry_initial_wait,
            ),
            retry=retry_if_exception_type(StaleDataError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    async def _write(
        self,
        db: AsyncSession,
        ctx: RequestContext,
        action: str,
        operation: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Run `operation` and flush it, retrying the pair on a version conflict.

        `operation` must do its own reads: after a conflict the session is
        rolled back and every loaded post is expired.
        """
        try:
            async for attempt in self._retrying():
                with attempt:
                    try:
                        result = await operation()
                        await db.flush()
                    except StaleDataError:
                        await db.rollback()
                        raise
        except StaleDataError as e:
            logger.error(
                "[%s] %s gave up after %d conflicting writes",
                ctx.request_id, action, settings.write_retry_max_attempts,
            )
            raise StoreError(context={"action": action, "error_type": type(e).__name__})
        except SQLAlchemyError as e:
            logger.error("[%s] Database error during %s: %s", ctx.request_id, action, str(e))
            raise StoreError(context={"action": action, "error_type": type(e).__name__})
        return result

    async def create_post(self, db: AsyncSession, ctx: RequestContext, text: str) -> PostResponse:
        """
        Create a post owned by the caller.

        Raises:
            ValidationError: blank text; nothing is persisted
            NotFoundError: the caller's account no longer exists
        """
        text = _require_text(text)
        profile = await identity_service.get_profile(db, ctx.user_id)

        async def insert() -> Post:
            post = Post(
                user_id=ctx.user_id,
                text=text,
                name=profile.name,
                avatar=profile.avatar,
                likes=[],
                comments=[],
            )
            db.add(post)
            return post

        post = await self._write(db, ctx, "create_post", insert)
        logger.info("[%s] Post %s created by %s", ctx.request_id, post.id, ctx.user_id)
        return PostResponse.from_model(post)

    async def delete_post(self, db: AsyncSession, ctx: RequestContext, post_id: str) -> Dict[str, str]:
        """
        Delete a post together with its embedded likes and comments.

        Raises:
            NotFoundError: unknown post
            AuthorizationError: caller does not own the post
        """
        pid = _parse_id(post_id, POST_NOT_FOUND, "post")

        async def remove() -> None:
            post = await self._load_post(db, pid)
            if post.user_id != ctx.user_id:
                raise AuthorizationError(
                    NOT_POST_OWNER,
                    context={"post_id": str(pid), "user_id": str(ctx.user_id)},
                )
            await db.delete(post)

        await self._write(db, ctx, "delete_post", remove)
        logger.info("[%s] Post %s removed by %s", ctx.request_id, pid, ctx.user_id)
        return {"msg": "Post removed."}

    async def toggle_like(self, db: AsyncSession, ctx: RequestContext, post_id: str) -> PostResponse:
        """
        Like the post if the caller has not liked it yet, otherwise unlike it.

        Exactly one of add/remove happens per call, decided by current membership.
        """
        pid = _parse_id(post_id, POST_NOT_FOUND, "post")
        me = str(ctx.user_id)

        async def toggle() -> Post:
            post = await self._load_post(db, pid)
            likes = list(post.likes or [])
            index = next((i for i, like in enumerate(likes) if like.get("user") == me), -1)
            if index == -1:
                likes.append(Like(user=ctx.user_id).model_dump(mode="json"))
            else:
                del likes[index]
            post.likes = likes
            return post

        post = await self._write(db, ctx, "toggle_like", toggle)
        logger.info("[%s] Post %s now has %d likes", ctx.request_id, pid, len(post.likes))
        return PostResponse.from_model(post)

    async def add_comment(
        self, db: AsyncSession, ctx: RequestContext, post_id: str, text: str
    ) -> List[Comment]:
        """Prepend a comment by the caller; returns the post's comments, newest first."""
        text = _require_text(text)
        pid = _parse_id(post_id, POST_NOT_FOUND, "post")
        profile = await identity_service.get_profile(db, ctx.user_id)

        async def prepend() -> Post:
            post = await self._load_post(db, pid)
            comment = Comment(text=text, name=profile.name, avatar=profile.avatar, user=ctx.user_id)
            post.comments = [comment.to_document()] + list(post.comments or [])
            return post

        post = await self._write(db, ctx, "add_comment", prepend)
        logger.info("[%s] Comment added to post %s by %s", ctx.request_id, pid, ctx.user_id)
        return [Comment.model_validate(c) for c in post.comments]

    async def remove_comment(
        self, db: AsyncSession, ctx: RequestContext, post_id: str, comment_id: str
    ) -> List[Comment]:
        """
        Remove one of the caller's own comments, keeping the order of the rest.

        Owning the post does not grant removal of other users' comments.

        Raises:
            NotFoundError: unknown post, or no comment with this id on it
            AuthorizationError: the comment belongs to someone else
        """
        pid = _parse_id(post_id, POST_NOT_FOUND, "post")
        cid = _parse_id(comment_id, COMMENT_NOT_FOUND, "comment")

        async def splice() -> Post:
            post = await self._load_post(db, pid)
            comments = list(post.comments or [])
            index = next((i for i, c in enumerate(comments) if c.get("id") == str(cid)), -1)
            if index == -1:
                raise NotFoundError(COMMENT_NOT_FOUND, resource="comment", resource_id=str(cid))
            if comments[index].get("user") != str(ctx.user_id):
                raise AuthorizationError(
                    NOT_COMMENT_OWNER,
                    context={"comment_id": str(cid), "user_id": str(ctx.user_id)},
                )
            del comments[index]
            post.comments = comments
            return post

        post = await self._write(db, ctx, "remove_comment", splice)
        logger.info("[%s] Comment %s removed from post %s", ctx.request_id, cid, pid)
        return [Comment.model_validate(c) for c in post.comments]


# ── Singleton Instance ────────────────────────────────────────────────────
post_service = PostService()
