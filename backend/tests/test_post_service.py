"""
DevConnector Backend — Post Service Tests
===========================================

What:  PostService business rules against a real (SQLite) session.
Why:   Ownership checks and the like/comment list edits are the core of the
       service; mocking the session would hide the persistence behaviour
       (version counter, JSON columns) they depend on.
"""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm.exc import StaleDataError

from devconnector.config import settings
from devconnector.database import async_session_factory
from devconnector.exceptions import (
    AuthorizationError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from devconnector.models.post import Post
from devconnector.security import RequestContext
from devconnector.services.post_service import PostService, post_service


async def _count_posts(session) -> int:
    result = await session.execute(select(func.count(Post.id)))
    return result.scalar_one()


class TestCreatePost:

    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_create_post_snapshots_author(self, db_session, alice, make_ctx):
        post = await self.service.create_post(db_session, make_ctx(alice), "hello")

        assert post.text == "hello"
        assert post.user == alice.id
        assert post.name == "Alice"
        assert post.avatar == alice.avatar
        assert post.likes == []
        assert post.comments == []
        assert post.id is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    async def test_blank_text_is_rejected_and_nothing_persisted(self, db_session, alice, make_ctx, text):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_post(db_session, make_ctx(alice), text)

        assert exc_info.value.errors == [
            {"msg": "Text is required.", "param": "text", "location": "body"}
        ]
        assert await _count_posts(db_session) == 0

    @pytest.mark.asyncio
    async def test_unknown_author_is_not_found(self, db_session, db_tables):
        ctx = RequestContext(user_id=uuid.uuid4())
        with pytest.raises(NotFoundError):
            await self.service.create_post(db_session, ctx, "hello")


class TestReadPosts:

    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_list_posts_newest_first(self, db_session, alice):
        now = datetime.now(timezone.utc)
        for offset, text in [(2, "oldest"), (0, "newest"), (1, "middle")]:
            db_session.add(Post(
                user_id=alice.id, text=text, name=alice.name,
                likes=[], comments=[], date=now - timedelta(hours=offset),
            ))
        await db_session.commit()

        posts = await self.service.list_posts(db_session)

        assert [p.text for p in posts] == ["newest", "middle", "oldest"]
        dates = [p.date for p in posts]
        assert all(a >= b for a, b in zip(dates, dates[1:]))

    @pytest.mark.asyncio
    async def test_list_posts_empty(self, db_session):
        assert await self.service.list_posts(db_session) == []

    @pytest.mark.asyncio
    async def test_get_post_found(self, db_session, alice, make_ctx):
        created = await self.service.create_post(db_session, make_ctx(alice), "hello")

        fetched = await self.service.get_post(db_session, str(created.id))

        assert fetched.id == created.id
        assert fetched.text == "hello"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("post_id", [None, "not-a-uuid", "5f1b2c3d4e5f6a7b8c9d0e1f"])
    async def test_get_post_missing_or_malformed(self, db_session, post_id):
        post_id = post_id or str(uuid.uuid4())
        with pytest.raises(NotFoundError) as exc_info:
            await self.service.get_post(db_session, post_id)
        assert exc_info.value.message == "Post not found."


class TestDeletePost:

    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_owner_can_delete(self, db_session, alice, make_ctx):
        post = await self.service.create_post(db_session, make_ctx(alice), "bye")

        result = await self.service.delete_post(db_session, make_ctx(alice), str(post.id))

        assert result == {"msg": "Post removed."}
        with pytest.raises(NotFoundError):
            await self.service.get_post(db_session, str(post.id))

    @pytest.mark.asyncio
    async def test_non_owner_cannot_delete(self, db_session, alice, bob, make_ctx):
        post = await self.service.create_post(db_session, make_ctx(alice), "mine")
        await db_session.commit()

        with pytest.raises(AuthorizationError) as exc_info:
            await self.service.delete_post(db_session, make_ctx(bob), str(post.id))

        assert exc_info.value.message == "User not authorized to perform this action."
        still_there = await self.service.get_post(db_session, str(post.id))
        assert still_there.text == "mine"

    @pytest.mark.asyncio
    async def test_delete_missing_post(self, db_session, alice, make_ctx):
        with pytest.raises(NotFoundError):
            await self.service.delete_post(db_session, make_ctx(alice), str(uuid.uuid4()))


class TestToggleLike:

    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_like_then_unlike(self, db_session, alice, bob, make_ctx):
        post = await self.service.create_post(db_session, make_ctx(alice), "hello")

        liked = await self.service.toggle_like(db_session, make_ctx(bob), str(post.id))
        assert [like.user for like in liked.likes] == [bob.id]

        unliked = await self.service.toggle_like(db_session, make_ctx(bob), str(post.id))
        assert unliked.likes == []

    @pytest.mark.asyncio
    async def test_likes_are_unique_per_user(self, db_session, alice, bob, make_ctx):
        post = await self.service.create_post(db_session, make_ctx(alice), "hello")

        await self.service.toggle_like(db_session, make_ctx(alice), str(post.id))
        result = await self.service.toggle_like(db_session, make_ctx(bob), str(post.id))

        assert [like.user for like in result.likes] == [alice.id, bob.id]

    @pytest.mark.asyncio
    async def test_toggle_like_missing_post(self, db_session, bob, make_ctx):
        with pytest.raises(NotFoundError):
            await self.service.toggle_like(db_session, make_ctx(bob), "nope")


class TestComments:

    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_comments_are_prepended(self, db_session, alice, bob, make_ctx):
        post = await self.service.create_post(db_session, make_ctx(alice), "hello")

        await self.service.add_comment(db_session, make_ctx(alice), str(post.id), "first")
        comments = await self.service.add_comment(db_session, make_ctx(bob), str(post.id), "second")

        assert [c.text for c in comments] == ["second", "first"]
        assert comments[0].user == bob.id
        assert comments[0].name == "Bob"
        assert comments[0].id != comments[1].id

    @pytest.mark.asyncio
    async def test_add_comment_blank_text(self, db_session, alice, make_ctx):
        post = await self.service.create_post(db_session, make_ctx(alice), "hello")
        with pytest.raises(ValidationError):
            await self.service.add_comment(db_session, make_ctx(alice), str(post.id), " ")

    @pytest.mark.asyncio
    async def test_add_comment_missing_post(self, db_session, alice, make_ctx):
        with pytest.raises(NotFoundError):
            await self.service.add_comment(db_session, make_ctx(alice), str(uuid.uuid4()), "hi")

    @pytest.mark.asyncio
    async def test_remove_own_comment_keeps_order(self, db_session, alice, bob, make_ctx):
        post = await self.service.create_post(db_session, make_ctx(alice), "hello")
        for text in ["one", "two", "three"]:
            comments = await self.service.add_comment(db_session, make_ctx(bob), str(post.id), text)
        middle = comments[1]
        assert middle.text == "two"

        remaining = await self.service.remove_comment(
            db_session, make_ctx(bob), str(post.id), str(middle.id)
        )

        assert [c.text for c in remaining] == ["three", "one"]

    @pytest.mark.asyncio
    async def test_post_owner_cannot_remove_others_comment(self, db_session, alice, bob, make_ctx):
        post = await self.service.create_post(db_session, make_ctx(alice), "hello")
        comments = await self.service.add_comment(db_session, make_ctx(bob), str(post.id), "bob's")

        with pytest.raises(AuthorizationError) as exc_info:
            await self.service.remove_comment(
                db_session, make_ctx(alice), str(post.id), str(comments[0].id)
            )

        assert exc_info.value.message == "User not authorized."
        unchanged = await self.service.get_post(db_session, str(post.id))
        assert [c.id for c in unchanged.comments] == [comments[0].id]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("comment_id", [None, "garbage"])
    async def test_remove_missing_comment(self, db_session, alice, make_ctx, comment_id):
        post = await self.service.create_post(db_session, make_ctx(alice), "hello")
        comment_id = comment_id or str(uuid.uuid4())

        with pytest.raises(NotFoundError) as exc_info:
            await self.service.remove_comment(db_session, make_ctx(alice), str(post.id), comment_id)

        assert exc_info.value.message == "Comment does not exist."

    @pytest.mark.asyncio
    async def test_remove_comment_missing_post(self, db_session, alice, make_ctx):
        with pytest.raises(NotFoundError) as exc_info:
            await self.service.remove_comment(
                db_session, make_ctx(alice), str(uuid.uuid4()), str(uuid.uuid4())
            )
        assert exc_info.value.message == "Post not found."


class TestConcurrentWrites:
    """A write that lands between our read and our flush must not be lost."""

    @pytest.mark.asyncio
    async def test_interleaved_like_is_retried_not_overwritten(self, db_session, alice, bob, make_ctx):
        post = await post_service.create_post(db_session, make_ctx(alice), "hello")
        await db_session.commit()

        real_load = post_service._load_post
        loads = 0

        async def racing_load(db, post_id):
            nonlocal loads
            loaded = await real_load(db, post_id)
            loads += 1
            if loads == 1:
                # Alice likes the post after Bob's read, before Bob's write
                async with async_session_factory() as other:
                    await post_service.toggle_like(other, make_ctx(alice), str(post_id))
                    await other.commit()
            return loaded

        with patch.object(post_service, "_load_post", side_effect=racing_load):
            result = await post_service.toggle_like(db_session, make_ctx(bob), str(post.id))

        assert sorted(str(like.user) for like in result.likes) == sorted([str(alice.id), str(bob.id)])
        # Bob's first read, Alice's read, Bob's re-read after the conflict
        assert loads == 3

    @pytest.mark.asyncio
    async def test_persistent_conflict_becomes_store_error(self, db_session, alice, make_ctx):
        post = await post_service.create_post(db_session, make_ctx(alice), "hello")
        await db_session.commit()

        with patch.object(db_session, "flush", AsyncMock(side_effect=StaleDataError("conflict"))) as flush:
            with pytest.raises(StoreError):
                await post_service.toggle_like(db_session, make_ctx(alice), str(post.id))

        assert flush.await_count == settings.write_retry_max_attempts
