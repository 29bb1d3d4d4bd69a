"""
DevConnector Backend — Posts Route Handlers
=============================================

What:  HTTP surface for posts, likes and comments.
How:   Every route resolves the caller through `get_request_context`, opens a
       session through `get_db_session` and delegates to PostService.
       Errors are turned into responses by the global handlers in main.py,
       so handlers contain no try/except.

Route Inventory:
    POST   /posts                                  create a post
    GET    /posts                                  all posts, newest first
    GET    /posts/{post_id}                        one post
    DELETE /posts/{post_id}                        delete own post
    POST   /posts/likes/{post_id}                  like / unlike
    POST   /posts/comments/{post_id}               add a comment
    DELETE /posts/comments/{post_id}/{comment_id}  remove own comment
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devconnector.database import get_db_session
from devconnector.schemas.post import (
    Comment,
    CommentCreate,
    ErrorResponse,
    MessageResponse,
    PostCreate,
    PostResponse,
)
from devconnector.security import RequestContext, get_request_context
from devconnector.services.post_service import post_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["Posts"])

_AUTH_ERRORS = {401: {"description": "Missing or invalid token", "model": ErrorResponse}}
_NOT_FOUND = {404: {"description": "Post not found", "model": ErrorResponse}}
_VALIDATION = {400: {"description": "Validation failed", "model": ErrorResponse}}
_SERVER = {500: {"description": "Server error", "model": ErrorResponse}}


@router.post(
    "",
    response_model=PostResponse,
    responses={**_VALIDATION, **_AUTH_ERRORS, **_SERVER},
    summary="Create a post",
)
async def create_post(
    body: PostCreate,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    return await post_service.create_post(db, ctx, body.text)


@router.get(
    "",
    response_model=List[PostResponse],
    responses={**_AUTH_ERRORS, **_SERVER},
    summary="List all posts, newest first",
)
async def list_posts(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db_session),
) -> List[PostResponse]:
    return await post_service.list_posts(db)


@router.get(
    "/{post_id}",
    response_model=PostResponse,
    responses={**_AUTH_ERRORS, **_NOT_FOUND},
    summary="Get a post by ID",
)
async def get_post(
    post_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    # post_id stays a plain string: a malformed id is a 404, not a 422
    return await post_service.get_post(db, post_id)


@router.delete(
    "/{post_id}",
    response_model=MessageResponse,
    responses={**_AUTH_ERRORS, **_NOT_FOUND},
    summary="Delete a post (owner only)",
)
async def delete_post(
    post_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    result = await post_service.delete_post(db, ctx, post_id)
    return MessageResponse(**result)


@router.post(
    "/likes/{post_id}",
    response_model=PostResponse,
    responses={**_AUTH_ERRORS, **_NOT_FOUND},
    summary="Like or unlike a post",
    description="Adds the caller's like if absent, removes it if present.",
)
async def toggle_like(
    post_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    return await post_service.toggle_like(db, ctx, post_id)


@router.post(
    "/comments/{post_id}",
    response_model=List[Comment],
    responses={**_VALIDATION, **_AUTH_ERRORS, **_NOT_FOUND},
    summary="Comment on a post",
)
async def add_comment(
    post_id: str,
    body: CommentCreate,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db_session),
) -> List[Comment]:
    return await post_service.add_comment(db, ctx, post_id, body.text)


@router.delete(
    "/comments/{post_id}/{comment_id}",
    response_model=List[Comment],
    responses={
        **_AUTH_ERRORS,
        404: {"description": "Post or comment not found", "model": ErrorResponse},
    },
    summary="Remove your own comment from a post",
)
async def remove_comment(
    post_id: str,
    comment_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db_session),
) -> List[Comment]:
    return await post_service.remove_comment(db, ctx, post_id, comment_id)
