"""
Feed, post, like and comment routes
"""
from fastapi import APIRouter, Depends, Query, status

from ...config import settings
from ...schemas import (
    CurrentUser,
    FeedResponse,
    PostCreate,
    PostUpdate,
    PostResponse,
    PostDetailResponse,
    LikeResponse,
    LikeCountResponse,
    CommentCreate,
    CommentResponse,
    CommentListResponse,
    MessageResponse,
)
from ...application.feed import FeedAssembler
from ...application.posts import PostService
from ...domain.models import AnnotatedComment
from ...dependencies import get_current_user, get_feed_assembler, get_post_service
from .. import presenters


router = APIRouter(prefix="/api/v1")


# Feed
@router.get(
    "/feed",
    response_model=FeedResponse,
    tags=["Feed"],
    summary="Get home feed",
)
async def get_feed(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(
        settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Items per page"
    ),
    current_user: CurrentUser = Depends(get_current_user),
    feed: FeedAssembler = Depends(get_feed_assembler),
):
    """
    Get home feed

    Posts by you and the people you follow, newest first.
    """
    items, total, has_more = await feed.feed(current_user.id, page, page_size)
    return FeedResponse(
        items=[presenters.feed_post(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
        has_more=has_more,
    )


# Posts
@router.post(
    "/posts",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Posts"],
    summary="Create a post",
)
async def create_post(
    post_data: PostCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    """
    Create a post

    - content is required unless media_url is set
    """
    return await service.create_post(current_user.id, post_data.content, post_data.media_url)


@router.get(
    "/posts/{post_id}",
    response_model=PostDetailResponse,
    tags=["Posts"],
    summary="Get a post with its comments",
)
async def get_post(
    post_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    feed: FeedAssembler = Depends(get_feed_assembler),
):
    post, comments = await feed.post_detail(current_user.id, post_id)
    return PostDetailResponse(
        post=presenters.detail_post(post),
        comments=[presenters.comment(c) for c in comments],
        current_user_id=current_user.id,
    )


@router.put(
    "/posts/{post_id}",
    response_model=PostResponse,
    tags=["Posts"],
    summary="Edit a post",
)
async def update_post(
    post_id: int,
    post_data: PostUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    """Only the author can edit a post"""
    return await service.update_post(current_user.id, post_id, post_data.content, post_data.media_url)


@router.delete(
    "/posts/{post_id}",
    response_model=MessageResponse,
    tags=["Posts"],
    summary="Delete a post",
)
async def delete_post(
    post_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    await service.delete_post(current_user.id, post_id)
    return MessageResponse(message="Post deleted")


# Likes
@router.post(
    "/posts/{post_id}/like",
    response_model=LikeResponse,
    tags=["Likes"],
    summary="Like a post",
)
async def like_post(
    post_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    """Liking twice keeps a single like"""
    await service.like_post(current_user.id, post_id)
    return LikeResponse(
        post_id=post_id,
        is_liked=True,
        like_count=await service.like_count(post_id),
    )


@router.delete(
    "/posts/{post_id}/like",
    response_model=LikeResponse,
    tags=["Likes"],
    summary="Remove your like",
)
async def unlike_post(
    post_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    await service.unlike_post(current_user.id, post_id)
    return LikeResponse(
        post_id=post_id,
        is_liked=False,
        like_count=await service.like_count(post_id),
    )


@router.get(
    "/posts/{post_id}/like",
    response_model=LikeCountResponse,
    tags=["Likes"],
    summary="Get like count",
)
async def get_like_count(
    post_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    return LikeCountResponse(post_id=post_id, like_count=await service.like_count(post_id))


# Comments
@router.get(
    "/posts/{post_id}/comments",
    response_model=CommentListResponse,
    tags=["Comments"],
    summary="List comments on a post",
)
async def list_comments(
    post_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    feed: FeedAssembler = Depends(get_feed_assembler),
):
    """Newest comment first"""
    _, comments = await feed.post_detail(current_user.id, post_id)
    return CommentListResponse(
        comments=[presenters.comment(c) for c in comments],
        count=len(comments),
    )


@router.post(
    "/posts/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Comments"],
    summary="Comment on a post",
)
async def add_comment(
    post_id: int,
    comment_data: CommentCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
    feed: FeedAssembler = Depends(get_feed_assembler),
):
    comment = await service.add_comment(current_user.id, post_id, comment_data.content)
    author = await feed.graph.require_user(current_user.id)
    return presenters.comment(AnnotatedComment(comment=comment, author=author))


@router.put(
    "/comments/{comment_id}",
    response_model=CommentResponse,
    tags=["Comments"],
    summary="Edit a comment",
)
async def edit_comment(
    comment_id: int,
    comment_data: CommentCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
    feed: FeedAssembler = Depends(get_feed_assembler),
):
    """Only the author can edit a comment"""
    comment = await service.edit_comment(current_user.id, comment_id, comment_data.content)
    author = await feed.graph.require_user(current_user.id)
    return presenters.comment(AnnotatedComment(comment=comment, author=author))


@router.delete(
    "/comments/{comment_id}",
    response_model=MessageResponse,
    tags=["Comments"],
    summary="Delete a comment",
)
async def delete_comment(
    comment_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    await service.delete_comment(current_user.id, comment_id)
    return MessageResponse(message="Comment deleted")
