"""
Domain objects -> response schemas
"""
from typing import Dict

from ..domain.models import AnnotatedPost, AnnotatedComment, User
from ..schemas import (
    AuthorSummary,
    CommentAuthor,
    CommentResponse,
    DetailPost,
    FeedPost,
    PublicProfile,
    UserProfile,
)


def public_profile(user: User) -> PublicProfile:
    return PublicProfile.model_validate(user)


def user_profile(user: User, stats: Dict[str, int]) -> UserProfile:
    return UserProfile(
        id=user.id,
        name=user.name,
        handle=user.handle,
        bio=user.bio,
        avatar_url=user.avatar_url,
        follower_count=stats.get("follower_count", 0),
        following_count=stats.get("following_count", 0),
    )


def feed_post(item: AnnotatedPost) -> FeedPost:
    post = item.post
    return FeedPost(
        id=post.id,
        author_id=post.author_id,
        content=post.content,
        media_url=post.media_url,
        created_at=post.created_at,
        updated_at=post.updated_at,
        author=AuthorSummary.model_validate(item.author),
        like_count=item.like_count,
        comment_count=item.comment_count,
        is_liked_by_viewer=item.is_liked_by_viewer,
    )


def detail_post(item: AnnotatedPost) -> DetailPost:
    post = item.post
    return DetailPost(
        id=post.id,
        author_id=post.author_id,
        content=post.content,
        media_url=post.media_url,
        created_at=post.created_at,
        updated_at=post.updated_at,
        author=public_profile(item.author),
        like_count=item.like_count,
        comment_count=item.comment_count,
        is_liked_by_viewer=item.is_liked_by_viewer,
    )


def comment(item: AnnotatedComment) -> CommentResponse:
    c = item.comment
    return CommentResponse(
        id=c.id,
        post_id=c.post_id,
        author_id=c.author_id,
        content=c.content,
        created_at=c.created_at,
        updated_at=c.updated_at,
        author=CommentAuthor.model_validate(item.author),
    )
