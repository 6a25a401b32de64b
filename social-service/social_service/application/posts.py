"""
Post service - posts, likes and comments owned by their authors
"""
from typing import Optional
import logging

from ..domain.models import Post, Comment
from ..domain.repositories import IEntityStore
from ..errors import NotFound, Forbidden, ValidationError
from ..infrastructure.kafka_producer import KafkaProducerManager
from ..config import settings

logger = logging.getLogger(__name__)


def _clean_text(text: Optional[str], field: str, max_length: int, required: bool = True) -> str:
    text = (text or "").strip()
    if required and not text:
        raise ValidationError(f"{field} is required")
    if len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text


class PostService:
    """Business logic for post, like and comment mutations"""

    def __init__(self, store: IEntityStore, kafka: KafkaProducerManager):
        self.store = store
        self.kafka = kafka

    async def _owned_post(self, store: IEntityStore, user_id: int, post_id: int) -> Post:
        post = await store.get_post(post_id)
        if not post:
            raise NotFound("Post not found")
        if post.author_id != user_id:
            raise Forbidden("Only the author can modify this post")
        return post

    async def _owned_comment(self, store: IEntityStore, user_id: int, comment_id: int) -> Comment:
        comment = await store.get_comment(comment_id)
        if not comment:
            raise NotFound("Comment not found")
        if comment.author_id != user_id:
            raise Forbidden("Only the author can modify this comment")
        return comment

    # Posts
    async def create_post(self, user_id: int, content: Optional[str],
                          media_url: Optional[str] = None) -> Post:
        """
        Create a post

        Content may be empty only when a media reference is attached.
        """
        content = _clean_text(content, "Content", settings.MAX_POST_LENGTH, required=not media_url)

        post = await self.store.create_post(user_id, content, media_url)
        logger.info(f"User {user_id} created post {post.id}")

        await self.kafka.publish_post_created_event(post.id, user_id)
        return post

    async def update_post(self, user_id: int, post_id: int, content: Optional[str],
                          media_url: Optional[str] = None) -> Post:
        """Update content, and media when a new reference is supplied"""
        async with self.store.transaction() as tx:
            post = await self._owned_post(tx, user_id, post_id)
            has_media = bool(media_url or post.media_url)
            updates = {
                "content": _clean_text(content, "Content", settings.MAX_POST_LENGTH, required=not has_media)
            }
            if media_url is not None:
                updates["media_url"] = media_url
            return await tx.update_post(post_id, updates)

    async def delete_post(self, user_id: int, post_id: int) -> None:
        """Delete a post with its likes and comments"""
        async with self.store.transaction() as tx:
            await self._owned_post(tx, user_id, post_id)
            if not await tx.delete_post(post_id):
                raise NotFound("Post not found")

        logger.info(f"User {user_id} deleted post {post_id}")
        await self.kafka.publish_post_deleted_event(post_id, user_id)

    # Likes
    async def like_post(self, user_id: int, post_id: int) -> bool:
        """
        Like a post

        Returns:
            True if a new like was recorded, False if it already existed
        """
        if not await self.store.get_post(post_id):
            raise NotFound("Post not found")
        return await self.store.add_like(user_id, post_id)

    async def unlike_post(self, user_id: int, post_id: int) -> bool:
        """Remove a like; removing an absent like is not an error"""
        return await self.store.remove_like(user_id, post_id)

    async def like_count(self, post_id: int) -> int:
        if not await self.store.get_post(post_id):
            raise NotFound("Post not found")
        counts = await self.store.count_likes([post_id])
        return counts.get(post_id, 0)

    # Comments
    async def add_comment(self, user_id: int, post_id: int, content: Optional[str]) -> Comment:
        content = _clean_text(content, "Comment", settings.MAX_COMMENT_LENGTH)
        if not await self.store.get_post(post_id):
            raise NotFound("Post not found")
        return await self.store.create_comment(user_id, post_id, content)

    async def edit_comment(self, user_id: int, comment_id: int, content: Optional[str]) -> Comment:
        content = _clean_text(content, "Comment", settings.MAX_COMMENT_LENGTH)
        async with self.store.transaction() as tx:
            await self._owned_comment(tx, user_id, comment_id)
            return await tx.update_comment(comment_id, content)

    async def delete_comment(self, user_id: int, comment_id: int) -> None:
        async with self.store.transaction() as tx:
            await self._owned_comment(tx, user_id, comment_id)
            if not await tx.delete_comment(comment_id):
                raise NotFound("Comment not found")
