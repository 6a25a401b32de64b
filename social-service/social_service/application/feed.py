"""
Feed assembler - annotated, time-ordered post timelines
"""
from typing import List, Optional, Tuple, Iterable
import logging

from ..domain.models import AnnotatedPost, AnnotatedComment, Post
from ..domain.repositories import IEntityStore
from ..errors import NotFound
from ..config import settings
from .graph import GraphResolver

logger = logging.getLogger(__name__)


class FeedAssembler:
    """Builds the post timeline visible to a viewer"""

    def __init__(self, store: IEntityStore, graph: GraphResolver):
        self.store = store
        self.graph = graph

    async def feed(
        self, viewer_id: int, page: int = 1, page_size: Optional[int] = None
    ) -> Tuple[List[AnnotatedPost], int, bool]:
        """
        Get the viewer's feed

        Posts by the viewer and by everyone the viewer follows, newest
        first, ties broken by id. Recomputed on every call.

        Args:
            viewer_id: User reading the feed
            page: Page number (1-indexed)
            page_size: Items per page, None for the whole feed

        Returns:
            Tuple of (annotated posts, total count, has_more)
        """
        page = max(1, page)
        if page_size is not None:
            page_size = min(page_size, settings.MAX_PAGE_SIZE)
            offset = (page - 1) * page_size
        else:
            offset = 0

        # page, total and annotations come from one committed state
        async with self.store.transaction(snapshot=True) as tx:
            relationships = await GraphResolver(tx).relationships(viewer_id)
            author_ids = relationships.following_ids | {viewer_id}

            posts = await tx.list_posts_by_authors(author_ids, limit=page_size, offset=offset)
            total = await tx.count_posts_by_authors(author_ids)
            items = await self.annotate(viewer_id, posts, store=tx)
        has_more = offset + len(posts) < total

        logger.debug(f"Feed for user {viewer_id}: {len(posts)} of {total} posts")
        return items, total, has_more

    async def author_posts(self, viewer_id: int, author_id: int) -> List[AnnotatedPost]:
        """All posts by one author, annotated for the viewer"""
        posts = await self.store.list_posts_by_authors([author_id])
        return await self.annotate(viewer_id, posts)

    async def post_detail(
        self, viewer_id: int, post_id: int
    ) -> Tuple[AnnotatedPost, List[AnnotatedComment]]:
        """
        Get a single post with its comments, newest comment first

        Raises:
            NotFound: If the post does not exist
        """
        post = await self.store.get_post(post_id)
        if not post:
            raise NotFound("Post not found")

        annotated = (await self.annotate(viewer_id, [post]))[0]
        comments = await self.annotate_comments(post_id)
        return annotated, comments

    async def annotate_comments(self, post_id: int) -> List[AnnotatedComment]:
        comments = await self.store.list_comments(post_id)
        authors = await self._users_by_id(c.author_id for c in comments)
        return [AnnotatedComment(comment=c, author=authors[c.author_id]) for c in comments]

    async def annotate(
        self, viewer_id: int, posts: List[Post], store: Optional[IEntityStore] = None
    ) -> List[AnnotatedPost]:
        """Attach author profile, like/comment counts and viewer's like flag"""
        if not posts:
            return []
        store = store or self.store

        post_ids = [p.id for p in posts]
        authors = await self._users_by_id((p.author_id for p in posts), store)
        like_counts = await store.count_likes(post_ids)
        comment_counts = await store.count_comments(post_ids)
        liked = await store.get_liked_post_ids(viewer_id, post_ids)

        return [
            AnnotatedPost(
                post=post,
                author=authors[post.author_id],
                like_count=like_counts.get(post.id, 0),
                comment_count=comment_counts.get(post.id, 0),
                is_liked_by_viewer=post.id in liked,
            )
            for post in posts
        ]

    async def _users_by_id(self, user_ids: Iterable[int], store: Optional[IEntityStore] = None):
        users = await (store or self.store).get_users(set(user_ids))
        return {u.id: u for u in users}
