"""
Profile service - profiles, graph stats and connection listings
"""
from typing import Any, Dict, List, Optional, Tuple
import logging

from ..domain.models import AnnotatedPost, ConnectionStatus, FollowRequest, User
from ..domain.repositories import IEntityStore
from ..errors import Conflict, ValidationError
from ..infrastructure.cache import RedisCache
from .feed import FeedAssembler
from .graph import GraphResolver

logger = logging.getLogger(__name__)


class ProfileService:
    """User-facing profile operations"""

    def __init__(self, store: IEntityStore, graph: GraphResolver,
                 feed: FeedAssembler, cache: RedisCache):
        self.store = store
        self.graph = graph
        self.feed = feed
        self.cache = cache

    async def get_stats(self, user_id: int) -> Dict[str, int]:
        """
        Get user's graph statistics

        Returns:
            Dict with follower_count and following_count
        """
        cached = await self.cache.get_stats(user_id)
        if cached:
            return cached

        stats = {
            "follower_count": len(await self.store.get_follower_ids(user_id)),
            "following_count": len(await self.store.get_following_ids(user_id)),
        }
        await self.cache.set_stats(user_id, stats)
        return stats

    async def me(self, user_id: int) -> Tuple[User, Dict[str, int]]:
        """Caller's own profile with counts"""
        user = await self.graph.require_user(user_id)
        return user, await self.get_stats(user_id)

    async def update_profile(self, user_id: int, name: Optional[str] = None,
                             handle: Optional[str] = None,
                             bio: Optional[str] = None) -> User:
        """
        Update name, handle and bio

        Raises:
            ValidationError: If nothing to update
            Conflict: If the handle belongs to another user
        """
        updates: Dict[str, Any] = {}
        if name is not None:
            updates["name"] = name
        if handle is not None:
            updates["handle"] = handle
        if bio is not None:
            updates["bio"] = bio

        if not updates:
            raise ValidationError("No fields to update")

        await self.graph.require_user(user_id)

        async with self.store.transaction() as tx:
            if handle is not None:
                owner = await tx.get_user_by_handle(handle)
                if owner and owner.id != user_id:
                    raise Conflict("Handle already taken")
            user = await tx.update_user(user_id, updates)

        logger.info(f"User {user_id} updated profile fields {sorted(updates)}")
        return user

    async def update_avatar(self, user_id: int, avatar_url: str) -> User:
        """Store the media collaborator's reference as the avatar"""
        await self.graph.require_user(user_id)
        return await self.store.update_user(user_id, {"avatar_url": avatar_url})

    async def person(
        self, viewer_id: int, target_id: int
    ) -> Tuple[User, Dict[str, int], ConnectionStatus, Optional[List[AnnotatedPost]]]:
        """
        Another user's profile as seen by the viewer

        Posts are included only when the two users are connected or the
        viewer is looking at their own profile.
        """
        target = await self.graph.require_user(target_id)
        stats = await self.get_stats(target_id)
        status = await self.graph.connection_status(viewer_id, target_id)

        posts = None
        if viewer_id == target_id or status.is_connected:
            posts = await self.feed.author_posts(viewer_id, target_id)

        return target, stats, status, posts

    async def connections(self, user_id: int) -> Tuple[List[User], List[User]]:
        """
        Followers and followings

        Returns:
            Tuple of (followers, followings)
        """
        relationships = await self.graph.relationships(user_id)
        followers = await self.store.get_users(relationships.follower_ids)
        followings = await self.store.get_users(relationships.following_ids)
        return followers, followings

    async def incoming_requests(self, user_id: int) -> List[Tuple[FollowRequest, User]]:
        """Pending requests addressed to the user, newest first"""
        await self.graph.require_user(user_id)
        requests = await self.store.list_incoming_requests(user_id)
        requesters = {u.id: u for u in await self.store.get_users(r.requester_id for r in requests)}
        return [(r, requesters[r.requester_id]) for r in requests if r.requester_id in requesters]

    async def relationship(self, viewer_id: int, target_id: int) -> Dict[str, Any]:
        """Connection status plus the individual flags the client renders"""
        await self.graph.require_user(target_id)
        status = await self.graph.connection_status(viewer_id, target_id)

        is_following = status in (ConnectionStatus.MUTUAL, ConnectionStatus.A_FOLLOWS_B)
        is_followed_by = status in (ConnectionStatus.MUTUAL, ConnectionStatus.B_FOLLOWS_A)
        return {
            "user_id": viewer_id,
            "target_user_id": target_id,
            "status": status,
            "is_following": is_following,
            "is_followed_by": is_followed_by,
            "is_mutual": status == ConnectionStatus.MUTUAL,
            "is_requested": status == ConnectionStatus.REQUESTED_BY_A,
            "has_requested_you": status == ConnectionStatus.REQUESTED_BY_B,
        }
