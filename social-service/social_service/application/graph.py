"""
Graph resolver - relationship sets and pairwise connection status
"""
import logging

from ..domain.models import ConnectionStatus, Relationships
from ..domain.repositories import IEntityStore
from ..errors import NotFound

logger = logging.getLogger(__name__)


class GraphResolver:
    """
    Read-only view of the follow graph.

    Every direction question (who follows whom) goes through here so the
    follower -> followee convention lives in one place.
    """

    def __init__(self, store: IEntityStore):
        self.store = store

    async def require_user(self, user_id: int):
        """Load a user or fail with NotFound"""
        user = await self.store.get_user(user_id)
        if not user:
            raise NotFound("User not found")
        return user

    async def relationships(self, user_id: int) -> Relationships:
        """
        Compute the relationship sets of a user

        Args:
            user_id: User ID

        Returns:
            Relationships with followers, followings, pending outgoing and
            pending incoming ids; mutuals are derived

        Raises:
            NotFound: If the user does not exist
        """
        await self.require_user(user_id)

        return Relationships(
            user_id=user_id,
            follower_ids=await self.store.get_follower_ids(user_id),
            following_ids=await self.store.get_following_ids(user_id),
            pending_outgoing=await self.store.get_outgoing_request_ids(user_id),
            pending_incoming=await self.store.get_incoming_request_ids(user_id),
        )

    async def connection_status(self, a: int, b: int) -> ConnectionStatus:
        """
        Get relationship between user a and user b

        An existing follow edge in either direction always outranks a
        pending request.
        """
        a_follows_b = await self.store.get_follow_edge(a, b) is not None
        b_follows_a = await self.store.get_follow_edge(b, a) is not None

        if a_follows_b and b_follows_a:
            return ConnectionStatus.MUTUAL
        if a_follows_b:
            return ConnectionStatus.A_FOLLOWS_B
        if b_follows_a:
            return ConnectionStatus.B_FOLLOWS_A

        if await self.store.find_follow_request(a, b) is not None:
            return ConnectionStatus.REQUESTED_BY_A
        if await self.store.find_follow_request(b, a) is not None:
            return ConnectionStatus.REQUESTED_BY_B
        return ConnectionStatus.NONE

    async def is_connected(self, a: int, b: int) -> bool:
        """At least one follow edge between a and b, in either direction"""
        return (await self.connection_status(a, b)).is_connected
