"""
Discovery engine - people the caller has no relationship with yet
"""
from typing import List
import logging

from ..domain.models import User
from ..domain.repositories import IEntityStore
from ..config import settings
from .graph import GraphResolver

logger = logging.getLogger(__name__)


class DiscoveryEngine:
    """Set-subtraction query over all users"""

    def __init__(self, store: IEntityStore, graph: GraphResolver):
        self.store = store
        self.graph = graph

    async def discoverable(self, user_id: int) -> List[User]:
        """
        Users the caller may not know yet

        Excludes followers, followings, users the caller already sent a
        request to, system placeholder accounts and the caller. Users who
        sent the caller a request are still listed.

        Returns:
            Users ordered by id
        """
        relationships = await self.graph.relationships(user_id)
        system_ids = await self.store.find_system_account_ids(settings.SYSTEM_ACCOUNT_HANDLE_PREFIX)

        excluded = (
            relationships.follower_ids
            | relationships.following_ids
            | relationships.pending_outgoing
            | system_ids
            | {user_id}
        )

        users = await self.store.list_users_except(excluded)
        logger.debug(f"User {user_id}: {len(users)} discoverable, {len(excluded)} excluded")
        return users
