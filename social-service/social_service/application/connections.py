"""
Connection workflow - follow request state machine

Per ordered pair (a, b):  NONE -> REQUESTED -> CONNECTED
                          REQUESTED -> NONE  (decline / cancel)
                          CONNECTED -> NONE  (unfollow)
"""
import logging

from ..domain.models import FollowEdge, FollowRequest
from ..domain.repositories import IEntityStore
from ..errors import NotFound, Forbidden, Conflict, ValidationError
from ..infrastructure.cache import RedisCache
from ..infrastructure.kafka_producer import KafkaProducerManager
from .graph import GraphResolver

logger = logging.getLogger(__name__)


class ConnectionWorkflow:
    """Business logic for follow requests and follow edges"""

    def __init__(self, store: IEntityStore, graph: GraphResolver,
                 cache: RedisCache, kafka: KafkaProducerManager):
        self.store = store
        self.graph = graph
        self.cache = cache
        self.kafka = kafka

    async def request(self, requester_id: int, requestee_id: int) -> FollowRequest:
        """
        Ask to follow a user

        Args:
            requester_id: User sending the request
            requestee_id: User to be followed

        Returns:
            The pending FollowRequest

        Raises:
            ValidationError: If requesting yourself
            NotFound: If the target user does not exist
            Conflict: If an edge exists in either direction or the request is already pending
        """
        if requester_id == requestee_id:
            raise ValidationError("You cannot follow yourself")

        await self.graph.require_user(requestee_id)

        async with self.store.transaction() as tx:
            if await tx.get_follow_edge(requester_id, requestee_id):
                raise Conflict("You are already following this user")
            if await tx.get_follow_edge(requestee_id, requester_id):
                raise Conflict("You are already connected with this user")
            if await tx.find_follow_request(requester_id, requestee_id):
                raise Conflict("Follow request already pending")

            request = await tx.create_follow_request(requester_id, requestee_id)

        logger.info(f"User {requester_id} requested to follow user {requestee_id}")
        await self.kafka.publish_follow_requested_event(requester_id, requestee_id)
        return request

    async def accept(self, user_id: int, request_id: int) -> FollowEdge:
        """
        Accept a follow request addressed to user_id

        The request row is removed and FollowEdge(requester -> requestee)
        is inserted in the same transaction; the requester becomes a
        follower of the user who accepted.

        Raises:
            NotFound: If the request does not exist (or was already processed)
            Forbidden: If user_id is not the requestee
        """
        async with self.store.transaction() as tx:
            request = await self._load_request(tx, request_id)
            if request.requestee_id != user_id:
                raise Forbidden("Only the requested user can accept this request")

            if not await tx.delete_follow_request(request_id):
                raise NotFound("Follow request not found")
            edge = await tx.create_follow_edge(request.requester_id, request.requestee_id)

        logger.info(f"User {user_id} accepted follow request {request_id} from user {request.requester_id}")
        await self.cache.invalidate_stats(request.requester_id, request.requestee_id)
        await self.kafka.publish_follow_accepted_event(edge.follower_id, edge.followee_id)
        return edge

    async def decline(self, user_id: int, request_id: int) -> FollowRequest:
        """
        Decline a follow request addressed to user_id

        Raises:
            NotFound: If the request does not exist
            Forbidden: If user_id is not the requestee
        """
        async with self.store.transaction() as tx:
            request = await self._load_request(tx, request_id)
            if request.requestee_id != user_id:
                raise Forbidden("Only the requested user can decline this request")
            await self._delete_request(tx, request_id)

        logger.info(f"User {user_id} declined follow request {request_id}")
        await self.kafka.publish_follow_declined_event(request.requester_id, request.requestee_id)
        return request

    async def cancel(self, user_id: int, request_id: int) -> FollowRequest:
        """
        Withdraw a follow request sent by user_id

        Raises:
            NotFound: If the request does not exist
            Forbidden: If user_id is not the requester
        """
        async with self.store.transaction() as tx:
            request = await self._load_request(tx, request_id)
            if request.requester_id != user_id:
                raise Forbidden("Only the requester can cancel this request")
            await self._delete_request(tx, request_id)

        logger.info(f"User {user_id} cancelled follow request {request_id}")
        await self.kafka.publish_follow_cancelled_event(request.requester_id, request.requestee_id)
        return request

    async def cancel_to(self, user_id: int, requestee_id: int) -> FollowRequest:
        """Withdraw the pending request user_id sent to requestee_id"""
        request = await self.store.find_follow_request(user_id, requestee_id)
        if not request:
            raise NotFound("Follow request not found")
        return await self.cancel(user_id, request.id)

    async def unfollow(self, user_id: int, followee_id: int) -> None:
        """
        Stop following a user

        Only the edge user_id -> followee_id is removed; a reverse edge,
        if any, stays in place.

        Raises:
            NotFound: If user_id does not follow followee_id
        """
        async with self.store.transaction() as tx:
            if not await tx.delete_follow_edge(user_id, followee_id):
                raise NotFound("You are not following this user")

        logger.info(f"User {user_id} unfollowed user {followee_id}")
        await self.cache.invalidate_stats(user_id, followee_id)
        await self.kafka.publish_unfollow_event(user_id, followee_id)

    async def _load_request(self, tx: IEntityStore, request_id: int) -> FollowRequest:
        request = await tx.get_follow_request(request_id)
        if not request:
            raise NotFound("Follow request not found")
        return request

    async def _delete_request(self, tx: IEntityStore, request_id: int) -> None:
        # conditional delete; a concurrent accept/decline leaves nothing to remove
        if not await tx.delete_follow_request(request_id):
            raise NotFound("Follow request not found")
