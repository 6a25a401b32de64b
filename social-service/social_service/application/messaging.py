"""
Messaging gate and conversation aggregator
"""
from typing import List, Optional, Tuple
import logging

from ..domain.models import Message, User
from ..domain.repositories import IEntityStore
from ..errors import Forbidden, ValidationError
from ..infrastructure.kafka_producer import KafkaProducerManager
from ..config import settings
from .graph import GraphResolver

logger = logging.getLogger(__name__)


class MessagingService:
    """Direct messages between connected users"""

    def __init__(self, store: IEntityStore, graph: GraphResolver, kafka: KafkaProducerManager):
        self.store = store
        self.graph = graph
        self.kafka = kafka

    async def _require_connection(self, store: IEntityStore, user_id: int, partner_id: int) -> User:
        graph = GraphResolver(store)
        partner = await graph.require_user(partner_id)
        if user_id == partner_id or not await graph.is_connected(user_id, partner_id):
            raise Forbidden("You can only message users you are connected with")
        return partner

    async def send_message(self, sender_id: int, receiver_id: int, text: Optional[str]) -> Message:
        """
        Send a direct message

        Raises:
            ValidationError: If the text is blank or too long
            NotFound: If the receiver does not exist
            Forbidden: If there is no follow edge between the two users
        """
        text = (text or "").strip()
        if not text:
            raise ValidationError("Message text is required")
        if len(text) > settings.MAX_MESSAGE_LENGTH:
            raise ValidationError(f"Message must be at most {settings.MAX_MESSAGE_LENGTH} characters")

        # an unfollow cannot slip between the check and the insert
        async with self.store.transaction() as tx:
            await self._require_connection(tx, sender_id, receiver_id)
            message = await tx.create_message(sender_id, receiver_id, text)

        await self.kafka.publish_message_sent_event(message.id, sender_id, receiver_id)
        return message

    async def get_thread(self, user_id: int, partner_id: int) -> Tuple[List[Message], User]:
        """
        Messages between two connected users, oldest first

        Returns:
            Tuple of (messages, partner profile)
        """
        partner = await self._require_connection(self.store, user_id, partner_id)
        return await self.store.list_thread(user_id, partner_id), partner

    async def conversations(self, user_id: int) -> List[User]:
        """
        Distinct conversation partners, most recent interaction first

        Scans the user's messages newest first and keeps the first
        occurrence of every partner.
        """
        await self.graph.require_user(user_id)
        messages = await self.store.list_messages_for_user(user_id)

        partner_ids: List[int] = []
        seen = set()
        for message in messages:
            partner_id = message.partner_of(user_id)
            if partner_id not in seen:
                seen.add(partner_id)
                partner_ids.append(partner_id)

        partners = {u.id: u for u in await self.store.get_users(partner_ids)}
        return [partners[i] for i in partner_ids if i in partners]
