"""
Kafka producer for publishing social events
"""
from aiokafka import AIOKafkaProducer
from typing import Optional, Dict, Any
import json
import logging
from datetime import datetime

from ..config import settings

logger = logging.getLogger(__name__)


class KafkaProducerManager:
    """Kafka producer manager for publishing events"""

    def __init__(self):
        self.producer: Optional[AIOKafkaProducer] = None

    async def start(self):
        """Start Kafka producer"""
        if not settings.KAFKA_ENABLED:
            logger.info("Kafka is disabled")
            return

        try:
            self.producer = AIOKafkaProducer(
                bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
                value_serializer=lambda v: json.dumps(v).encode("utf-8"),
                key_serializer=lambda v: str(v).encode("utf-8") if v else None,
            )
            await self.producer.start()
            logger.info("Kafka producer started successfully")
        except Exception as e:
            logger.warning(f"Failed to start Kafka producer: {e}. Continuing without Kafka.")
            self.producer = None

    async def stop(self):
        """Stop Kafka producer"""
        if self.producer:
            await self.producer.stop()
            logger.info("Kafka producer stopped")

    async def publish_event(self, topic: str, key: str, event_data: Dict[str, Any]):
        """
        Publish event to Kafka topic

        Args:
            topic: Kafka topic name
            key: Message key (usually user_id)
            event_data: Event data to publish
        """
        if not self.producer:
            logger.debug(f"Kafka disabled, skipping event: {topic}")
            return

        try:
            await self.producer.send(topic, value=event_data, key=key)
            logger.info(f"Published event to {topic}: {key}")
        except Exception as e:
            logger.error(f"Error publishing event to {topic}: {e}")

    async def _publish_pair_event(self, topic: str, event_type: str, **fields):
        event_data = {
            "event_type": event_type,
            **fields,
            "timestamp": datetime.utcnow().isoformat(),
        }
        key = next(iter(fields.values()))
        await self.publish_event(topic, str(key), event_data)

    # Graph events
    async def publish_follow_requested_event(self, requester_id: int, requestee_id: int):
        """Publish follow request created event"""
        await self._publish_pair_event(
            settings.KAFKA_TOPIC_FOLLOW_REQUESTED, "follow_requested",
            requester_id=requester_id, requestee_id=requestee_id,
        )

    async def publish_follow_accepted_event(self, follower_id: int, followee_id: int):
        """Publish follow request accepted event"""
        await self._publish_pair_event(
            settings.KAFKA_TOPIC_FOLLOW_ACCEPTED, "follow_accepted",
            follower_id=follower_id, followee_id=followee_id,
        )

    async def publish_follow_declined_event(self, requester_id: int, requestee_id: int):
        """Publish follow request declined event"""
        await self._publish_pair_event(
            settings.KAFKA_TOPIC_FOLLOW_DECLINED, "follow_declined",
            requester_id=requester_id, requestee_id=requestee_id,
        )

    async def publish_follow_cancelled_event(self, requester_id: int, requestee_id: int):
        """Publish follow request withdrawn event"""
        await self._publish_pair_event(
            settings.KAFKA_TOPIC_FOLLOW_CANCELLED, "follow_cancelled",
            requester_id=requester_id, requestee_id=requestee_id,
        )

    async def publish_unfollow_event(self, follower_id: int, followee_id: int):
        """Publish unfollow event"""
        await self._publish_pair_event(
            settings.KAFKA_TOPIC_FOLLOW_REMOVED, "unfollow",
            follower_id=follower_id, followee_id=followee_id,
        )

    # Content events
    async def publish_post_created_event(self, post_id: int, author_id: int):
        """Publish post created event"""
        await self._publish_pair_event(
            settings.KAFKA_TOPIC_POST_CREATED, "post_created",
            author_id=author_id, post_id=post_id,
        )

    async def publish_post_deleted_event(self, post_id: int, author_id: int):
        """Publish post deleted event"""
        await self._publish_pair_event(
            settings.KAFKA_TOPIC_POST_DELETED, "post_deleted",
            author_id=author_id, post_id=post_id,
        )

    async def publish_message_sent_event(self, message_id: int, sender_id: int, receiver_id: int):
        """Publish direct message event"""
        await self._publish_pair_event(
            settings.KAFKA_TOPIC_MESSAGE_SENT, "message_sent",
            sender_id=sender_id, receiver_id=receiver_id, message_id=message_id,
        )


# Global producer instance
kafka_producer = KafkaProducerManager()


async def get_kafka_producer() -> KafkaProducerManager:
    """Dependency for getting Kafka producer instance"""
    return kafka_producer
