"""
Kafka producer for change events.

Publishing is optional: with `KAFKA_ENABLED` off, or when the broker is
unreachable at startup, `publish_event` is a no-op that returns False.
"""

import json
from typing import Optional

from aiokafka import AIOKafkaProducer

from app.core.config import settings
from app.core.events import EventEnvelope
from app.core.logging import get_logger

logger = get_logger(__name__)


class KafkaProducer:
    """Process-wide producer started and stopped by the application lifespan."""

    _producer: Optional[AIOKafkaProducer] = None
    _started: bool = False

    @classmethod
    async def start(cls) -> None:
        if not settings.KAFKA_ENABLED:
            logger.info("Kafka publishing disabled")
            return
        if cls._started:
            return

        producer = AIOKafkaProducer(
            bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
            client_id=settings.KAFKA_CLIENT_ID,
            value_serializer=lambda value: json.dumps(value).encode("utf-8"),
            key_serializer=lambda key: key.encode("utf-8") if key else None,
        )
        try:
            await producer.start()
        except Exception as e:
            logger.warning(f"Kafka unavailable, event publishing disabled: {e}")
            return

        cls._producer = producer
        cls._started = True
        logger.info(f"Kafka producer connected to {settings.KAFKA_BOOTSTRAP_SERVERS}")

    @classmethod
    async def stop(cls) -> None:
        if cls._producer is not None:
            await cls._producer.stop()
        cls._producer = None
        cls._started = False

    @classmethod
    def is_started(cls) -> bool:
        return cls._started

    @classmethod
    async def send(cls, topic: str, value: dict, key: Optional[str] = None) -> None:
        if cls._producer is None:
            raise RuntimeError("Kafka producer is not started")
        await cls._producer.send_and_wait(topic, value=value, key=key)


async def publish_event(topic: str, event: EventEnvelope) -> bool:
    """
    Publish an event envelope to a Kafka topic.

    Returns:
        True if the event was sent, False if publishing is disabled
    """
    if not KafkaProducer.is_started():
        return False

    await KafkaProducer.send(topic, event.model_dump(mode="json"), key=event.event_id)
    logger.debug(f"Published {event.event_type.value} to {topic}")
    return True
