"""RabbitMQ publisher for voting-link notifications."""
import asyncio
import json
import logging
from typing import Optional
from urllib.parse import urlencode

import aio_pika
from aio_pika import connect_robust, Message, DeliveryMode
from aio_pika.pool import Pool

from ..shared import Participant, get_current_timestamp
from .config import Settings

logger = logging.getLogger(__name__)


def build_voting_link(base_url: str, email: str) -> str:
    """
    Build the voting-link URL sent to a participant.

    Args:
        base_url: Voting page URL
        email: Participant email

    Returns:
        str: URL carrying the email as a query parameter
    """
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode({'email': email})}"


class VotingLinkNotifier:
    """
    Publishes "participant.registered" events for the mail worker.

    Delivery failures are logged and reported as False; they never propagate
    to the registration that triggered them.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.enabled = settings.NOTIFIER_ENABLED
        self.connection_pool: Optional[Pool] = None
        self.channel_pool: Optional[Pool] = None

    async def get_connection(self) -> aio_pika.abc.AbstractRobustConnection:
        """Get a connection for the pool."""
        return await connect_robust(self.settings.rabbitmq_url)

    async def get_channel(self) -> aio_pika.abc.AbstractChannel:
        """Get a channel for the pool."""
        async with self.connection_pool.acquire() as connection:
            return await connection.channel()

    async def initialize(self):
        """Initialize connection and channel pools and declare the exchange."""
        if not self.enabled:
            logger.info("Voting-link notifier disabled")
            return

        try:
            self.connection_pool = Pool(
                self.get_connection,
                max_size=self.settings.RABBITMQ_POOL_SIZE
            )
            self.channel_pool = Pool(
                self.get_channel,
                max_size=self.settings.RABBITMQ_POOL_SIZE
            )

            async with self.channel_pool.acquire() as channel:
                await channel.declare_exchange(
                    self.settings.RABBITMQ_EXCHANGE,
                    aio_pika.ExchangeType.TOPIC,
                    durable=True
                )

            logger.info("Voting-link notifier initialized successfully")

        except Exception as e:
            # Registration keeps working without notifications
            logger.error(f"Failed to initialize voting-link notifier: {e}")

    async def send_voting_link(self, participant: Participant) -> bool:
        """
        Publish a voting-link event for a participant.

        Args:
            participant: Registered participant

        Returns:
            bool: True if published successfully, False otherwise
        """
        if not self.enabled or self.channel_pool is None:
            logger.debug(f"Notifier unavailable, no voting link sent to {participant.email}")
            return False

        try:
            await asyncio.wait_for(
                self._publish(participant),
                timeout=self.settings.NOTIFIER_TIMEOUT_SECONDS
            )
            return True
        except Exception as e:
            logger.error(f"Failed to publish voting link for {participant.email}: {e!r}")
            return False

    async def _publish(self, participant: Participant):
        voting_link = build_voting_link(self.settings.VOTING_LINK_BASE_URL, participant.email)
        event = {
            "event": self.settings.RABBITMQ_ROUTING_KEY,
            "participant_id": participant.id,
            "email": participant.email,
            "voting_link": voting_link,
            "published_at": get_current_timestamp().isoformat()
        }

        async with self.channel_pool.acquire() as channel:
            exchange = await channel.get_exchange(self.settings.RABBITMQ_EXCHANGE)

            message = Message(
                body=json.dumps(event).encode(),
                delivery_mode=DeliveryMode.PERSISTENT,
                content_type="application/json",
                timestamp=get_current_timestamp()
            )

            await exchange.publish(
                message,
                routing_key=self.settings.RABBITMQ_ROUTING_KEY
            )

        logger.info(
            f"Published voting link: participant={participant.id}, "
            f"email={participant.email}"
        )

    async def check_health(self) -> bool:
        """
        Check RabbitMQ connection health.

        Returns:
            bool: True if healthy, False otherwise
        """
        if self.channel_pool is None:
            return False
        try:
            async with self.channel_pool.acquire() as channel:
                await channel.declare_queue("health_check", auto_delete=True)
                return True
        except Exception as e:
            logger.error(f"RabbitMQ health check failed: {e}")
            return False

    async def close(self):
        """Close all connections and channels."""
        try:
            if self.channel_pool:
                await self.channel_pool.close()
            if self.connection_pool:
                await self.connection_pool.close()
            logger.info("Voting-link notifier closed successfully")
        except Exception as e:
            logger.error(f"Error closing voting-link notifier: {e}")
