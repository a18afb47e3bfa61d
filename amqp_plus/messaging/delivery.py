"""
Inbound message wrapper for subscribers.
"""

import inspect
from collections.abc import Awaitable, Callable
from functools import cached_property
from typing import Any

from aio_pika.abc import AbstractIncomingMessage

from amqp_plus.config.logging import get_logger
from amqp_plus.messaging.codec import decode

logger = get_logger(__name__)


class DeliveredMessage:
    """
    A broker delivery paired with its decoded content and completion actions.

    Exactly one of ``ack``, ``nack`` or ``reject`` must be awaited per
    delivery. The raw message stays available as ``raw``.
    """

    def __init__(self, raw: AbstractIncomingMessage):
        self.raw = raw

    @cached_property
    def content(self) -> Any:
        """
        Body decoded according to the message content type.

        Raises:
            ContentDecodeError: If the body does not match its content type
        """
        return decode(self.raw.body, self.raw.content_type)

    @property
    def body(self) -> bytes:
        return self.raw.body

    @property
    def content_type(self) -> str | None:
        return self.raw.content_type

    @property
    def routing_key(self) -> str | None:
        return self.raw.routing_key

    @property
    def headers(self) -> dict[str, Any]:
        return dict(self.raw.headers or {})

    @property
    def delivery_tag(self) -> int | None:
        return self.raw.delivery_tag

    async def ack(self) -> None:
        """Confirm the delivery and remove it from the broker."""
        await self.raw.ack()

    async def nack(self) -> None:
        """Negatively acknowledge the delivery; the broker requeues it."""
        await self.raw.nack(requeue=True)

    async def reject(self) -> None:
        """Negatively acknowledge the delivery without requeueing it."""
        await self.raw.nack(requeue=False)

    def __repr__(self) -> str:
        return (
            f"DeliveredMessage(routing_key={self.routing_key!r}, "
            f"content_type={self.content_type!r}, delivery_tag={self.delivery_tag!r})"
        )


Consumer = Callable[[DeliveredMessage], Awaitable[Any] | Any]


def wrap_consumer(
    consumer: Consumer,
    queue_name: str,
) -> Callable[[AbstractIncomingMessage], Awaitable[Any]]:
    """
    Adapt a subscriber callback to aio_pika's consume callback.

    Args:
        consumer: Sync or async callable receiving a DeliveredMessage
        queue_name: Queue the callback consumes from, for logging

    Returns:
        Async callback suitable for ``queue.consume``
    """

    async def on_message(message: AbstractIncomingMessage) -> Any:
        delivered = DeliveredMessage(message)

        logger.debug(
            "message_received",
            queue=queue_name,
            routing_key=message.routing_key,
            delivery_tag=message.delivery_tag,
        )

        try:
            result = consumer(delivered)
            if inspect.isawaitable(result):
                result = await result
            return result

        except Exception as e:
            logger.error(
                "message_processing_failed",
                queue=queue_name,
                delivery_tag=message.delivery_tag,
                error=str(e),
            )
            raise

    return on_message
