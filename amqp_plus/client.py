"""
Declarative topology client.

``AmqpPlus`` validates a topology description at construction time,
installs it on every (re)connect and offers publish/subscribe helpers with
content-aware encoding.
"""

import asyncio
from collections.abc import Awaitable, Mapping, Sequence
from typing import Any

from aio_pika import DeliveryMode, Message
from aio_pika.abc import AbstractChannel

from amqp_plus.config.logging import get_logger
from amqp_plus.config.settings import AmqpPlusSettings, get_amqp_plus_settings
from amqp_plus.exceptions import (
    ArityError,
    MessageConsumeError,
    MessagePublishError,
    UnknownQueueError,
)
from amqp_plus.messaging.codec import encode
from amqp_plus.messaging.delivery import Consumer, wrap_consumer
from amqp_plus.messaging.events import EventRegistry, Listener
from amqp_plus.messaging.transport import ConnectionManager, SetupChannel
from amqp_plus.topology.installer import install
from amqp_plus.topology.models import TopologyModel
from amqp_plus.topology.validator import validate

logger = get_logger(__name__)

CONSUME_OPTIONS = ("no_ack", "exclusive", "arguments", "consumer_tag")


class AmqpPlus:
    """Broker client that owns a validated topology and one shared channel."""

    def __init__(
        self,
        config: Mapping[str, Any],
        settings: AmqpPlusSettings | None = None,
    ):
        """
        Validate the topology and prepare the connection.

        No network I/O happens here; call ``connect`` or use the client as an
        async context manager.

        Args:
            config: Topology description with ``urls``, ``exchanges``, ``queues``
                and ``bindings``; ``urls`` falls back to the settings when absent
            settings: Connection settings

        Raises:
            ConfigError: If the topology description is invalid
        """
        self.settings = settings or get_amqp_plus_settings()
        if "urls" not in config:
            config = {**config, "urls": self.settings.get_urls()}

        self.topology: TopologyModel = validate(config)
        self.events = EventRegistry()
        self._connection = ConnectionManager(
            self.topology.urls,
            events_registry=self.events,
            heartbeat=self.settings.heartbeat,
            reconnect_interval=self.settings.reconnect_interval,
        )
        self._channel: SetupChannel = self._connection.create_channel(
            setup=self._setup_topology,
            publisher_confirms=self.settings.publisher_confirms,
            prefetch_count=self.settings.prefetch_count,
        )

    async def _setup_topology(self, channel: AbstractChannel) -> None:
        await install(channel, self.topology)

    def on(self, event: str, listener: Listener) -> Listener:
        """Register a lifecycle listener (see ``amqp_plus.messaging.events``)."""
        return self.events.on(event, listener)

    def off(self, event: str, listener: Listener) -> None:
        """Remove a lifecycle listener."""
        self.events.off(event, listener)

    async def connect(self) -> None:
        """
        Connect to the broker, open the shared channel and install the topology.

        Raises:
            MessagingError: If no broker URL is reachable
            SetupError: If the topology cannot be declared
        """
        await self._connection.connect()
        if not self._channel.is_open():
            await self._channel.open()

    async def wait_for_connect(self) -> None:
        """Wait until the channel is open and the topology is installed."""
        await self._channel.wait_for_connect()

    async def publish(
        self,
        exchange: str,
        routing_key: str,
        content: Any,
        **options: Any,
    ) -> Any:
        """
        Publish one message.

        Before ``connect`` and while the broker connection is being restored
        the publish waits for the channel rather than failing.

        Args:
            exchange: Exchange name ("" for the default exchange)
            routing_key: Routing key
            content: str, mapping, list/tuple, bytes or a tagged content value
            **options: Message properties passed to ``aio_pika.Message``
                (``headers``, ``priority``, ``correlation_id``, ...);
                ``persistent`` defaults to True, ``mandatory`` to False

        Returns:
            Publisher confirmation from the broker

        Raises:
            ContentEncodeError: If the content has no known encoding
            MessagePublishError: If the transport fails to publish
        """
        options = dict(options)
        persistent = options.pop("persistent", True)
        mandatory = options.pop("mandatory", False)
        caller_content_type = options.pop("content_type", None)

        body, content_type = encode(content)

        message = Message(
            body=body,
            content_type=content_type or caller_content_type,
            delivery_mode=DeliveryMode.PERSISTENT if persistent else DeliveryMode.NOT_PERSISTENT,
            **options,
        )

        try:
            result = await self._channel.publish(
                exchange, routing_key, message, mandatory=mandatory
            )
        except Exception as e:
            logger.error(
                "message_publish_failed",
                exchange=exchange,
                routing_key=routing_key,
                error=str(e),
            )
            raise MessagePublishError(
                exchange=exchange,
                routing_key=routing_key,
                message=f"Failed to publish message: {e}",
            ) from e

        logger.debug(
            "message_published",
            exchange=exchange,
            routing_key=routing_key,
            content_type=message.content_type,
        )
        return result

    async def send_to_queue(self, queue: str, content: Any, **options: Any) -> Any:
        """Publish one message to a queue through the default exchange."""
        return await self.publish("", queue, content, **options)

    def bulk_publish(
        self,
        exchange: str,
        routing_keys: str | Sequence[str],
        contents: Sequence[Any],
        **options: Any,
    ) -> Awaitable[list[Any]]:
        """
        Publish several messages concurrently.

        Arguments are checked before anything is published. A single routing
        key is used for every message; a sequence of keys is paired
        positionally with ``contents``.

        Args:
            exchange: Exchange name ("" for the default exchange)
            routing_keys: One routing key, or one per content
            contents: Message contents
            **options: Message options applied to every message

        Returns:
            Awaitable resolving to the publisher confirmations, in order

        Raises:
            ArityError: If contents is not a sequence, or routing keys and
                contents differ in length
        """
        if isinstance(contents, str | bytes) or not isinstance(contents, Sequence):
            raise ArityError("Contents must be a sequence")

        if isinstance(routing_keys, str):
            keys = [routing_keys] * len(contents)
        else:
            keys = list(routing_keys)
            if len(keys) != len(contents):
                raise ArityError(
                    "Routing keys and contents must have the same length",
                    expected=len(contents),
                    actual=len(keys),
                )

        return self._publish_all(exchange, keys, contents, options)

    async def _publish_all(
        self,
        exchange: str,
        routing_keys: list[str],
        contents: Sequence[Any],
        options: dict[str, Any],
    ) -> list[Any]:
        results = await asyncio.gather(
            *(
                self.publish(exchange, routing_key, content, **options)
                for routing_key, content in zip(routing_keys, contents, strict=True)
            )
        )
        logger.info("batch_published", exchange=exchange, count=len(results))
        return list(results)

    def bulk_send_to_queue(
        self,
        queues: str | Sequence[str],
        contents: Sequence[Any],
        **options: Any,
    ) -> Awaitable[list[Any]]:
        """Publish several messages to queues through the default exchange."""
        return self.bulk_publish("", queues, contents, **options)

    def subscribe(
        self,
        queue_name: str,
        consumer: Consumer,
        **options: Any,
    ) -> Awaitable[None]:
        """
        Consume a configured queue.

        Consumption is registered as a channel setup step, so it is resumed
        after every reconnect. Each delivery reaches ``consumer`` as a
        ``DeliveredMessage`` that must be acked, nacked or rejected exactly once.

        Args:
            queue_name: Queue declared in the topology
            consumer: Sync or async callable receiving a DeliveredMessage
            **options: ``no_ack``, ``exclusive``, ``arguments``, ``consumer_tag``
                and ``prefetch_count``

        Returns:
            Awaitable resolving once consumption is set up. Awaiting it is
            optional; on a ready channel consumption is already scheduled,
            otherwise it starts right after the topology on the next connect.

        Raises:
            UnknownQueueError: If the queue is not part of the topology
            MessageConsumeError: From the awaitable, if the broker refuses
                the consumer
        """
        if not self.topology.has_queue(queue_name):
            raise UnknownQueueError(
                queue_name, f'Queue "{queue_name}" must be configured before subscribing'
            )

        prefetch_count = options.pop("prefetch_count", None)
        unknown = set(options) - set(CONSUME_OPTIONS)
        if unknown:
            raise TypeError(f"Unexpected consume options: {', '.join(sorted(unknown))}")

        callback = wrap_consumer(consumer, queue_name)

        async def start_consuming(channel: AbstractChannel) -> None:
            if prefetch_count is not None:
                await channel.set_qos(prefetch_count=prefetch_count)
            try:
                queue = await channel.get_queue(queue_name, ensure=False)
                consumer_tag = await queue.consume(callback, robust=False, **options)
            except Exception as e:
                logger.error("consumer_start_failed", queue=queue_name, error=str(e))
                raise MessageConsumeError(
                    queue=queue_name, message=f"Failed to start consuming: {e}"
                ) from e
            logger.info("consumer_started", queue=queue_name, consumer_tag=consumer_tag)

        return self._channel.add_setup(start_consuming)

    async def health_check(self) -> bool:
        """
        Check if the connection and channel are open.

        Returns:
            True if healthy, False otherwise
        """
        return self._connection.is_connected() and self._channel.is_open()

    async def close(self) -> None:
        """Close the channel, then the connection."""
        await self._channel.close()
        await self._connection.close()

    async def __aenter__(self) -> "AmqpPlus":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
