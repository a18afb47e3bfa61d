"""
Broker transport built on aio_pika robust connections.

aio_pika reconnects on its own; this module adds the setup-callback contract
on top of it: every setup registered on a ``SetupChannel`` runs when the
channel is first opened and again whenever aio_pika restores the channel,
after a reconnect or a channel-level error.
"""

import asyncio
from collections.abc import Awaitable, Callable, Generator, Sequence
from typing import Any

import aio_pika
from aio_pika import Message
from aio_pika.abc import AbstractChannel, AbstractRobustConnection

from amqp_plus.config.logging import get_logger
from amqp_plus.exceptions import MessagingError
from amqp_plus.messaging import events
from amqp_plus.messaging.events import EventRegistry

logger = get_logger(__name__)

SetupFn = Callable[[AbstractChannel], Awaitable[Any]]


class _ReadyWaiter:
    """Awaitable that resolves once the channel is ready.

    Nothing is scheduled until it is awaited, so leaving it unawaited is safe.
    """

    def __init__(self, ready: asyncio.Event):
        self._ready = ready

    def __await__(self) -> Generator[Any, None, bool]:
        return self._ready.wait().__await__()


class SetupChannel:
    """Shared channel that re-runs its setup callbacks on every (re)open."""

    def __init__(
        self,
        manager: "ConnectionManager",
        setup: SetupFn | None = None,
        name: str = "amqp-plus",
        publisher_confirms: bool = True,
        prefetch_count: int = 0,
    ):
        """
        Initialize channel wrapper.

        Args:
            manager: Connection manager owning the channel
            setup: Initial setup callback
            name: Channel name reported with ``channel:error`` events
            publisher_confirms: Whether the channel runs in confirm mode
            prefetch_count: Consumer prefetch count (0 = unlimited)
        """
        self.manager = manager
        self.name = name
        self.publisher_confirms = publisher_confirms
        self.prefetch_count = prefetch_count
        self._setups: list[SetupFn] = [setup] if setup else []
        self._channel: AbstractChannel | None = None
        self._ready = asyncio.Event()
        self._closing = False

    @property
    def events(self) -> EventRegistry:
        return self.manager.events

    def get_channel(self) -> AbstractChannel:
        """
        Get the underlying aio_pika channel.

        Raises:
            MessagingError: If the channel is not open
        """
        if not self._channel or self._channel.is_closed:
            raise MessagingError("Channel is not open")
        return self._channel

    def is_open(self) -> bool:
        return self._channel is not None and not self._channel.is_closed

    async def open(self) -> None:
        """
        Open the channel and run every setup callback on it.

        Raises:
            Exception: The first error raised by a setup callback
        """
        self._closing = False
        connection = self.manager.get_connection()
        self._channel = await connection.channel(publisher_confirms=self.publisher_confirms)
        self._channel.close_callbacks.add(self._on_close)  # type: ignore[arg-type]
        self._channel.reopen_callbacks.add(self._on_reopen)  # type: ignore[attr-defined]

        if self.prefetch_count:
            await self._channel.set_qos(prefetch_count=self.prefetch_count)

        await self._run_setups()

    async def _on_reopen(self, sender: Any) -> None:
        await self.reopen()

    async def reopen(self) -> None:
        """Re-run setup callbacks after aio_pika restored the channel."""
        self._ready.clear()
        try:
            await self._run_setups()
        except Exception as e:
            self._report_setup_failure(e)

    async def _run_setups(self) -> None:
        channel = self.get_channel()
        # Registration order: topology declarations come before any consumer.
        # Setups added while this loop runs are picked up by it.
        for setup in self._setups:
            await setup(channel)
        self._ready.set()
        logger.info("channel_connected", channel=self.name, setups=len(self._setups))
        self.events.emit(events.CHANNEL_CONNECT)

    def _report_setup_failure(self, error: BaseException) -> None:
        logger.error("channel_setup_failed", channel=self.name, error=str(error))
        self.events.emit(events.CHANNEL_ERROR, error=error, name=self.name)

    def add_setup(self, setup: SetupFn) -> Awaitable[Any]:
        """
        Register a setup callback.

        On a ready channel the callback is scheduled right away; otherwise it
        runs with the next ``open`` or reconnect. Either way it runs again
        after every later reconnect.

        Args:
            setup: Async callable receiving the channel

        Returns:
            Awaitable resolving once the callback has run on a ready channel
        """
        self._setups.append(setup)
        if not self._ready.is_set():
            return _ReadyWaiter(self._ready)

        task = asyncio.ensure_future(setup(self.get_channel()))
        task.add_done_callback(self._on_setup_done)
        return task

    def _on_setup_done(self, task: "asyncio.Future[Any]") -> None:
        if not task.cancelled() and task.exception() is not None:
            self._report_setup_failure(task.exception())  # type: ignore[arg-type]

    async def wait_for_connect(self) -> None:
        """Wait until the channel is open and all setups have completed."""
        await self._ready.wait()

    async def publish(
        self,
        exchange: str,
        routing_key: str,
        message: Message,
        mandatory: bool = False,
    ) -> Any:
        """
        Publish a message.

        While the channel is not ready (before ``open`` or during a
        reconnect) the publish waits for it instead of failing.

        Args:
            exchange: Exchange name ("" for the default exchange)
            routing_key: Routing key
            message: aio_pika message
            mandatory: Whether unroutable messages are returned by the broker

        Returns:
            Publisher confirmation from the broker, if confirms are enabled

        Raises:
            MessagingError: If the channel was closed with ``close``
        """
        if self._closing:
            raise MessagingError("Channel is closed")
        await self._ready.wait()

        channel = self.get_channel()
        if exchange == "":
            target = channel.default_exchange
        else:
            target = await channel.get_exchange(exchange, ensure=False)
        return await target.publish(message, routing_key=routing_key, mandatory=mandatory)

    def _on_close(self, sender: Any, exception: BaseException | None) -> None:
        self._ready.clear()
        if exception is not None and not self._closing:
            logger.warning("channel_error", channel=self.name, error=str(exception))
            self.events.emit(events.CHANNEL_ERROR, error=exception, name=self.name)
        self.events.emit(events.CHANNEL_CLOSE)

    async def close(self) -> None:
        """Close the channel."""
        self._closing = True
        if self._channel and not self._channel.is_closed:
            await self._channel.close()
        self._ready.clear()


class ConnectionManager:
    """Robust broker connection over an ordered list of URLs."""

    def __init__(
        self,
        urls: Sequence[str],
        events_registry: EventRegistry | None = None,
        heartbeat: int = 60,
        reconnect_interval: float = 5.0,
    ):
        """
        Initialize connection manager.

        Args:
            urls: Broker URLs, tried in order on the initial connect
            events_registry: Registry receiving lifecycle events
            heartbeat: Heartbeat interval in seconds
            reconnect_interval: Delay between reconnection attempts in seconds
        """
        self.urls = list(urls)
        self.events = events_registry or EventRegistry()
        self.heartbeat = heartbeat
        self.reconnect_interval = reconnect_interval
        self.url: str | None = None
        self._connection: AbstractRobustConnection | None = None

    def get_connection(self) -> AbstractRobustConnection:
        """
        Get the underlying aio_pika connection.

        Raises:
            MessagingError: If not connected
        """
        if not self._connection:
            raise MessagingError("Not connected to the broker")
        return self._connection

    def is_connected(self) -> bool:
        return self._connection is not None and not self._connection.is_closed

    async def connect(self) -> None:
        """
        Connect to the first reachable URL.

        Raises:
            MessagingError: If no URL accepts the connection
        """
        if self.is_connected():
            return

        last_error: Exception | None = None
        for url in self.urls:
            try:
                logger.info("broker_connecting", url=url)
                self._connection = await aio_pika.connect_robust(
                    url,
                    heartbeat=self.heartbeat,
                    reconnect_interval=self.reconnect_interval,
                )
            except Exception as e:
                logger.warning("broker_connection_failed", url=url, error=str(e))
                last_error = e
                continue

            self.url = url
            self._connection.reconnect_callbacks.add(self._on_reconnect)  # type: ignore[arg-type]
            self._connection.close_callbacks.add(self._on_close)  # type: ignore[arg-type]
            logger.info("broker_connected", url=url)
            self.events.emit(events.CONNECT, connection=self._connection, url=url)
            return

        raise MessagingError(f"Failed to connect to the broker: {last_error}") from last_error

    def create_channel(
        self,
        setup: SetupFn | None = None,
        name: str = "amqp-plus",
        publisher_confirms: bool = True,
        prefetch_count: int = 0,
    ) -> SetupChannel:
        """
        Create a channel whose setups are re-run on every reconnect.

        The channel is opened by ``SetupChannel.open``; afterwards aio_pika
        restores it, and its setups re-run, after connection or channel loss.
        """
        channel = SetupChannel(
            self,
            setup=setup,
            name=name,
            publisher_confirms=publisher_confirms,
            prefetch_count=prefetch_count,
        )
        return channel

    async def _on_reconnect(self, connection: AbstractRobustConnection) -> None:
        logger.info("broker_reconnected", url=self.url)
        self.events.emit(events.CONNECT, connection=connection, url=self.url)

    def _on_close(self, sender: Any, exception: BaseException | None) -> None:
        logger.warning("broker_disconnected", url=self.url, error=str(exception))
        self.events.emit(events.DISCONNECT, error=exception)

    async def close(self) -> None:
        """Close the connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            logger.info("broker_connection_closed", url=self.url)
