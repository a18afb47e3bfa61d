"""
Topology installer.

Declares exchanges and queues and binds them on a freshly (re)opened
channel. The transport runs it as a setup callback after every reconnect,
so every operation here must be idempotent.
"""

import asyncio
from typing import Any

from aio_pika.abc import AbstractChannel, AbstractExchange, AbstractQueue

from amqp_plus.config.logging import get_logger
from amqp_plus.exceptions import MissingFieldError
from amqp_plus.topology.models import BindingSpec, ExchangeSpec, QueueSpec, TopologyModel

logger = get_logger(__name__)


def check_declarable(model: TopologyModel) -> None:
    """
    Check that every exchange and queue can be declared.

    Args:
        model: Validated topology

    Raises:
        MissingFieldError: If an exchange lacks a name or type, or a queue lacks a name
    """
    for exchange in model.declared_exchanges:
        if not exchange.name or not exchange.type:
            raise MissingFieldError("exchange", "name and type", "Exchange must have name and type")

    for queue in model.declared_queues:
        if not queue.name:
            raise MissingFieldError("queue", "name")


async def declare_exchange(channel: AbstractChannel, spec: ExchangeSpec) -> AbstractExchange:
    """Declare one exchange, without aio_pika's own restore bookkeeping."""
    return await channel.declare_exchange(
        spec.name,
        spec.type,
        durable=spec.durable,
        auto_delete=spec.auto_delete,
        robust=False,
    )


async def declare_queue(channel: AbstractChannel, spec: QueueSpec) -> AbstractQueue:
    """Declare one queue, without aio_pika's own restore bookkeeping."""
    return await channel.declare_queue(
        spec.name,
        durable=spec.durable,
        auto_delete=spec.auto_delete,
        exclusive=spec.exclusive,
        robust=False,
    )


def _bind_operations(
    queues: dict[str, AbstractQueue],
    bindings: tuple[BindingSpec, ...],
) -> list[Any]:
    operations = []
    for binding in bindings:
        queue = queues[binding.queue]
        for routing_key in binding.routing_keys():
            operations.append(queue.bind(binding.exchange, routing_key=routing_key, robust=False))
    return operations


async def install(channel: AbstractChannel, model: TopologyModel) -> None:
    """
    Declare the whole topology on a channel.

    Exchanges and queues are declared concurrently; once all of them are in
    place every binding key is bound concurrently. The first failure aborts
    the installation and propagates to the caller.

    Args:
        channel: Open broker channel
        model: Validated topology

    Raises:
        MissingFieldError: If an exchange or queue cannot be declared
        Exception: Any broker error raised by a declaration or bind
    """
    check_declarable(model)

    exchange_ops = [declare_exchange(channel, spec) for spec in model.declared_exchanges]
    queue_ops = [declare_queue(channel, spec) for spec in model.declared_queues]
    declared = await asyncio.gather(*exchange_ops, *queue_ops)

    declared_queues = declared[len(exchange_ops) :]
    queues = {
        spec.name: queue for spec, queue in zip(model.declared_queues, declared_queues, strict=True)
    }

    bind_ops = _bind_operations(queues, model.bindings)
    await asyncio.gather(*bind_ops)

    logger.info(
        "topology_installed",
        exchanges=len(exchange_ops),
        queues=len(queue_ops),
        bindings=len(bind_ops),
    )
