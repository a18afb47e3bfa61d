"""
Static validation of a topology description.

Runs once, before any broker I/O, so that a bad description never leaves
half-declared state on the broker.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from amqp_plus.config.logging import get_logger
from amqp_plus.exceptions import ConfigError, UnknownExchangeError, UnknownQueueError
from amqp_plus.topology.models import BindingSpec, ExchangeSpec, QueueSpec, TopologyModel

logger = get_logger(__name__)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, str | bytes | bytearray)


def _normalize_urls(urls: Any) -> tuple[str, ...]:
    if not urls:
        raise ConfigError("At least one url is needed", key="urls")
    if isinstance(urls, str):
        return (urls,)
    if not _is_sequence(urls):
        raise ConfigError("Urls must be a string or a sequence of strings", key="urls")
    return tuple(urls)


def _coerce(item: Any, spec_type: type, section: str) -> Any:
    if isinstance(item, spec_type):
        return item
    if not isinstance(item, Mapping):
        raise ConfigError(f"Every entry of {section} must be a mapping", key=section)
    return spec_type.from_mapping(item)


def validate(config: Mapping[str, Any]) -> TopologyModel:
    """
    Validate a topology description and index it by name.

    Duplicate exchange or queue names are not an error: the last declaration
    wins in the name index.

    Args:
        config: Mapping with ``urls``, ``exchanges``, ``queues`` and ``bindings``

    Returns:
        Validated topology model

    Raises:
        ConfigError: If urls are missing or a section is not a sequence
        UnknownExchangeError: If a binding references an undeclared exchange
        UnknownQueueError: If a binding references an undeclared queue
    """
    urls = _normalize_urls(config.get("urls"))

    raw_exchanges = config.get("exchanges", [])
    raw_queues = config.get("queues", [])
    raw_bindings = config.get("bindings", [])
    if not all(_is_sequence(section) for section in (raw_exchanges, raw_queues, raw_bindings)):
        raise ConfigError("Exchanges, queues or bindings must be a sequence")

    declared_exchanges = tuple(_coerce(item, ExchangeSpec, "exchanges") for item in raw_exchanges)
    declared_queues = tuple(_coerce(item, QueueSpec, "queues") for item in raw_queues)
    exchanges = {exchange.name: exchange for exchange in declared_exchanges}
    queues = {queue.name: queue for queue in declared_queues}

    bindings = []
    for item in raw_bindings:
        binding: BindingSpec = _coerce(item, BindingSpec, "bindings")

        if not binding.exchange or not binding.queue:
            raise ConfigError("Binding must have an exchange and a queue", key="bindings")

        exchange = exchanges.get(binding.exchange)
        if exchange is None:
            raise UnknownExchangeError(binding.exchange)

        if binding.queue not in queues:
            raise UnknownQueueError(binding.queue)

        if binding.keys is not None and len(binding.keys) == 0:
            raise ConfigError("Binding keys can not be an empty sequence", key="keys")

        if not exchange.is_fanout and binding.keys is None:
            raise ConfigError(
                f'Binding of queue "{binding.queue}" to exchange "{binding.exchange}" must have keys',
                key="keys",
                details={"exchange": binding.exchange, "queue": binding.queue},
            )

        bindings.append(binding)

    logger.debug(
        "topology_validated",
        exchanges=len(exchanges),
        queues=len(queues),
        bindings=len(bindings),
    )

    return TopologyModel(
        urls=urls,
        exchanges=exchanges,
        queues=queues,
        bindings=tuple(bindings),
        declared_exchanges=declared_exchanges,
        declared_queues=declared_queues,
    )
