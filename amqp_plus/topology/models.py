"""
Exchange, queue and binding definitions.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from amqp_plus.exceptions import ConfigError

FANOUT = "fanout"


def _flag(raw: Mapping[str, Any], snake: str, camel: str, default: bool) -> bool:
    if snake in raw:
        return bool(raw[snake])
    if camel in raw:
        return bool(raw[camel])
    return default


@dataclass(frozen=True)
class ExchangeSpec:
    """Exchange configuration."""

    name: str | None
    type: str | None
    durable: bool = True
    auto_delete: bool = False

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "ExchangeSpec":
        return cls(
            name=raw.get("name"),
            type=raw.get("type"),
            durable=_flag(raw, "durable", "durable", True),
            auto_delete=_flag(raw, "auto_delete", "autoDelete", False),
        )

    @property
    def is_fanout(self) -> bool:
        return self.type == FANOUT


@dataclass(frozen=True)
class QueueSpec:
    """Queue configuration."""

    name: str | None
    durable: bool = True
    auto_delete: bool = False
    exclusive: bool = False

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "QueueSpec":
        return cls(
            name=raw.get("name"),
            durable=_flag(raw, "durable", "durable", True),
            auto_delete=_flag(raw, "auto_delete", "autoDelete", False),
            exclusive=_flag(raw, "exclusive", "exclusive", False),
        )


@dataclass(frozen=True)
class BindingSpec:
    """
    Routing rule linking an exchange to a queue.

    ``keys`` is None when the binding was declared without keys, which is
    only valid for fanout exchanges.
    """

    exchange: str | None
    queue: str | None
    keys: tuple[str, ...] | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "BindingSpec":
        keys = raw.get("keys")
        if isinstance(keys, str):
            keys = (keys,)
        elif keys is not None:
            if isinstance(keys, Sequence) and not isinstance(keys, bytes | bytearray):
                keys = tuple(keys)
            if not isinstance(keys, tuple) or not all(isinstance(key, str) for key in keys):
                raise ConfigError("Binding keys must be a string or a sequence of strings", key="keys")
        return cls(exchange=raw.get("exchange"), queue=raw.get("queue"), keys=keys)

    def routing_keys(self) -> tuple[str, ...]:
        """
        Expand the binding into one routing key per bind operation.

        Returns:
            Declared keys, or a single empty key for keyless bindings
        """
        if self.keys is None:
            return ("",)
        return self.keys


@dataclass(frozen=True)
class TopologyModel:
    """Validated topology, indexed by name."""

    urls: tuple[str, ...]
    exchanges: dict[str | None, ExchangeSpec] = field(default_factory=dict)
    queues: dict[str | None, QueueSpec] = field(default_factory=dict)
    bindings: tuple[BindingSpec, ...] = ()
    # Declaration order, duplicates included; this is what gets declared.
    declared_exchanges: tuple[ExchangeSpec, ...] = ()
    declared_queues: tuple[QueueSpec, ...] = ()

    def has_queue(self, name: str) -> bool:
        return name in self.queues
