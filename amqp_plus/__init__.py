"""
Declarative RabbitMQ topology with simplified publish/subscribe.
"""

from amqp_plus.client import AmqpPlus
from amqp_plus.exceptions import (
    AmqpPlusError,
    ArityError,
    ConfigError,
    ContentDecodeError,
    ContentEncodeError,
    MessagingError,
    MissingFieldError,
    OperationError,
    SetupError,
    UnknownExchangeError,
    UnknownQueueError,
)
from amqp_plus.messaging import BinaryContent, DeliveredMessage, StructuredContent, TextContent

__all__ = [
    "AmqpPlus",
    "DeliveredMessage",
    "TextContent",
    "StructuredContent",
    "BinaryContent",
    "AmqpPlusError",
    "ConfigError",
    "UnknownExchangeError",
    "UnknownQueueError",
    "SetupError",
    "MissingFieldError",
    "OperationError",
    "ArityError",
    "ContentEncodeError",
    "ContentDecodeError",
    "MessagingError",
]
