"""
Broker messaging: transport, codec, deliveries and lifecycle events.
"""

from amqp_plus.messaging.codec import BinaryContent, StructuredContent, TextContent, decode, encode
from amqp_plus.messaging.delivery import DeliveredMessage
from amqp_plus.messaging.events import EventRegistry
from amqp_plus.messaging.transport import ConnectionManager, SetupChannel

__all__ = [
    "ConnectionManager",
    "SetupChannel",
    "EventRegistry",
    "DeliveredMessage",
    "TextContent",
    "StructuredContent",
    "BinaryContent",
    "encode",
    "decode",
]
