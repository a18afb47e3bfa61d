"""
Custom exceptions for amqp-plus.
"""

from typing import Any


class AmqpPlusError(Exception):
    """Base exception for all amqp-plus errors."""

    def __init__(self, message: str, error_code: str | None = None, details: dict | None = None):
        """
        Initialize exception.

        Args:
            message: Error message
            error_code: Optional error code
            details: Optional error details
        """
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)


# Configuration Errors


class ConfigError(AmqpPlusError):
    """Invalid topology configuration, raised before any broker I/O."""

    def __init__(
        self,
        message: str,
        key: str | None = None,
        error_code: str = "CONFIGURATION_ERROR",
        details: dict | None = None,
    ):
        """
        Initialize exception.

        Args:
            message: Error message
            key: Configuration key
            error_code: Error code
            details: Extra error details
        """
        merged = {"key": key} if key else {}
        merged.update(details or {})
        super().__init__(message, error_code=error_code, details=merged)


# Operation Errors


class OperationError(AmqpPlusError):
    """Errors raised by an individual publish or subscribe call."""

    pass


class UnknownExchangeError(ConfigError):
    """Binding references an exchange that was not configured."""

    def __init__(self, exchange: str, message: str | None = None):
        """
        Initialize exception.

        Args:
            exchange: Exchange name
            message: Error message
        """
        super().__init__(
            message or f'Exchange "{exchange}" must be configured before binding',
            key="exchange",
            error_code="UNKNOWN_EXCHANGE",
            details={"exchange": exchange},
        )


class UnknownQueueError(ConfigError, OperationError):
    """Binding or subscription references a queue that was not configured."""

    def __init__(self, queue: str, message: str | None = None):
        """
        Initialize exception.

        Args:
            queue: Queue name
            message: Error message
        """
        super().__init__(
            message or f'Queue "{queue}" must be configured before binding',
            key="queue",
            error_code="UNKNOWN_QUEUE",
            details={"queue": queue},
        )


class ArityError(OperationError):
    """Routing keys and contents of a bulk publish do not line up."""

    def __init__(self, message: str, expected: int | None = None, actual: int | None = None):
        details = {}
        if expected is not None:
            details["expected"] = expected
        if actual is not None:
            details["actual"] = actual
        super().__init__(message, error_code="ARITY_ERROR", details=details)


class ContentEncodeError(OperationError):
    """Value cannot be turned into a message body."""

    def __init__(self, value: Any):
        super().__init__(
            f"Cannot encode content of type {type(value).__name__}",
            error_code="CONTENT_ENCODE_ERROR",
            details={"type": type(value).__name__},
        )


class ContentDecodeError(OperationError):
    """Message body does not match its declared content type."""

    def __init__(self, content_type: str, message: str = "Failed to decode message content"):
        """
        Initialize exception.

        Args:
            content_type: Declared content type of the message
            message: Error message
        """
        super().__init__(
            message,
            error_code="CONTENT_DECODE_ERROR",
            details={"content_type": content_type},
        )


# Setup Errors


class SetupError(AmqpPlusError):
    """Topology could not be established on a (re)opened channel."""

    pass


class MissingFieldError(SetupError):
    """Exchange or queue lacks a field required for declaration."""

    def __init__(self, entity: str, field: str, message: str | None = None):
        """
        Initialize exception.

        Args:
            entity: Entity type ("exchange" or "queue")
            field: Missing field name
            message: Error message
        """
        super().__init__(
            message or f"{entity.capitalize()} must have a {field}",
            error_code="MISSING_FIELD",
            details={"entity": entity, "field": field},
        )


# Messaging Errors


class MessagingError(AmqpPlusError):
    """Transport-related errors."""

    pass


class MessagePublishError(MessagingError):
    """Message publishing errors."""

    def __init__(self, exchange: str, routing_key: str, message: str = "Failed to publish message"):
        """
        Initialize exception.

        Args:
            exchange: Exchange name ("" for the default exchange)
            routing_key: Routing key
            message: Error message
        """
        super().__init__(
            message,
            error_code="MESSAGE_PUBLISH_ERROR",
            details={"exchange": exchange, "routing_key": routing_key},
        )


class MessageConsumeError(MessagingError):
    """Message consumption errors."""

    def __init__(self, queue: str, message: str = "Failed to consume message"):
        """
        Initialize exception.

        Args:
            queue: Queue name
            message: Error message
        """
        super().__init__(message, error_code="MESSAGE_CONSUME_ERROR", details={"queue": queue})
