"""
Unit tests for the exception hierarchy.
"""

import pytest

from amqp_plus.exceptions import (
    AmqpPlusError,
    ArityError,
    ConfigError,
    ContentDecodeError,
    MissingFieldError,
    OperationError,
    SetupError,
    UnknownExchangeError,
    UnknownQueueError,
)


class TestExceptionHierarchy:
    """Tests for error categories."""

    @pytest.mark.parametrize(
        "error, category",
        [
            (UnknownExchangeError("orders"), ConfigError),
            (UnknownQueueError("jobs"), ConfigError),
            (UnknownQueueError("jobs"), OperationError),
            (MissingFieldError("queue", "name"), SetupError),
            (ArityError("Not enough routing keys"), OperationError),
            (ContentDecodeError("application/json"), OperationError),
        ],
    )
    def test_categories(self, error, category):
        """Test that each error belongs to its category."""
        assert isinstance(error, category)
        assert isinstance(error, AmqpPlusError)

    def test_config_error_details(self):
        """Test configuration error code and key."""
        error = ConfigError("At least one url is needed", key="urls")

        assert error.error_code == "CONFIGURATION_ERROR"
        assert error.details == {"key": "urls"}
        assert str(error) == "At least one url is needed"

    def test_unknown_queue_details(self):
        """Test unknown queue error code, message and details."""
        error = UnknownQueueError("jobs")

        assert error.error_code == "UNKNOWN_QUEUE"
        assert error.details == {"key": "queue", "queue": "jobs"}
        assert 'Queue "jobs" must be configured' in error.message

    def test_missing_field_message(self):
        """Test missing field default message."""
        error = MissingFieldError("queue", "name")

        assert error.message == "Queue must have a name"
