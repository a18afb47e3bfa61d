"""
Configuration management.
"""

from amqp_plus.config.logging import get_logger, setup_logging
from amqp_plus.config.settings import AmqpPlusSettings, get_amqp_plus_settings

__all__ = ["AmqpPlusSettings", "get_amqp_plus_settings", "get_logger", "setup_logging"]
