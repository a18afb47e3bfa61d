"""
Declarative broker topology: model, validation and installation.
"""

from amqp_plus.topology.installer import install
from amqp_plus.topology.models import BindingSpec, ExchangeSpec, QueueSpec, TopologyModel
from amqp_plus.topology.validator import validate

__all__ = ["ExchangeSpec", "QueueSpec", "BindingSpec", "TopologyModel", "validate", "install"]
