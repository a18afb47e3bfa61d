"""
Topology declaration script.

This script validates a topology description and declares its exchanges,
queues and bindings on the broker once, then exits.

Usage:
    python scripts/declare_topology.py --config topology.json [--url URL ...] [--recreate]

Options:
    --config PATH    JSON file with exchanges, queues, bindings and optionally urls
    --url URL        Broker URL; repeat to try several (overrides the file)
    --recreate       Delete declared queues and exchanges before declaring them
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from aio_pika.abc import AbstractConnection

from amqp_plus.config import get_amqp_plus_settings, get_logger, setup_logging
from amqp_plus.messaging.transport import ConnectionManager
from amqp_plus.topology import TopologyModel, install, validate

logger = get_logger(__name__)


def load_config(path: Path, urls: list[str] | None = None) -> dict[str, Any]:
    """
    Load a topology description from a JSON file.

    Args:
        path: JSON file path
        urls: Broker URLs overriding the ones in the file

    Returns:
        Topology description
    """
    config = json.loads(path.read_text(encoding="utf-8"))
    if urls:
        config["urls"] = urls
    elif not config.get("urls"):
        config["urls"] = get_amqp_plus_settings().get_urls()
    return config


async def delete_topology(connection: AbstractConnection, model: TopologyModel) -> None:
    """
    Delete every declared queue and exchange.

    Missing entities are ignored. A failed delete closes its channel on the
    broker side, so the next delete runs on a new one.

    Args:
        connection: Broker connection
        model: Validated topology
    """
    targets = [("queue", queue.name) for queue in model.declared_queues]
    targets += [("exchange", exchange.name) for exchange in model.declared_exchanges]

    channel = await connection.channel()
    try:
        for kind, name in targets:
            logger.info(f"{kind}_deleting", name=name)
            try:
                if kind == "queue":
                    await channel.queue_delete(name)
                else:
                    await channel.exchange_delete(name)
            except Exception as e:
                logger.warning(f"{kind}_delete_failed", name=name, error=str(e))
                if channel.is_closed:
                    channel = await connection.channel()
    finally:
        if not channel.is_closed:
            await channel.close()


async def declare_topology(model: TopologyModel, recreate: bool = False) -> None:
    """
    Connect, declare the topology once and disconnect.

    Args:
        model: Validated topology
        recreate: If True, delete existing queues/exchanges first
    """
    manager = ConnectionManager(model.urls)
    await manager.connect()
    try:
        connection = manager.get_connection()
        if recreate:
            await delete_topology(connection, model)

        channel = await connection.channel()
        try:
            await install(channel, model)
        finally:
            await channel.close()
    finally:
        await manager.close()


async def main_async(config_path: Path, urls: list[str] | None, recreate: bool) -> int:
    """
    Async main entry point.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    try:
        model = validate(load_config(config_path, urls))
        await declare_topology(model, recreate=recreate)
        logger.info(
            "topology_declared",
            exchanges=len(model.exchanges),
            queues=len(model.queues),
            bindings=len(model.bindings),
        )
        return 0

    except Exception as e:
        logger.error("topology_declaration_failed", error=str(e))
        return 1


def main() -> int:
    """
    Main entry point for the script.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Declare a broker topology from a JSON file")
    parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="JSON topology description",
    )
    parser.add_argument(
        "--url",
        action="append",
        dest="urls",
        help="Broker URL (repeatable; default: from AMQP_PLUS_URLS or the config file)",
    )
    parser.add_argument(
        "--recreate",
        action="store_true",
        help="Delete and recreate declared exchanges and queues",
    )

    args = parser.parse_args()

    settings = get_amqp_plus_settings()
    setup_logging(
        log_level=settings.log_level,
        json_logs=settings.json_logs,
        service_name=settings.service_name,
    )

    return asyncio.run(main_async(args.config, args.urls, args.recreate))


if __name__ == "__main__":
    sys.exit(main())
