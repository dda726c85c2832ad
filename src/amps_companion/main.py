#!/usr/bin/env python3
"""Main entry point for the AMPS companion command line."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import logging.config
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from amps_companion.domain.shared.constants import ClientDefaults
from amps_companion.domain.shared.enums import PlaybackAction, TransportMode
from amps_companion.domain.shared.exceptions import DomainError
from amps_companion.domain.shared.messages import LogTemplates
from amps_companion.utils.logging import console_handler

if TYPE_CHECKING:
    from amps_companion.config.container import Container

_LOGGING_CONFIG_PATH = Path(__file__).resolve().parent / "logging_config.json"

_DEMO_TICKS = 5


def setup_logging(log_level: str = "INFO") -> None:
    resolved_level = getattr(logging, log_level.upper(), logging.INFO)

    try:
        with open(_LOGGING_CONFIG_PATH) as f:
            config = json.load(f)
        logging.config.dictConfig(config)
    except (FileNotFoundError, json.JSONDecodeError, ValueError):
        root = logging.getLogger()
        if not root.handlers:
            root.addHandler(console_handler(resolved_level))
        logging.warning("Could not load %s, falling back to basic config", _LOGGING_CONFIG_PATH)

    logging.getLogger().setLevel(resolved_level)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="amps-companion",
        description="Control a shared AMPS playback session.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("status", help="Show controller system status")

    search = commands.add_parser("search", help="Search the controller's catalog")
    search.add_argument("query")
    search.add_argument("--limit", type=int, default=ClientDefaults.SEARCH_LIMIT)

    commands.add_parser("demo", help="Run a session lifecycle and print snapshots")
    return parser


def _emit(payload: Any) -> None:
    sys.stdout.write(json.dumps(payload, indent=2) + "\n")


async def _status(container: Container) -> int:
    status = await container.session_client.get_system_status()
    _emit(status.to_wire())
    return 0


async def _search(container: Container, query: str, limit: int) -> int:
    results = await container.session_client.search_content(query, limit)
    _emit([content.to_wire() for content in results])
    return 0


async def _demo(container: Container) -> int:
    store = container.session_store
    if not await store.connect():
        return 1

    results = await store.search_content("Mock", 3)
    await store.create_session("Demo Session", {"volume": 60})
    for content in results:
        await store.add_to_queue(content.id)
    await store.control_playback(PlaybackAction.PLAY)
    _emit(store.snapshot().model_dump(mode="json", exclude={"search_results"}))

    if container.settings.controller.mode == TransportMode.SIMULATOR:
        for _ in range(_DEMO_TICKS):
            await container.simulator.tick()
        await store.refresh()
        _emit(store.snapshot().model_dump(mode="json", exclude={"search_results"}))

    await store.leave_session()
    await store.disconnect()
    return 0


async def _run(args: argparse.Namespace, container: Container) -> int:
    try:
        if args.command == "status":
            return await _status(container)
        if args.command == "search":
            return await _search(container, args.query, args.limit)
        return await _demo(container)
    finally:
        await container.shutdown()


def main(argv: list[str] | None = None) -> int:
    from amps_companion.config.settings import get_settings

    args = _build_parser().parse_args(argv)

    settings = get_settings()
    setup_logging(settings.log_level)

    logger = logging.getLogger(__name__)
    logger.info(LogTemplates.CLI_STARTING, settings.environment, settings.controller.mode)

    from amps_companion.config.container import create_container

    container = create_container(settings)

    try:
        return asyncio.run(_run(args, container))
    except KeyboardInterrupt:
        return 0
    except DomainError as e:
        logger.error(LogTemplates.CLI_FATAL_ERROR, e.message)
        return 1
    except Exception as e:
        logger.exception(LogTemplates.CLI_FATAL_ERROR, e)
        return 1


def cli() -> None:
    """Console script entry point (used by pyproject.toml [project.scripts])."""
    sys.exit(main())


if __name__ == "__main__":
    cli()  # pragma: no cover
