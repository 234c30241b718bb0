"""Command line entry point: ``python -m netatmo_mqtt -c config.json``."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from pathlib import Path
from typing import Any

from . import NetatmoBridge
from .config import ConfigError, load_config, resolve_log_level, setup_logging
from .const import CONF_LOG_LEVEL, CONF_MQTT, CONF_TOKEN_FILE
from .mqtt import NetatmoMqttPublisher
from .store import JsonTokenStore

_LOGGER = logging.getLogger(__name__)

AUTH_RETRY_DELAY = 30


async def async_main(config: dict[str, Any]) -> int:
    """Run the bridge until a poll cycle fails or a stop signal arrives.

    Returns:
        Process exit code.

    """
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    publisher = NetatmoMqttPublisher(loop, config[CONF_MQTT])
    bridge = NetatmoBridge(
        config,
        JsonTokenStore(Path(config[CONF_TOKEN_FILE])),
        publisher.publish,
    )
    publisher.register_connected_callback(bridge.handle_transport_ready)

    try:
        while not await bridge.async_setup():
            if not bridge.has_refresh_token:
                _LOGGER.error(
                    "No refresh token found, authorize the application and save "
                    "the token to %s",
                    config[CONF_TOKEN_FILE],
                )
                return 1
            _LOGGER.warning(
                "Retrying authentication with existing saved token in %d seconds",
                AUTH_RETRY_DELAY,
            )
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=AUTH_RETRY_DELAY)
            if stop_event.is_set():
                return 0

        publisher.start()
        failure = asyncio.create_task(bridge.poller.async_wait())
        stopped = asyncio.create_task(stop_event.wait())
        await asyncio.wait({failure, stopped}, return_when=asyncio.FIRST_COMPLETED)

        exit_code = 0
        if failure.done():
            _LOGGER.error("Netatmo poll cycle failed: %s", failure.exception())
            exit_code = 1
        for task in (failure, stopped):
            task.cancel()
        _LOGGER.info("The netatmo_mqtt process is shutting down")
        await bridge.poller.async_stop()
        publisher.stop()
        return exit_code
    finally:
        await bridge.async_shutdown()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="netatmo_mqtt",
        description="Publish Netatmo weather station readings to MQTT.",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.json"),
        help="path to the JSON configuration file (default: config.json)",
    )
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as err:
        setup_logging(resolve_log_level())
        _LOGGER.error("%s", err)
        return 1

    setup_logging(resolve_log_level(config[CONF_LOG_LEVEL]))
    return asyncio.run(async_main(config))


if __name__ == "__main__":
    sys.exit(main())
