from __future__ import annotations

import asyncio
import importlib
import logging
import signal
from typing import Any

from aiohttp import web

from frontdoor.config import Config
from frontdoor.core import subprocess_tracker
from frontdoor.core.session import EngineSession

logger = logging.getLogger("frontdoor")


def _setup_logging(log_file: str) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        handlers=handlers,
    )


def load_app(spec: str) -> Any:
    """Import ``package.module:attribute``."""
    module_name, _, attr = spec.partition(":")
    if not module_name or not attr:
        raise ValueError(f"FRONTDOOR_APP must look like 'module:attribute', not '{spec}'")
    return getattr(importlib.import_module(module_name), attr)


def source_for(app: Any) -> dict[str, Any]:
    """Map an imported object onto the matching ListenOptions source."""
    if isinstance(app, web.Application):
        return {"aiohttp_app": app}
    if isinstance(app, web.BaseRunner):
        return {"runner": app}
    if callable(app):
        return {"handler": app}
    return {"http_server": app}


async def main(config: Config) -> None:
    logger.info("frontdoor starting...")

    subprocess_tracker.set_pid_file(config.pid_file or None)
    subprocess_tracker.cleanup_stale_pids()

    app = load_app(config.app)
    session = EngineSession(config.engine_config())

    stop_event = asyncio.Event()

    def handle_signal() -> None:
        logger.info("Shutdown signal received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal)

    result = await session.listen(config.listen_options(**source_for(app)))
    if not result.ok:
        logger.error("frontdoor failed to start: %s", result.error)
        await session.stop()
        raise SystemExit(1)

    logger.info("frontdoor is live at %s. Press Ctrl+C to stop.", result.address)
    await stop_event.wait()

    logger.info("Shutting down...")
    await session.stop()
    logger.info("frontdoor stopped.")


def run() -> None:
    config = Config.from_env()
    _setup_logging(config.log_file)
    try:
        asyncio.run(main(config))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
