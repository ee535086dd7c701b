"""
Solar meter daemon entrypoint.

Loads MeterSettings, opens the SQLite store, seeds it with the configured
values, builds the MeterContext and runs the RefreshOrchestrator until
SIGTERM/SIGINT.  Exactly one refresh cycle is ever in flight; the loop
sleeps on the shutdown event between cycles so a signal ends it promptly.

Structured JSON logging is used for all events. A HealthWriter instance
records the outcome of every cycle.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import signal
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from solarmeter.src.config import SECRET_FIELDS, VENDOR_KEYS

if TYPE_CHECKING:
    from solarmeter.src.config import MeterSettings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


class JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def configure_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging on stderr.

    httpx logs every request at INFO including the query string, which
    carries vendor credentials, so it is held at WARNING.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _masked_token(value: str | None) -> str:
    """Return a short non-reversible token fingerprint for diagnostics."""
    if not value:
        return "empty"
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()[:10]
    return f"len={len(value)} sha256={digest}"


# ---------------------------------------------------------------------------
# Startup config logging
# ---------------------------------------------------------------------------


def log_config_summary(settings: MeterSettings) -> None:
    """Log a config summary at startup with secrets masked."""
    credentials = {
        name: (
            _masked_token(str(getattr(settings, name)))
            if name in SECRET_FIELDS
            else getattr(settings, name)
        )
        for name in VENDOR_KEYS
        if getattr(settings, name)
    }
    logger.info(
        "Solar meter starting with config: "
        "system=%s, day_interval_s=%s, request_timeout_s=%s, "
        "startup_delay_s=%s, latitude=%s, longitude=%s, timezone=%s, "
        "store_path=%s, health_path=%s, disabled=%s, "
        "show_house_child=%s, show_grid_child=%s, show_battery_child=%s, "
        "credentials=%s",
        settings.system,
        settings.day_interval_s,
        settings.request_timeout_s,
        settings.startup_delay_s,
        settings.latitude,
        settings.longitude,
        settings.timezone or "local",
        settings.store_path,
        settings.health_path,
        settings.disabled,
        settings.show_house_child,
        settings.show_grid_child,
        settings.show_battery_child,
        credentials,
    )


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


async def async_main() -> None:
    """Async entrypoint: load config, build components, run the loop.

    Sets up SIGTERM/SIGINT handlers to trigger graceful shutdown.
    """
    import httpx

    from solarmeter.src.clock import Clock, SunSchedule
    from solarmeter.src.config import MeterSettings, seed_store
    from solarmeter.src.context import MeterContext
    from solarmeter.src.health import HealthWriter
    from solarmeter.src.orchestrator import RefreshOrchestrator
    from solarmeter.src.store import SqliteStore

    settings = MeterSettings()
    configure_logging(settings.log_level)
    log_config_summary(settings)

    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: _handle_signal(shutdown_event),
        )

    health = HealthWriter(settings.health_path)

    async with (
        SqliteStore(settings.store_path) as store,
        httpx.AsyncClient(timeout=settings.request_timeout_s) as http,
    ):
        await seed_store(settings, store)
        ctx = MeterContext(
            store=store,
            clock=Clock(settings.timezone),
            sun=SunSchedule(settings.latitude, settings.longitude),
            http=http,
            request_timeout_s=settings.request_timeout_s,
        )
        orchestrator = RefreshOrchestrator(ctx)
        await orchestrator.run(
            shutdown_event,
            startup_delay_s=settings.startup_delay_s,
            health=health,
        )
    logger.info("Shutdown complete")


def _handle_signal(shutdown_event: asyncio.Event) -> None:
    """Handle SIGTERM/SIGINT by setting the shutdown event.

    Args:
        shutdown_event: The event to set for graceful shutdown.
    """
    logger.info("Received shutdown signal, initiating graceful shutdown")
    shutdown_event.set()


def main() -> None:
    """Synchronous entrypoint for the solar meter daemon."""
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
