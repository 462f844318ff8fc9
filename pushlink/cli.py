#!/usr/bin/env python3
"""pushlink command line: connect, probe once, report, disconnect.

All settings come from PUSHLINK_* environment variables (or .env.pushlink).
If no environment is configured and stdin is a terminal, you are asked to
pick one.
"""

import os
import pathlib
import sys
from dataclasses import dataclass, field

import questionary
import whenever
from loguru import logger

from pushlink.engine import (
    ConfigurationError,
    ConnectionConfig,
    ConnectionError,
    ConnectionManager,
    Environment,
    LoguruObserver,
)


@dataclass(slots=True)
class PushLinkApp:
    config: ConnectionConfig

    # console log level (file logs always capture everything)
    logLevel: str = field(default_factory=lambda: os.getenv("PUSHLINK_LOG_LEVEL", "INFO"))
    logDir: pathlib.Path = field(
        default_factory=lambda: pathlib.Path(os.getenv("PUSHLINK_LOGDIR", "runlogs"))
    )

    manager: ConnectionManager | None = None
    _console_handler_id: int | None = None

    def setupLogging(self) -> None:
        now = whenever.ZonedDateTime.now("UTC")
        LOGDIR = self.logDir / f"{now.year}" / f"{now.month:02}"
        LOGDIR.mkdir(exist_ok=True, parents=True)
        LOG_FILE_TEMPLATE = str(
            LOGDIR
            / f"pushlink-{self.config.environment or 'unset'}-{now.year}{now.month:02}{now.day:02}T{now.hour:02}{now.minute:02}{now.second:02}"
        ).replace(" ", "_")

        logger.remove()
        self._console_handler_id = logger.add(sys.stderr, colorize=True, level=self.logLevel)

        # Also keep full TRACE logs of every run for later lookback.
        logger.add(sink=LOG_FILE_TEMPLATE + "-pushlink.log", level="TRACE", colorize=False)
        logger.add(sink=LOG_FILE_TEMPLATE + "-pushlink-color.log", level="TRACE", colorize=True)

        logger.info("Logging session with prefix: {}", LOG_FILE_TEMPLATE)

    def setConsoleLogLevel(self, level: str) -> None:
        """Change the console log level at runtime."""
        if self._console_handler_id is not None:
            logger.remove(self._console_handler_id)

        self.logLevel = level
        self._console_handler_id = logger.add(sys.stderr, colorize=True, level=level)

    def chooseEnvironment(self) -> None:
        if self.config.environment:
            return

        if not sys.stdin.isatty():
            raise ConfigurationError("PUSHLINK_ENVIRONMENT is not set")

        chosen = questionary.select(
            "Select environment:",
            choices=[env.name.lower() for env in Environment],
        ).ask()

        if not chosen:
            raise ConfigurationError("No environment selected")

        self.config.environment = chosen

    def run(self) -> int:
        self.chooseEnvironment()
        self.manager = ConnectionManager.fromConfig(self.config, observer=LoguruObserver())

        logger.info("Connecting: {}", self.manager)

        try:
            handle = self.manager.connect()
            logger.info(
                "Connected at {} :: TLS {} :: cipher {}",
                handle.connectedAt,
                handle.sock.version(),
                handle.sock.cipher()[0] if handle.sock.cipher() else "?",
            )

            result = self.manager.probe()
            if result.broken:
                logger.error("Connection broken right after connect: {}", result.reason)
                return 1

            logger.info("Connection is alive.")
            return 0
        finally:
            self.manager.disconnect()


def main() -> int:
    try:
        app = PushLinkApp(config=ConnectionConfig.fromEnv())
        app.setupLogging()
        return app.run()
    except ConfigurationError as e:
        logger.error("Configuration error: {}", e)
    except ConnectionError as e:
        logger.error("Giving up after {} attempt(s): {}", e.attempts, e)
    except KeyboardInterrupt:
        logger.warning("Interrupted. Goodbye.")

    return 1


if __name__ == "__main__":
    sys.exit(main())
