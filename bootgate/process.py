"""Terminating the host process after a migration."""

from __future__ import annotations

import logging
import os
import sys
from typing import NoReturn, Protocol

from bootgate.core.config import settings
from bootgate.core.logging import get_logger


logger = get_logger("process")


class ProcessController(Protocol):
    def halt(self) -> NoReturn:
        """End the process. Never returns."""
        ...


class ExitProcessController:
    """Flush logs, then end the process immediately.

    ``os._exit`` skips ``finally`` blocks and atexit handlers.
    """

    def __init__(self, exit_code: int | None = None):
        self.exit_code = settings.halt_exit_code if exit_code is None else exit_code

    def halt(self) -> NoReturn:
        logger.info(f"Exiting with status {self.exit_code}")
        logging.shutdown()
        sys.stdout.flush()
        sys.stderr.flush()
        os._exit(self.exit_code)


class SystemExitController:
    """End the process by raising ``SystemExit`` (runs atexit handlers)."""

    def __init__(self, exit_code: int | None = None):
        self.exit_code = settings.halt_exit_code if exit_code is None else exit_code

    def halt(self) -> NoReturn:
        logger.info(f"Exiting with status {self.exit_code}")
        raise SystemExit(self.exit_code)


def default_controller() -> ProcessController:
    if settings.halt_graceful:
        return SystemExitController()
    return ExitProcessController()
