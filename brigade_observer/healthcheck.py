"""Periodic connectivity checks against the APIs the Observer depends on."""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from kubernetes.client import VersionApi

from brigade_observer.api_client import Pinger
from brigade_observer.constants import DEFAULT_HEALTHCHECK_INTERVAL
from brigade_observer.exceptions import HealthcheckError
from brigade_observer.logging import get_logger


@dataclass(frozen=True)
class HealthCheck:
    """A named zero-argument probe that raises on failure."""

    name: str
    probe: Callable[[], Any]


def brigade_api_check(system: Pinger) -> HealthCheck:
    return HealthCheck(name="brigade-api", probe=system.ping)


def kubernetes_api_check(version_api: VersionApi) -> HealthCheck:
    return HealthCheck(name="kubernetes-api", probe=version_api.get_code)


class HealthcheckLoop:
    """Run every check on a fixed interval; the first failure is fatal.

    Losing the API server means the Observer can no longer do its job, so a
    failed check is reported on the coordinator's fatal error queue and the
    loop exits.
    """

    def __init__(
        self,
        checks: list[HealthCheck],
        interval: float = DEFAULT_HEALTHCHECK_INTERVAL,
        logger: logging.Logger | None = None,
    ) -> None:
        self.checks = checks
        self.interval = interval
        self.logger = logger or get_logger("healthcheck")

    def check(self) -> None:
        """Run every check once.

        Raises:
            HealthcheckError: For the first check that fails.
        """
        for health_check in self.checks:
            try:
                health_check.probe()
            except Exception as e:
                raise HealthcheckError(f"{health_check.name} healthcheck failed: {e}", health_check.name) from e
            self.logger.debug("%s healthcheck passed", health_check.name)

    def run(self, stop: threading.Event, errors: queue.Queue[BaseException]) -> None:
        """Check every ``interval`` seconds until *stop* is set or a check fails."""
        while not stop.wait(self.interval):
            try:
                self.check()
            except HealthcheckError as e:
                self.logger.error("%s", e)
                errors.put(e)
                return
