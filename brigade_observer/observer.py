"""Coordinator for the Observer's concurrent loops."""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from kubernetes.client import CoreV1Api, VersionApi

from brigade_observer.api_client import APIClient
from brigade_observer.cleanup import CleanupScheduler
from brigade_observer.config import ObserverConfig
from brigade_observer.constants import SHUTDOWN_GRACE_PERIOD, job_pods_selector, worker_pods_selector
from brigade_observer.healthcheck import HealthcheckLoop, brigade_api_check, kubernetes_api_check
from brigade_observer.logging import get_logger
from brigade_observer.pod_sets import DeletingPodsSet
from brigade_observer.reconciler import PodSyncHandler
from brigade_observer.resources import JobKind, ResourceKind, WorkerKind
from brigade_observer.status_sync import StatusSynchronizer
from brigade_observer.timeouts import TimeoutClockManager
from brigade_observer.watcher import PodWatcher


@dataclass
class PodPipeline:
    """A watcher and the sync handler consuming its events."""

    watcher: PodWatcher
    handler: PodSyncHandler


class Observer:
    """Runs the healthcheck loop and one watcher per resource kind.

    Each loop runs on its own thread and shares one cancel event. Any loop
    may report a fatal error; the first one shuts everything down.
    """

    def __init__(
        self,
        healthcheck: HealthcheckLoop,
        pipelines: list[PodPipeline],
        grace_period: float = SHUTDOWN_GRACE_PERIOD,
        poll_interval: float = 0.1,
        logger: logging.Logger | None = None,
    ) -> None:
        self.healthcheck = healthcheck
        self.pipelines = pipelines
        self.grace_period = grace_period
        self.poll_interval = poll_interval
        self.logger = logger or get_logger("observer")
        self.errors: queue.Queue[BaseException] = queue.Queue()
        self._cancel = threading.Event()

    def run(self, stop: threading.Event | None = None) -> None:
        """Run until a loop fails or *stop* is set.

        Shutdown waits at most ``grace_period`` seconds for the loops to
        finish before returning.

        Raises:
            Exception: The fatal error that triggered shutdown.
        """
        stop = stop or threading.Event()
        self._cancel.clear()

        threads = [self._spawn("healthcheck", self.healthcheck.run, self._cancel, self.errors)]
        for pipeline in self.pipelines:
            threads.append(
                self._spawn(f"{pipeline.watcher.name}-watcher", pipeline.watcher.run, self._cancel, pipeline.handler)
            )

        error = self._wait(stop)
        if error is not None:
            self.logger.error("Shutting down after fatal error: %s", error)
        else:
            self.logger.info("Shutting down")
        self.shutdown()

        deadline = time.monotonic() + self.grace_period
        for thread in threads:
            thread.join(max(0.0, deadline - time.monotonic()))
        lingering = [thread.name for thread in threads if thread.is_alive()]
        if lingering:
            self.logger.warning("Loops still running after %.0fs grace period: %s", self.grace_period, lingering)

        if error is not None:
            raise error

    def shutdown(self) -> None:
        """Cancel every loop, timer and pending deferred cleanup."""
        self._cancel.set()
        for pipeline in self.pipelines:
            pipeline.watcher.interrupt()
            pipeline.handler.timeouts.cancel_all()
            pipeline.handler.cleanup.cancel_all()

    def _wait(self, stop: threading.Event) -> BaseException | None:
        while True:
            try:
                return self.errors.get(timeout=self.poll_interval)
            except queue.Empty:
                if stop.is_set():
                    return None

    def _spawn(self, name: str, target: Callable[..., Any], *args: Any) -> threading.Thread:
        def _main() -> None:
            try:
                target(*args)
            except Exception as e:  # noqa: BLE001
                self.logger.exception("%s loop failed", name)
                self.errors.put(e)

        thread = threading.Thread(target=_main, name=name, daemon=True)
        thread.start()
        return thread


def build_pipeline(
    kind: ResourceKind,
    core_api: CoreV1Api,
    selector: str,
    max_lifetime: float,
    delay_before_cleanup: float,
    deleting: DeletingPodsSet,
) -> PodPipeline:
    handler = PodSyncHandler(
        kind=kind,
        timeouts=TimeoutClockManager(kind, max_lifetime),
        synchronizer=StatusSynchronizer(kind),
        cleanup=CleanupScheduler(kind, delay_before_cleanup),
        deleting=deleting,
    )
    return PodPipeline(watcher=PodWatcher(core_api, selector, kind.name), handler=handler)


def build_observer(
    config: ObserverConfig,
    core_api: CoreV1Api,
    api: APIClient,
    version_api: VersionApi | None = None,
) -> Observer:
    """Wire an Observer from configuration and API clients.

    Args:
        config: Observer configuration
        core_api: Kubernetes core API used to list and watch pods
        api: Brigade API client
        version_api: Optional Kubernetes version API, enables the Kubernetes
            API server healthcheck

    Returns:
        Ready-to-run Observer
    """
    deleting = DeletingPodsSet()
    pipelines = [
        build_pipeline(
            WorkerKind(api.workers),
            core_api,
            worker_pods_selector(config.brigade_id),
            config.max_worker_lifetime,
            config.delay_before_cleanup,
            deleting,
        ),
        build_pipeline(
            JobKind(api.jobs),
            core_api,
            job_pods_selector(config.brigade_id),
            config.max_job_lifetime,
            config.delay_before_cleanup,
            deleting,
        ),
    ]
    checks = [brigade_api_check(api.system)]
    if version_api is not None:
        checks.append(kubernetes_api_check(version_api))
    return Observer(HealthcheckLoop(checks, interval=config.healthcheck_interval), pipelines)
