"""Tests for the Observer coordinator."""

import threading
import time
from unittest.mock import MagicMock

import pytest

from brigade_observer.config import APIConfig, ObserverConfig
from brigade_observer.exceptions import APIConnectionError, HealthcheckError, WatchError
from brigade_observer.healthcheck import HealthCheck, HealthcheckLoop
from brigade_observer.observer import Observer, PodPipeline, build_observer


def blocking_pipeline(name: str) -> PodPipeline:
    """A pipeline whose watcher runs until the coordinator cancels it."""
    watcher = MagicMock()
    watcher.name = name
    watcher.run.side_effect = lambda stop, handler: stop.wait()
    return PodPipeline(watcher=watcher, handler=MagicMock())


def healthy_loop() -> HealthcheckLoop:
    return HealthcheckLoop([HealthCheck("ok", MagicMock())], interval=0.01, logger=MagicMock())


class TestObserverRun:
    """Tests for Observer.run."""

    def test_healthcheck_failure_shuts_down(self):
        """A failing ping stops both watchers within the grace period and is returned."""
        ping = MagicMock(side_effect=APIConnectionError("connection refused"))
        healthcheck = HealthcheckLoop([HealthCheck("brigade-api", ping)], interval=0.01, logger=MagicMock())
        pipelines = [blocking_pipeline("worker"), blocking_pipeline("job")]
        observer = Observer(healthcheck, pipelines, grace_period=1.0, logger=MagicMock())

        started = time.monotonic()
        with pytest.raises(HealthcheckError, match="brigade-api"):
            observer.run()

        assert time.monotonic() - started < 2.0
        for pipeline in pipelines:
            pipeline.watcher.interrupt.assert_called_once()
            pipeline.handler.timeouts.cancel_all.assert_called_once()
            pipeline.handler.cleanup.cancel_all.assert_called_once()

    def test_watcher_failure_shuts_down(self):
        failing = blocking_pipeline("job")
        failing.watcher.run.side_effect = WatchError("access denied watching job pods", "sel", 403)
        worker = blocking_pipeline("worker")
        observer = Observer(healthy_loop(), [worker, failing], grace_period=1.0, logger=MagicMock())

        with pytest.raises(WatchError):
            observer.run()

        worker.watcher.interrupt.assert_called_once()

    def test_external_stop_returns_cleanly(self):
        stop = threading.Event()
        observer = Observer(healthy_loop(), [blocking_pipeline("worker")], grace_period=1.0, logger=MagicMock())
        threading.Timer(0.05, stop.set).start()

        assert observer.run(stop) is None

    def test_shutdown_bounded_by_grace_period(self):
        """A loop ignoring cancellation does not hold up shutdown past the grace period."""
        release = threading.Event()
        stuck = blocking_pipeline("worker")
        stuck.watcher.run.side_effect = lambda stop, handler: release.wait(5)
        stop = threading.Event()
        stop.set()
        observer = Observer(healthy_loop(), [stuck], grace_period=0.1, logger=MagicMock())

        started = time.monotonic()
        try:
            observer.run(stop)
        finally:
            release.set()

        assert time.monotonic() - started < 1.0
        observer.logger.warning.assert_called_once()


class TestBuildObserver:
    """Tests for wiring an Observer from configuration."""

    @pytest.fixture
    def config(self):
        return ObserverConfig(
            brigade_id="brigade-test",
            api=APIConfig(address="https://brigade.example.com", token="secret"),
            delay_before_cleanup=30,
            max_worker_lifetime=7200,
            max_job_lifetime=3600,
            healthcheck_interval=15,
        )

    def test_pipelines(self, config):
        api = MagicMock()
        observer = build_observer(config, MagicMock(), api)

        worker, job = observer.pipelines
        assert worker.watcher.label_selector == "brigade.sh/component=worker,brigade.sh/id=brigade-test"
        assert job.watcher.label_selector == "brigade.sh/component=job,brigade.sh/id=brigade-test"
        assert (worker.handler.kind.name, job.handler.kind.name) == ("worker", "job")
        assert worker.handler.timeouts.max_lifetime == 7200
        assert job.handler.timeouts.max_lifetime == 3600
        assert worker.handler.cleanup.delay == job.handler.cleanup.delay == 30
        assert worker.handler.deleting is job.handler.deleting

    def test_healthchecks(self, config):
        observer = build_observer(config, MagicMock(), MagicMock())
        assert [c.name for c in observer.healthcheck.checks] == ["brigade-api"]
        assert observer.healthcheck.interval == 15

        observer = build_observer(config, MagicMock(), MagicMock(), version_api=MagicMock())
        assert [c.name for c in observer.healthcheck.checks] == ["brigade-api", "kubernetes-api"]
