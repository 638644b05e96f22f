"""Tests for Observer logging setup."""

import json
import logging

import pytest

from brigade_observer.logging import (
    ROOT_LOGGER,
    ConsoleFormatter,
    JsonFormatter,
    get_logger,
    pod_logger,
    setup_logging,
)
from brigade_observer.types import PodKey, PodRef


def make_record(msg: str = "hello %s", args: tuple = ("world",), **extra) -> logging.LogRecord:
    record = logging.LogRecord("brigade_observer.test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger(ROOT_LOGGER)
    handlers, level, propagate = root.handlers[:], root.level, root.propagate
    yield
    root.handlers, root.level, root.propagate = handlers, level, propagate


class TestFormatters:
    def test_json_formatter(self):
        data = json.loads(JsonFormatter().format(make_record(kind="job", event_id="evt-1", job="build")))
        assert data["level"] == "info"
        assert data["logger"] == "brigade_observer.test"
        assert data["message"] == "hello world"
        assert (data["kind"], data["event_id"], data["job"]) == ("job", "evt-1", "build")
        assert data["ts"].endswith("Z")

    def test_json_formatter_without_context(self):
        data = json.loads(JsonFormatter().format(make_record()))
        assert "kind" not in data
        assert "pod" not in data

    def test_console_formatter(self):
        line = ConsoleFormatter().format(make_record(kind="worker", pod="ns:pod-a"))
        assert "hello world" in line
        assert "[worker:ns:pod-a]" in line
        assert "INFO" in line


class TestSetupLogging:
    def test_namespaced_logger(self):
        assert get_logger("watcher.worker").name == "brigade_observer.watcher.worker"

    @pytest.mark.parametrize(
        "level, expected",
        [("debug", logging.DEBUG), ("info", logging.INFO), ("warn", logging.WARNING), ("error", logging.ERROR)],
    )
    def test_levels(self, level, expected):
        setup_logging(level)
        assert logging.getLogger(ROOT_LOGGER).level == expected

    def test_json_output(self):
        setup_logging("info", json_output=True)
        root = logging.getLogger(ROOT_LOGGER)
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert root.propagate is False

    def test_repeated_setup_replaces_handler(self):
        setup_logging("info")
        setup_logging("debug")
        assert len(logging.getLogger(ROOT_LOGGER).handlers) == 1


class TestPodLogger:
    def test_adds_pod_context(self):
        records = []

        class Capture(logging.Handler):
            def emit(self, record):
                records.append(record)

        logger = logging.getLogger("brigade_observer.test.pod_logger")
        logger.setLevel(logging.DEBUG)
        logger.addHandler(Capture())
        ref = PodRef(key=PodKey("ns", "job-a"), event_id="evt-1", job="build")

        pod_logger(logger, "job", ref).info("observed")

        record = records[0]
        assert (record.kind, record.event_id, record.job, record.pod) == ("job", "evt-1", "build", "ns:job-a")

    def test_worker_has_no_job_field(self):
        ref = PodRef(key=PodKey("ns", "worker-a"), event_id="evt-1")
        adapter = pod_logger(logging.getLogger("x"), "worker", ref)
        assert "job" not in adapter.extra
