"""Cleanup of substrate resources once a Worker or Job is finished."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future

from brigade_observer.durations import format_duration
from brigade_observer.logging import get_logger
from brigade_observer.resources import ResourceKind
from brigade_observer.types import PodKey, PodRef


class CleanupScheduler:
    """Trigger remote cleanup for finished pods, at most once per pod.

    A pod that reaches a terminal phase but still exists is cleaned up after
    ``delay`` seconds, which gives log aggregators time to drain its output
    before the pod becomes unreachable. A pod whose deletion has been
    observed is cleaned up right away, superseding any pending deferred
    cleanup. If the deferred cleanup is already running, the immediate
    cleanup waits for it and reports its outcome instead.

    Failures are logged and not retried here. A failed cleanup leaves the pod
    untracked, so the next observation of the same pod triggers it again.
    """

    def __init__(self, kind: ResourceKind, delay: float, logger: logging.Logger | None = None) -> None:
        self.kind = kind
        self.delay = delay
        self.logger = logger or get_logger(f"cleanup.{kind.name}")
        self._pending: dict[PodKey, threading.Event] = {}
        self._in_flight: dict[PodKey, Future] = {}
        self._cleaned: set[PodKey] = set()
        # Pods already gone whose deferred cleanup has yet to run.
        self._gone: set[PodKey] = set()
        self._lock = threading.Lock()

    def cleanup_now(self, ref: PodRef) -> bool:
        """Clean up synchronously, canceling any deferred cleanup for the pod.

        Returns:
            False if the remote cleanup failed, True otherwise (including when
            an earlier cleanup of the pod already ran).
        """
        with self._lock:
            pending = self._pending.pop(ref.key, None)
            self._gone.discard(ref.key)
            in_flight = self._in_flight.get(ref.key)
            if in_flight is not None:
                already_cleaned = False
            elif ref.key in self._cleaned:
                already_cleaned = True
            else:
                already_cleaned = False
                self._cleaned.add(ref.key)
        if pending is not None:
            pending.set()
        if in_flight is not None:
            self.logger.debug("Waiting for in-flight cleanup of %s", ref.describe())
            return in_flight.result()
        if already_cleaned:
            self.logger.debug("%s already cleaned up; skipping", ref.describe())
            return True
        return self._invoke(ref)

    def schedule(self, ref: PodRef) -> bool:
        """Clean up after the configured delay on a separate thread.

        Returns:
            True if a deferred cleanup was scheduled, False if one is already
            pending or the pod was already cleaned up.
        """
        with self._lock:
            if ref.key in self._pending or ref.key in self._in_flight or ref.key in self._cleaned:
                return False
            cancel = threading.Event()
            self._pending[ref.key] = cancel
        thread = threading.Thread(
            target=self._run_deferred,
            args=(ref, cancel),
            name=f"{self.kind.name}-cleanup-{ref.key}",
            daemon=True,
        )
        thread.start()
        self.logger.debug("Scheduled cleanup of %s in %s", ref.describe(), format_duration(self.delay))
        return True

    def forget(self, key: PodKey) -> None:
        """Drop completed-cleanup tracking for a pod that no longer exists.

        A pending deferred cleanup is left to run; it is the only cleanup a
        finished pod deleted without a deletion-marker update ever gets.
        """
        with self._lock:
            self._cleaned.discard(key)
            if key in self._pending:
                self._gone.add(key)

    def cancel_all(self) -> None:
        """Abandon every pending deferred cleanup (used on shutdown)."""
        with self._lock:
            pending = list(self._pending.values())
            self._pending.clear()
            self._gone.clear()
        for cancel in pending:
            cancel.set()

    def is_pending(self, key: PodKey) -> bool:
        with self._lock:
            return key in self._pending

    def _run_deferred(self, ref: PodRef, cancel: threading.Event) -> None:
        if cancel.wait(self.delay):
            return
        with self._lock:
            if self._pending.get(ref.key) is not cancel:
                return
            del self._pending[ref.key]
            if ref.key in self._gone:
                self._gone.discard(ref.key)
            else:
                self._cleaned.add(ref.key)
            attempt: Future = Future()
            self._in_flight[ref.key] = attempt
        succeeded = False
        try:
            succeeded = self._invoke(ref)
        finally:
            with self._lock:
                del self._in_flight[ref.key]
            attempt.set_result(succeeded)

    def _invoke(self, ref: PodRef) -> bool:
        try:
            self.kind.cleanup(ref)
        except Exception as e:  # noqa: BLE001
            self.logger.error("error cleaning up after %s: %s", ref.describe(), e)
            with self._lock:
                self._cleaned.discard(ref.key)
            return False
        self.logger.info("Cleaned up after %s", ref.describe())
        return True
