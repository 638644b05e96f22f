"""Per-pod execution timeouts for Workers and Jobs."""

from __future__ import annotations

import logging
import threading
import time

from kubernetes.client import V1Pod

from brigade_observer.constants import ANNOTATION_TIMEOUT_DURATION, Phase
from brigade_observer.durations import format_duration, parse_duration
from brigade_observer.logging import get_logger
from brigade_observer.resources import ResourceKind
from brigade_observer.types import PodKey, PodRef, TimedPod


class TimeoutClockManager:
    """Owns one cancellable timer per non-terminal pod of a resource kind.

    ``manage`` is the only entry point the sync handler uses. It starts a
    timer the first time a pod is seen in a non-terminal phase and cancels
    it once the pod reaches a terminal phase, so a pod never has more than
    one timer. When a timer expires the kind's remote ``timeout`` operation
    is invoked; that call carries its own request deadline and is never
    interrupted by the timer being canceled mid-flight.
    """

    def __init__(
        self,
        kind: ResourceKind,
        max_lifetime: float,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize TimeoutClockManager.

        Args:
            kind: Resource kind whose ``timeout`` operation is called on expiry.
            max_lifetime: Ceiling, in seconds, for any pod's timeout.
            logger: Optional logger, defaults to the module logger.
        """
        self.kind = kind
        self.max_lifetime = max_lifetime
        self.logger = logger or get_logger(f"timeouts.{kind.name}")
        self._timed: dict[PodKey, TimedPod] = {}
        self._lock = threading.Lock()

    def manage(self, pod: V1Pod, phase: Phase) -> None:
        """Start or stop the pod's timer according to its new phase."""
        key = PodKey.of(pod)
        if phase.is_terminal:
            self.stop(key)
        else:
            self.start(pod)

    def start(self, pod: V1Pod) -> bool:
        """Start a timer for *pod* unless one is already running.

        Returns:
            True if a new timer was started.
        """
        key = PodKey.of(pod)
        with self._lock:
            if key in self._timed:
                return False
            duration = self.timeout_for(pod)
            timed = TimedPod(cancel=threading.Event(), deadline=time.monotonic() + duration)
            timed.thread = threading.Thread(
                target=self._run_timer,
                args=(key, PodRef.of(pod), timed, duration),
                name=f"{self.kind.name}-timer-{key}",
                daemon=True,
            )
            self._timed[key] = timed
        timed.thread.start()
        self.logger.debug("Started %s timer for pod %s (%s)", self.kind.name, key, format_duration(duration))
        return True

    def stop(self, key: PodKey) -> bool:
        """Cancel the timer for *key*, if any.

        Returns:
            True if a running timer was canceled.
        """
        with self._lock:
            timed = self._timed.pop(key, None)
        if timed is None:
            return False
        timed.cancel.set()
        self.logger.debug("Canceled %s timer for pod %s", self.kind.name, key)
        return True

    def cancel_all(self) -> None:
        """Cancel every running timer (used on shutdown)."""
        with self._lock:
            timed_pods = list(self._timed.values())
            self._timed.clear()
        for timed in timed_pods:
            timed.cancel.set()

    def is_timed(self, key: PodKey) -> bool:
        with self._lock:
            return key in self._timed

    def active_count(self) -> int:
        with self._lock:
            return len(self._timed)

    def timeout_for(self, pod: V1Pod) -> float:
        """Return how long, in seconds, *pod* may run.

        The pod's timeout annotation is honored when it parses and does not
        exceed the configured maximum lifetime; otherwise the maximum is used.
        """
        annotations = pod.metadata.annotations or {}
        raw = annotations.get(ANNOTATION_TIMEOUT_DURATION)
        if not raw:
            return self.max_lifetime
        try:
            duration = parse_duration(raw)
        except ValueError:
            self.logger.warning(
                "unable to parse timeout duration %r for pod %s; using configured maximum %s",
                raw,
                PodKey.of(pod),
                format_duration(self.max_lifetime),
            )
            return self.max_lifetime
        if duration <= 0:
            self.logger.warning(
                "timeout duration %s for pod %s is not positive; using configured maximum %s",
                format_duration(duration),
                PodKey.of(pod),
                format_duration(self.max_lifetime),
            )
            return self.max_lifetime
        if duration > self.max_lifetime:
            self.logger.warning(
                "timeout duration %s for pod %s exceeds the configured maximum; using configured maximum %s",
                format_duration(duration),
                PodKey.of(pod),
                format_duration(self.max_lifetime),
            )
            return self.max_lifetime
        return duration

    def _run_timer(self, key: PodKey, ref: PodRef, timed: TimedPod, duration: float) -> None:
        try:
            if timed.cancel.wait(duration):
                return
            self.logger.info("%s for pod %s timed out after %s", ref.describe(), key, format_duration(duration))
            try:
                self.kind.timeout(ref)
            except Exception as e:  # noqa: BLE001
                self.logger.error("error timing out %s: %s", ref.describe(), e)
        finally:
            with self._lock:
                if self._timed.get(key) is timed:
                    del self._timed[key]
