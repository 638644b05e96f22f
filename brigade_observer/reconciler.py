"""Reconcile observed pods into Brigade Worker/Job state."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from kubernetes.client import V1Pod

from brigade_observer.cleanup import CleanupScheduler
from brigade_observer.constants import EventType
from brigade_observer.logging import get_logger, pod_logger
from brigade_observer.pod_sets import DeletingPodsSet
from brigade_observer.resources import ResourceKind
from brigade_observer.status_sync import StatusSynchronizer
from brigade_observer.timeouts import TimeoutClockManager
from brigade_observer.types import PodEvent, PodKey, PodRef, Status


class PodSyncHandler:
    """Per-event callback for one kind of pod-backed resource.

    Order matters in ``handle``: the timeout clock follows the new phase
    before cleanup is considered, and the status write is attempted whether
    or not cleanup follows, so the last known status is recorded even if
    cleanup fails.
    """

    def __init__(
        self,
        kind: ResourceKind,
        timeouts: TimeoutClockManager,
        synchronizer: StatusSynchronizer,
        cleanup: CleanupScheduler,
        deleting: DeletingPodsSet,
        logger: logging.Logger | None = None,
    ) -> None:
        self.kind = kind
        self.timeouts = timeouts
        self.synchronizer = synchronizer
        self.cleanup = cleanup
        self.deleting = deleting
        self.logger = logger or get_logger(f"reconciler.{kind.name}")

    def handle(self, pod: V1Pod) -> Status:
        """Sync one added or updated pod.

        Returns:
            The status computed for the pod.
        """
        ref = PodRef.of(pod)
        status = self.kind.status_of(pod)
        pod_logger(self.logger, self.kind.name, ref).debug("Observed pod in phase %s", status.phase.value)

        self.timeouts.manage(pod, status.phase)

        deleting = pod.metadata.deletion_timestamp is not None
        first_deletion = deleting and self.deleting.add(ref.key)

        self.synchronizer.sync(ref, status, deleting=deleting)

        if deleting:
            # Later updates of a pod already being deleted need no further cleanup.
            if first_deletion and not self.cleanup.cleanup_now(ref):
                self.deleting.discard(ref.key)
        elif status.phase.is_terminal:
            self.cleanup.schedule(ref)
        return status

    def handle_deleted(self, pod: V1Pod) -> None:
        """Forget a pod that has been fully removed from the substrate.

        A deferred cleanup still pending for the pod is left to run.
        """
        key = PodKey.of(pod)
        self.deleting.discard(key)
        self.cleanup.forget(key)
        self.timeouts.stop(key)
        self.logger.debug("Pod %s deleted", key)

    def dispatch(self, event: PodEvent) -> None:
        if event.type == EventType.DELETED:
            self.handle_deleted(event.pod)
        else:
            self.handle(event.pod)

    def consume(self, events: Iterable[PodEvent]) -> None:
        """Drive the handler from a watcher's event stream until it ends."""
        for event in events:
            try:
                self.dispatch(event)
            except Exception:  # noqa: BLE001
                self.logger.exception("error syncing %s pod %s", self.kind.name, PodKey.of(event.pod))
