"""Push computed Worker/Job status to the Brigade API."""

from __future__ import annotations

import logging

from brigade_observer.exceptions import ConflictError
from brigade_observer.logging import get_logger
from brigade_observer.resources import ResourceKind
from brigade_observer.types import PodRef, Status


class StatusSynchronizer:
    """Write a resource's status, last-write-wins.

    Failures never propagate: the next pod event re-drives the same write.
    A conflict while the pod is being deleted is the expected outcome of
    reporting ABORTED for a resource whose terminal phase was already
    recorded, and is dropped silently.
    """

    def __init__(self, kind: ResourceKind, logger: logging.Logger | None = None) -> None:
        self.kind = kind
        self.logger = logger or get_logger(f"status_sync.{kind.name}")

    def sync(self, ref: PodRef, status: Status, deleting: bool = False) -> bool:
        """Update the remote status of the resource backed by *ref*.

        Args:
            ref: Pod reference identifying the Worker or Job.
            status: Status computed from the pod.
            deleting: Whether the pod carries a deletion marker.

        Returns:
            True if the remote write succeeded.
        """
        try:
            self.kind.update_status(ref, status)
        except ConflictError as e:
            if deleting:
                return False
            self.logger.error("error updating status for %s: %s", ref.describe(), e)
            return False
        except Exception as e:  # noqa: BLE001
            self.logger.error("error updating status for %s: %s", ref.describe(), e)
            return False
        self.logger.debug("Updated status for %s to %s", ref.describe(), status.phase.value)
        return True
