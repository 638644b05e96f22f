"""Pod-backed Brigade resource kinds.

A kind bundles everything that differs between Worker and Job pods: how a
pod's status is computed and which remote operations act on the resource.
The rest of the reconciliation pipeline is written once against
:class:`ResourceKind`.
"""

from __future__ import annotations

from typing import Protocol

from kubernetes.client import V1Pod

from brigade_observer.api_client import JobOperations, WorkerOperations
from brigade_observer.constants import COMPONENT_JOB, COMPONENT_WORKER
from brigade_observer.phases import job_status, worker_status
from brigade_observer.types import JobStatus, PodRef, Status, WorkerStatus


class ResourceKind(Protocol):
    """Strategy for one kind of pod-backed resource."""

    name: str

    def status_of(self, pod: V1Pod) -> Status: ...

    def update_status(self, ref: PodRef, status: Status) -> None: ...

    def cleanup(self, ref: PodRef) -> None: ...

    def timeout(self, ref: PodRef) -> None: ...


class WorkerKind:
    """Worker pods: one per Event."""

    name = COMPONENT_WORKER

    def __init__(self, client: WorkerOperations) -> None:
        self._client = client

    def status_of(self, pod: V1Pod) -> WorkerStatus:
        return worker_status(pod)

    def update_status(self, ref: PodRef, status: Status) -> None:
        self._client.update_status(ref.event_id, status)  # type: ignore[arg-type]

    def cleanup(self, ref: PodRef) -> None:
        self._client.cleanup(ref.event_id)

    def timeout(self, ref: PodRef) -> None:
        self._client.timeout(ref.event_id)


class JobKind:
    """Job pods: spawned by a Worker, possibly with sidecars."""

    name = COMPONENT_JOB

    def __init__(self, client: JobOperations) -> None:
        self._client = client

    def status_of(self, pod: V1Pod) -> JobStatus:
        return job_status(pod)

    def _job(self, ref: PodRef) -> str:
        return ref.job or ""

    def update_status(self, ref: PodRef, status: Status) -> None:
        self._client.update_status(ref.event_id, self._job(ref), status)  # type: ignore[arg-type]

    def cleanup(self, ref: PodRef) -> None:
        self._client.cleanup(ref.event_id, self._job(ref))

    def timeout(self, ref: PodRef) -> None:
        self._client.timeout(ref.event_id, self._job(ref))
