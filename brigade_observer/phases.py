"""Translate observed pod state into Worker and Job status.

Everything here is a pure function of the pod object: no I/O and no shared
state, so the same pod always maps to the same status.
"""

from __future__ import annotations

from datetime import datetime

from kubernetes.client import V1ContainerStatus, V1Pod

from brigade_observer.constants import IMAGE_PULL_FAILURE_REASONS, Phase, PodPhase
from brigade_observer.types import JobStatus, WorkerStatus

_POD_PHASES = {
    # For Brigade's purposes a pending pod is already running
    PodPhase.PENDING.value: Phase.RUNNING,
    PodPhase.RUNNING.value: Phase.RUNNING,
    PodPhase.SUCCEEDED.value: Phase.SUCCEEDED,
    PodPhase.FAILED.value: Phase.FAILED,
    PodPhase.UNKNOWN.value: Phase.UNKNOWN,
}


def primary_container_status(pod: V1Pod) -> V1ContainerStatus | None:
    """Return the status of the pod's first declared container, if reported.

    Container statuses are not guaranteed to follow the pod's container order, so
    they are matched by name.
    """
    containers = pod.spec.containers if pod.spec is not None else None
    if not containers:
        return None
    name = containers[0].name
    for container_status in _container_statuses(pod):
        if container_status.name == name:
            return container_status
    return None


def _container_statuses(pod: V1Pod) -> list[V1ContainerStatus]:
    if pod.status is None:
        return []
    return pod.status.container_statuses or []


def _image_pull_failed(pod: V1Pod) -> bool:
    for container_status in _container_statuses(pod):
        waiting = container_status.state.waiting if container_status.state else None
        if waiting is not None and waiting.reason in IMAGE_PULL_FAILURE_REASONS:
            return True
    return False


def base_phase(pod: V1Pod) -> Phase:
    """Phase shared by Workers and Jobs, before any Job refinement."""
    if pod.metadata.deletion_timestamp is not None:
        # Possibly already recorded as terminal; that write will be rejected.
        return Phase.ABORTED

    pod_phase = pod.status.phase if pod.status is not None else None
    phase = _POD_PHASES.get(pod_phase, Phase.UNKNOWN)

    # An image pull backoff leaves the pod pending forever
    if pod_phase == PodPhase.PENDING.value and _image_pull_failed(pod):
        return Phase.FAILED
    return phase


def _times(pod: V1Pod) -> tuple[datetime | None, datetime | None]:
    started = pod.status.start_time if pod.status is not None else None
    ended = None
    # Pods have no end time of their own; the primary container's is what matters.
    primary = primary_container_status(pod)
    if primary is not None and primary.state is not None and primary.state.terminated is not None:
        ended = primary.state.terminated.finished_at
    return started, ended


def worker_status(pod: V1Pod) -> WorkerStatus:
    """Compute the status of the Worker backed by *pod*."""
    started, ended = _times(pod)
    return WorkerStatus(phase=base_phase(pod), started=started, ended=ended)


def job_status(pod: V1Pod) -> JobStatus:
    """Compute the status of the Job backed by *pod*.

    Sidecars may keep a Job pod running after its primary container has
    exited; the primary container alone decides success or failure.
    """
    phase = base_phase(pod)
    if phase == Phase.RUNNING:
        primary = primary_container_status(pod)
        terminated = primary.state.terminated if primary is not None and primary.state is not None else None
        if terminated is not None:
            phase = Phase.SUCCEEDED if terminated.exit_code == 0 else Phase.FAILED
    started, ended = _times(pod)
    return JobStatus(phase=phase, started=started, ended=ended)
