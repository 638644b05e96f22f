"""Brigade Observer data types."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from kubernetes.client import V1Pod

from brigade_observer.constants import API_VERSION, LABEL_EVENT, LABEL_JOB, EventType, Phase


@dataclass(frozen=True)
class PodKey:
    """Identity of a pod in every per-pod tracking map."""

    namespace: str
    name: str

    @classmethod
    def of(cls, pod: V1Pod) -> PodKey:
        return cls(namespace=pod.metadata.namespace or "", name=pod.metadata.name or "")

    def __str__(self) -> str:
        return f"{self.namespace}:{self.name}"


@dataclass(frozen=True)
class PodRef:
    """The Brigade resource a pod backs.

    ``job`` is ``None`` for Worker pods.
    """

    key: PodKey
    event_id: str
    job: str | None = None

    @classmethod
    def of(cls, pod: V1Pod) -> PodRef:
        labels = pod.metadata.labels or {}
        return cls(key=PodKey.of(pod), event_id=labels.get(LABEL_EVENT, ""), job=labels.get(LABEL_JOB))

    def describe(self) -> str:
        if self.job is None:
            return f"event {self.event_id!r} worker"
        return f"event {self.event_id!r} job {self.job!r}"


def _rfc3339(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class Status:
    """Computed status of a Worker or Job.

    Built fresh from pod state on every event and always written as a
    whole; the remote copy is never read back.
    """

    phase: Phase
    started: datetime | None = None
    ended: datetime | None = None

    kind: str = field(default="Status", init=False, repr=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        """Serialize with type metadata for the Brigade API."""
        data: dict[str, Any] = {"apiVersion": API_VERSION, "kind": self.kind}
        if self.started is not None:
            data["started"] = _rfc3339(self.started)
        if self.ended is not None:
            data["ended"] = _rfc3339(self.ended)
        data["phase"] = self.phase.value
        return data


@dataclass(frozen=True)
class WorkerStatus(Status):
    kind: str = field(default="WorkerStatus", init=False, repr=False, compare=False)


@dataclass(frozen=True)
class JobStatus(Status):
    kind: str = field(default="JobStatus", init=False, repr=False, compare=False)


@dataclass(frozen=True)
class PodEvent:
    """One observed change to a watched pod."""

    type: EventType
    pod: V1Pod


@dataclass
class TimedPod:
    """An active timeout timer for one pod."""

    cancel: threading.Event
    deadline: float  # time.monotonic() value at which the timer fires
    thread: threading.Thread | None = None
