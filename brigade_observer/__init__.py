"""Brigade Observer - reconciles Worker and Job pod state into Brigade.

Watches the pods backing Brigade Workers and Jobs, reports their status to
the Brigade API, enforces execution timeouts and triggers cleanup.
"""

__version__ = "0.3.2"
__author__ = "Brigade Team"

from brigade_observer.config import ObserverConfig
from brigade_observer.constants import JobPhase, Phase, WorkerPhase
from brigade_observer.exceptions import ObserverError
from brigade_observer.observer import Observer, build_observer
from brigade_observer.phases import job_status, worker_status
from brigade_observer.types import JobStatus, PodKey, PodRef, WorkerStatus

__all__ = [
    "__version__",
    "Phase",
    "WorkerPhase",
    "JobPhase",
    "ObserverError",
    "ObserverConfig",
    # Status mapping
    "worker_status",
    "job_status",
    "WorkerStatus",
    "JobStatus",
    "PodKey",
    "PodRef",
    # Coordination
    "Observer",
    "build_observer",
]
