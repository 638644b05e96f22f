"""Brigade Observer constants and enumerations."""

from enum import Enum


class Phase(Enum):
    """Where a Worker or Job is within its lifecycle."""

    PENDING = "PENDING"
    STARTING = "STARTING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    ABORTED = "ABORTED"  # Forcefully stopped, e.g. its pod was deleted
    CANCELED = "CANCELED"  # Canceled before it ever started
    SCHEDULING_FAILED = "SCHEDULING_FAILED"
    TIMED_OUT = "TIMED_OUT"
    UNKNOWN = "UNKNOWN"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition is expected from this phase."""
        return self in TERMINAL_PHASES


# Workers and Jobs share one lifecycle vocabulary.
WorkerPhase = Phase
JobPhase = Phase

TERMINAL_PHASES = frozenset(
    {
        Phase.SUCCEEDED,
        Phase.FAILED,
        Phase.ABORTED,
        Phase.CANCELED,
        Phase.SCHEDULING_FAILED,
        Phase.TIMED_OUT,
    }
)


class PodPhase(str, Enum):
    """Pod phases as reported by Kubernetes."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


class EventType(str, Enum):
    """Pod change notifications produced by a watcher."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"


# Waiting reasons that mean a pending pod will never start
IMAGE_PULL_FAILURE_REASONS = frozenset({"ImagePullBackOff", "ErrImagePull"})

# Labels and annotations stamped on Worker and Job pods
LABEL_BRIGADE_ID = "brigade.sh/id"
LABEL_COMPONENT = "brigade.sh/component"
LABEL_EVENT = "brigade.sh/event"
LABEL_JOB = "brigade.sh/job"
ANNOTATION_TIMEOUT_DURATION = "brigade.sh/timeoutDuration"

COMPONENT_WORKER = "worker"
COMPONENT_JOB = "job"

# Brigade API
API_VERSION = "brigade.sh/v2"

# Default configuration values (seconds)
DEFAULT_DELAY_BEFORE_CLEANUP = 60.0
DEFAULT_MAX_WORKER_LIFETIME = 24 * 60 * 60.0
DEFAULT_MAX_JOB_LIFETIME = 24 * 60 * 60.0
DEFAULT_HEALTHCHECK_INTERVAL = 30.0
DEFAULT_API_REQUEST_TIMEOUT = 30.0
SHUTDOWN_GRACE_PERIOD = 3.0

# Watch tuning
WATCH_TIMEOUT_SECONDS = 60
WATCH_MAX_BACKOFF_SECONDS = 30


def _selector(component: str, brigade_id: str) -> str:
    return f"{LABEL_COMPONENT}={component},{LABEL_BRIGADE_ID}={brigade_id}"


def worker_pods_selector(brigade_id: str) -> str:
    """Label selector matching the Worker pods of one Brigade installation."""
    return _selector(COMPONENT_WORKER, brigade_id)


def job_pods_selector(brigade_id: str) -> str:
    """Label selector matching the Job pods of one Brigade installation."""
    return _selector(COMPONENT_JOB, brigade_id)
