"""List-then-watch pods matching a label selector."""

from __future__ import annotations

import logging
import random
import threading
from collections.abc import Iterator

from kubernetes import watch
from kubernetes.client import ApiException, CoreV1Api, V1Pod

from brigade_observer.constants import WATCH_MAX_BACKOFF_SECONDS, WATCH_TIMEOUT_SECONDS, EventType
from brigade_observer.exceptions import WatchError
from brigade_observer.logging import get_logger
from brigade_observer.reconciler import PodSyncHandler
from brigade_observer.types import PodEvent, PodKey

_DENIED = {401, 403}


class PodWatcher:
    """Continuously synchronized view of the pods matching one selector.

    ``events`` turns list+watch into a lazy, unbounded stream of
    :class:`PodEvent`. The initial list reports every pod as ADDED. When the
    watch falls too far behind (``410 Gone``) the pods are re-listed: pods
    still present are reported as MODIFIED and pods that vanished in the
    meantime as DELETED, so consumers never miss a transition.

    Failing to list at startup and being denied access are fatal and raise
    :class:`WatchError`. Any other watch error is logged and retried with
    jittered exponential backoff.
    """

    def __init__(
        self,
        core_api: CoreV1Api,
        label_selector: str,
        name: str,
        timeout_seconds: int = WATCH_TIMEOUT_SECONDS,
        logger: logging.Logger | None = None,
    ) -> None:
        self.core_api = core_api
        self.label_selector = label_selector
        self.name = name
        self.timeout_seconds = timeout_seconds
        self.logger = logger or get_logger(f"watcher.{name}")
        self._known: dict[PodKey, V1Pod] = {}
        self._active_watch: watch.Watch | None = None
        self._watch_lock = threading.Lock()

    def run(self, stop: threading.Event, handler: PodSyncHandler) -> None:
        """Feed every observed change to *handler* until *stop* is set."""
        self.logger.info("Watching %s pods (%s)", self.name, self.label_selector)
        handler.consume(self.events(stop))
        self.logger.info("Stopped watching %s pods", self.name)

    def interrupt(self) -> None:
        """Stop the currently open watch stream, if any."""
        with self._watch_lock:
            active = self._active_watch
        if active is not None:
            active.stop()

    def events(self, stop: threading.Event) -> Iterator[PodEvent]:
        """Yield pod changes until *stop* is set.

        Raises:
            WatchError: If the initial list fails or access is denied.
        """
        try:
            pods, resource_version = self._list()
        except ApiException as e:
            raise WatchError(f"unable to list {self.name} pods: {e.reason}", self.label_selector, e.status) from e
        except Exception as e:
            raise WatchError(f"unable to list {self.name} pods: {e}", self.label_selector) from e

        for pod in pods:
            yield self._record(EventType.ADDED, pod)

        backoff_seconds = 1
        while not stop.is_set():
            watcher = watch.Watch()
            with self._watch_lock:
                self._active_watch = watcher
            try:
                stream = watcher.stream(
                    self.core_api.list_pod_for_all_namespaces,
                    label_selector=self.label_selector,
                    resource_version=resource_version,
                    timeout_seconds=self.timeout_seconds,
                )
                for raw_event in stream:
                    if stop.is_set():
                        break
                    pod = raw_event.get("object")
                    event_type = str(raw_event.get("type", ""))
                    if pod is None or event_type not in EventType.__members__:
                        continue
                    if pod.metadata is not None and pod.metadata.resource_version:
                        resource_version = pod.metadata.resource_version
                    yield self._record(EventType(event_type), pod)
                backoff_seconds = 1
            except ApiException as e:
                if e.status == 410:
                    self.logger.warning("%s pod watch resource version expired, re-listing", self.name)
                    try:
                        pods, resource_version = self._list()
                    except ApiException as relist_error:
                        if relist_error.status in _DENIED:
                            raise WatchError(
                                f"access denied re-listing {self.name} pods",
                                self.label_selector,
                                relist_error.status,
                            ) from relist_error
                        self.logger.exception("Failed to re-list %s pods after 410", self.name)
                        resource_version = None
                        continue
                    yield from self._resync(pods)
                    continue

                if e.status in _DENIED:
                    raise WatchError(f"access denied watching {self.name} pods", self.label_selector, e.status) from e

                self.logger.exception("Kubernetes API error watching %s pods", self.name)
                stop.wait(timeout=backoff_seconds * (0.5 + random.random()))  # noqa: S311
                backoff_seconds = min(backoff_seconds * 2, WATCH_MAX_BACKOFF_SECONDS)
            except Exception:
                self.logger.exception("Unexpected error watching %s pods", self.name)
                stop.wait(timeout=backoff_seconds * (0.5 + random.random()))  # noqa: S311
                backoff_seconds = min(backoff_seconds * 2, WATCH_MAX_BACKOFF_SECONDS)
            finally:
                watcher.stop()
                with self._watch_lock:
                    if self._active_watch is watcher:
                        self._active_watch = None

    def _list(self) -> tuple[list[V1Pod], str | None]:
        pod_list = self.core_api.list_pod_for_all_namespaces(label_selector=self.label_selector)
        metadata = getattr(pod_list, "metadata", None)
        return list(pod_list.items or []), getattr(metadata, "resource_version", None)

    def _record(self, event_type: EventType, pod: V1Pod) -> PodEvent:
        key = PodKey.of(pod)
        if event_type == EventType.DELETED:
            self._known.pop(key, None)
        else:
            self._known[key] = pod
        return PodEvent(type=event_type, pod=pod)

    def _resync(self, pods: list[V1Pod]) -> Iterator[PodEvent]:
        current = {PodKey.of(pod) for pod in pods}
        for key, pod in list(self._known.items()):
            if key not in current:
                yield self._record(EventType.DELETED, pod)
        for pod in pods:
            event_type = EventType.MODIFIED if PodKey.of(pod) in self._known else EventType.ADDED
            yield self._record(event_type, pod)
