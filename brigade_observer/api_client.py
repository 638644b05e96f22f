"""Brigade API client for the operations the Observer needs.

Every call is bounded by its own request timeout, independent of whatever
thread or timer issued it.
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from typing import Any, Protocol
from urllib.parse import quote

from brigade_observer.constants import DEFAULT_API_REQUEST_TIMEOUT
from brigade_observer.exceptions import API_ERRORS_BY_STATUS, APIConnectionError, APIError
from brigade_observer.logging import get_logger
from brigade_observer.types import JobStatus, WorkerStatus

logger = get_logger("api_client")


class WorkerOperations(Protocol):
    """Remote operations on an Event's Worker."""

    def update_status(self, event_id: str, status: WorkerStatus) -> None: ...

    def cleanup(self, event_id: str) -> None: ...

    def timeout(self, event_id: str) -> None: ...


class JobOperations(Protocol):
    """Remote operations on a Worker's Jobs."""

    def update_status(self, event_id: str, job: str, status: JobStatus) -> None: ...

    def cleanup(self, event_id: str, job: str) -> None: ...

    def timeout(self, event_id: str, job: str) -> None: ...


class Pinger(Protocol):
    def ping(self) -> None: ...


class RestClient:
    """Minimal JSON-over-HTTP transport with bearer token auth."""

    def __init__(
        self,
        address: str,
        token: str,
        ignore_cert_warnings: bool = False,
        timeout: float = DEFAULT_API_REQUEST_TIMEOUT,
    ) -> None:
        self.address = address.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._ssl_context: ssl.SSLContext | None = None
        if ignore_cert_warnings:
            self._ssl_context = ssl.create_default_context()
            self._ssl_context.check_hostname = False
            self._ssl_context.verify_mode = ssl.CERT_NONE

    def request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        auth: bool = True,
    ) -> Any:
        """Execute a request and return the decoded JSON body, if any.

        Args:
            method: HTTP method
            path: Path relative to the API address
            body: Optional JSON request body
            auth: Whether to send the bearer token

        Returns:
            Decoded response body, or None when the response is empty

        Raises:
            APIError: Subclass matching the HTTP status of a failed call
            APIConnectionError: If the server could not be reached
        """
        url = f"{self.address}/{path}"
        headers = {"Accept": "application/json"}
        data = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"
        if auth and self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        req = urllib.request.Request(url, data=data, headers=headers, method=method)
        logger.debug("%s %s", method, url)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout, context=self._ssl_context) as response:
                payload = response.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            raise _api_error(method, path, e) from e
        except (urllib.error.URLError, TimeoutError, OSError) as e:
            raise APIConnectionError(f"{method} {path} failed: {e}") from e

        if not payload:
            return None
        try:
            return json.loads(payload)
        except json.JSONDecodeError:
            return payload


def _api_error(method: str, path: str, error: urllib.error.HTTPError) -> APIError:
    reason = ""
    details: dict[str, Any] = {}
    try:
        raw = error.read().decode("utf-8")
        body = json.loads(raw) if raw else {}
        if isinstance(body, dict):
            details = body
            reason = str(body.get("reason") or body.get("details") or "")
    except (OSError, ValueError):
        pass
    message = reason or f"{method} {path} returned HTTP {error.code}"
    error_cls = API_ERRORS_BY_STATUS.get(error.code, APIError)
    return error_cls(message, status_code=error.code, details=details)


def _segment(value: str) -> str:
    return quote(value, safe="")


class WorkersClient:
    """Worker operations of the Brigade API."""

    def __init__(self, rest: RestClient) -> None:
        self._rest = rest

    def update_status(self, event_id: str, status: WorkerStatus) -> None:
        self._rest.request("PUT", f"v2/events/{_segment(event_id)}/worker/status", status.to_dict())

    def cleanup(self, event_id: str) -> None:
        self._rest.request("PUT", f"v2/events/{_segment(event_id)}/worker/cleanup")

    def timeout(self, event_id: str) -> None:
        self._rest.request("PUT", f"v2/events/{_segment(event_id)}/worker/timeout")


class JobsClient:
    """Job operations of the Brigade API."""

    def __init__(self, rest: RestClient) -> None:
        self._rest = rest

    def _path(self, event_id: str, job: str, action: str) -> str:
        return f"v2/events/{_segment(event_id)}/worker/jobs/{_segment(job)}/{action}"

    def update_status(self, event_id: str, job: str, status: JobStatus) -> None:
        self._rest.request("PUT", self._path(event_id, job, "status"), status.to_dict())

    def cleanup(self, event_id: str, job: str) -> None:
        self._rest.request("PUT", self._path(event_id, job, "cleanup"))

    def timeout(self, event_id: str, job: str) -> None:
        self._rest.request("PUT", self._path(event_id, job, "timeout"))


class SystemClient:
    """System operations of the Brigade API."""

    def __init__(self, rest: RestClient) -> None:
        self._rest = rest

    def ping(self) -> None:
        self._rest.request("GET", "v2/ping", auth=False)


class APIClient:
    """All Brigade API clients the Observer uses, sharing one transport."""

    def __init__(
        self,
        address: str,
        token: str,
        ignore_cert_warnings: bool = False,
        timeout: float = DEFAULT_API_REQUEST_TIMEOUT,
    ) -> None:
        rest = RestClient(address, token, ignore_cert_warnings=ignore_cert_warnings, timeout=timeout)
        self.workers = WorkersClient(rest)
        self.jobs = JobsClient(rest)
        self.system = SystemClient(rest)
