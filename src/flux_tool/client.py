"""HTTP client for the Black Forest Labs Flux API.

Generation is asynchronous on the remote side: a request is submitted to a
model endpoint, which answers with a task id, and the task is then polled
through ``/v1/get_result`` until it reaches a terminal status.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

import pydantic
import requests

from flux_tool.errors import (
    NetworkError,
    RemoteError,
    TaskFailedError,
    TaskTimeoutError,
    ValidationError,
)
from flux_tool.schemas import SubmissionResponse, TaskResult

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.bfl.ai"
DEFAULT_MAX_WAIT_TIME = 300.0
DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_REQUEST_TIMEOUT = 30.0


class FluxApiClient:
    """Submit generation tasks and wait for their results.

    Errors are never retried here; retry policy belongs to the caller.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_API_BASE,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        max_wait_time: float = DEFAULT_MAX_WAIT_TIME,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not api_key:
            raise ValidationError("API key is required")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self.max_wait_time = max_wait_time
        self.poll_interval = poll_interval
        # None means a fresh connection per request through the requests module
        self.session = session
        self._sleep = sleep
        self._clock = clock

    def _headers(self, json_body: bool = False) -> Dict[str, str]:
        headers = {"x-key": self.api_key}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            http = requests if self.session is None else self.session
            resp = http.request(method, url, timeout=self.request_timeout, **kwargs)
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", method, url, e)
            raise NetworkError(str(e)) from e

        if not resp.ok:
            logger.error("%s %s returned HTTP %s", method, url, resp.status_code)
            raise RemoteError(resp.status_code, resp.reason or "request failed")

        try:
            return resp.json()
        except ValueError as e:
            raise RemoteError(None, "response body is not valid JSON") from e

    def submit(self, endpoint: str, payload: Optional[Dict[str, Any]]) -> str:
        """Submit a generation request and return the task id.

        Args:
            endpoint: Model endpoint path, e.g. "v1/flux-pro"
            payload: JSON body for the endpoint

        Returns:
            The task id assigned by the service
        """
        if not endpoint:
            raise ValidationError("Endpoint is required")
        if payload is None:
            raise ValidationError("Payload is required")

        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        logger.info(f"Submitting generation to {endpoint}")
        data = self._request("POST", url, json=payload, headers=self._headers(json_body=True))

        try:
            submission = SubmissionResponse.model_validate(data)
        except pydantic.ValidationError as e:
            raise RemoteError(None, f"unexpected submission response: {data!r}") from e

        logger.info(f"Task {submission.id} submitted")
        return submission.id

    def fetch_status(self, task_id: str) -> TaskResult:
        """Fetch the current status of a task."""
        if not task_id:
            raise ValidationError("Task ID is required")

        url = f"{self.base_url}/v1/get_result"
        data = self._request("GET", url, params={"id": task_id}, headers=self._headers())

        try:
            return TaskResult.model_validate(data)
        except pydantic.ValidationError as e:
            raise RemoteError(None, f"unexpected status response: {data!r}") from e

    def await_completion(
        self,
        task_id: str,
        max_wait_time: Optional[float] = None,
        poll_interval: Optional[float] = None,
        on_progress: Optional[Callable[[TaskResult], None]] = None,
    ) -> TaskResult:
        """Poll a task until it is Ready, fails, or the deadline passes.

        ``on_progress`` receives every fetched status, including pending ones,
        before the status is checked for terminality.

        Raises:
            TaskFailedError: the task ended in Error, Content Moderated or Request Moderated
            TaskTimeoutError: no terminal status within ``max_wait_time`` seconds
        """
        max_wait_time = self.max_wait_time if max_wait_time is None else max_wait_time
        poll_interval = self.poll_interval if poll_interval is None else poll_interval

        start = self._clock()
        while self._clock() - start < max_wait_time:
            status = self.fetch_status(task_id)
            logger.debug("Task %s status=%s progress=%s", task_id, status.status, status.progress)

            if on_progress is not None:
                on_progress(status)

            if status.is_ready:
                logger.info(f"Task {task_id} is ready")
                return status
            if status.is_failed:
                logger.warning(f"Task {task_id} failed with status {status.status}")
                raise TaskFailedError(status.status, status.details)

            self._sleep(poll_interval)

        logger.warning(f"Task {task_id} timed out after {max_wait_time}s")
        raise TaskTimeoutError(task_id, max_wait_time)
