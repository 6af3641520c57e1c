"""Shared fakes for the Flux tool tests."""

import pytest
import requests

from flux_tool.schemas import SaveResult, TaskResult


class FakeResponse:
    """Just enough of requests.Response for the client and file manager."""

    def __init__(self, status_code=200, json_data=None, reason="OK", content=b"", invalid_json=False):
        self.status_code = status_code
        self.reason = reason
        self.content = content
        self._json_data = json_data
        self._invalid_json = invalid_json

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._json_data

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} Client Error: {self.reason}")


class FakeSession:
    """Replays queued responses (or raises queued exceptions) and records every call.

    When the queue runs dry, ``default`` is returned if one was given.
    """

    def __init__(self, responses=None, default=None):
        self.responses = list(responses or [])
        self.default = default
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.responses:
            item = self.responses.pop(0)
        elif self.default is not None:
            item = self.default
        else:
            raise AssertionError(f"unexpected {method} {url}")
        if isinstance(item, Exception):
            raise item
        return item

    def get(self, url, **kwargs):
        return self.request("GET", url, **kwargs)


class FakeClock:
    """Monotonic clock that only moves when sleep() is called."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class FakeClient:
    """Stands in for FluxApiClient inside dispatcher tests."""

    def __init__(self, task_id="t1", result=None, error=None, statuses=None):
        self.task_id = task_id
        self.result = {"sample": "https://x/img.jpg"} if result is None else result
        self.error = error
        self.statuses = statuses or []
        self.submissions = []
        self.awaited = []

    def submit(self, endpoint, payload):
        self.submissions.append((endpoint, payload))
        return self.task_id

    def await_completion(self, task_id, max_wait_time=None, poll_interval=None, on_progress=None):
        self.awaited.append(task_id)
        for status in self.statuses:
            if on_progress is not None:
                on_progress(status)
        if self.error is not None:
            raise self.error
        return TaskResult(id=task_id, status="Ready", result=self.result)


class FakeSaver:
    """Records save requests and reports a fixed location."""

    def __init__(self, saved_path="/tmp/out/f.jpg", error=None):
        self.saved_path = saved_path
        self.error = error
        self.calls = []

    def save_generated_image(self, image_url, **options):
        self.calls.append((image_url, options))
        if self.error is not None:
            raise self.error
        return SaveResult(
            saved_path=self.saved_path,
            filename=self.saved_path.rsplit("/", 1)[-1],
            directory=self.saved_path.rsplit("/", 1)[0],
            size=1234,
        )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def fake_saver():
    return FakeSaver()
