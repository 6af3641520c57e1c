"""Exceptions raised by the Flux image tool."""

from typing import Optional


class FluxToolError(Exception):
    """Base class for all Flux tool errors."""


class ValidationError(FluxToolError, ValueError):
    """A call-time argument is missing or malformed. Raised before any network activity."""


class RemoteError(FluxToolError):
    """The remote service answered with a non-success status or an unusable body."""

    def __init__(self, status_code: Optional[int], message: str):
        self.status_code = status_code
        prefix = f"HTTP {status_code}: " if status_code is not None else ""
        super().__init__(f"{prefix}{message}")


class NetworkError(FluxToolError):
    """The transport failed before any HTTP status was received."""

    def __init__(self, message: str):
        super().__init__(f"Network error: {message}")


class TaskFailedError(FluxToolError):
    """The remote task reached a terminal status other than Ready."""

    def __init__(self, status: str, details: Optional[dict] = None):
        self.status = status
        self.details = details
        super().__init__(f"Task failed: {status}")


class TaskTimeoutError(FluxToolError):
    """No terminal status was observed before the polling deadline."""

    def __init__(self, task_id: str, max_wait_time: float):
        self.task_id = task_id
        self.max_wait_time = max_wait_time
        super().__init__(f"Task timed out after {max_wait_time:g}s")


class ArtifactNotFoundError(FluxToolError):
    """A Ready result did not contain a recognizable image reference."""


class SaveError(FluxToolError):
    """Downloading or writing the generated image failed."""


class UnknownToolError(FluxToolError, KeyError):
    """The requested tool name is not one of the registered tools."""

    def __str__(self):
        return str(self.args[0]) if self.args else ""


class UnknownResourceError(FluxToolError, KeyError):
    """The requested expert resource does not exist."""

    def __str__(self):
        return str(self.args[0]) if self.args else ""
