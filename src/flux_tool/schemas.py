"""Data models for the Flux image generation MCP server."""

from enum import Enum
from typing import Any, List, Optional
from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    """Status values reported by the get_result endpoint."""

    PENDING = "Pending"
    READY = "Ready"
    ERROR = "Error"
    CONTENT_MODERATED = "Content Moderated"
    REQUEST_MODERATED = "Request Moderated"


FAILED_STATUSES = frozenset({
    TaskStatus.ERROR.value,
    TaskStatus.CONTENT_MODERATED.value,
    TaskStatus.REQUEST_MODERATED.value,
})


class SubmissionResponse(BaseModel):
    """Body returned when a generation request is accepted."""

    id: str = Field(..., min_length=1, description="Task identifier")
    polling_url: Optional[str] = Field(None, description="URL the service suggests for polling")


class TaskResult(BaseModel):
    """A single status snapshot of a remote generation task."""

    id: Optional[str] = Field(None, description="Task identifier")
    status: str = Field(..., description="Task status, e.g. Pending or Ready")
    progress: Optional[float] = Field(None, description="Completion percentage while pending")
    result: Optional[Any] = Field(None, description="Result payload once Ready")
    details: Optional[Any] = Field(None, description="Extra information, usually on failure")

    @property
    def is_ready(self) -> bool:
        return self.status == TaskStatus.READY.value

    @property
    def is_failed(self) -> bool:
        return self.status in FAILED_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.is_ready or self.is_failed


class SaveResult(BaseModel):
    """Where a generated image ended up on disk."""

    saved_path: str = Field(..., description="Absolute path of the written file")
    filename: str = Field(..., description="File name including extension")
    directory: str = Field(..., description="Directory containing the file")
    size: Optional[int] = Field(None, ge=0, description="File size in bytes")


class ToolDescriptor(BaseModel):
    """Static description of one generation tool."""

    name: str = Field(..., description="MCP tool name")
    endpoint: str = Field(..., description="Remote endpoint path")
    model: str = Field(..., description="Model slug used in generated filenames")
    display_name: str = Field(..., description="Human readable model name")
    description: str = Field(..., description="Tool description shown to clients")
    parameters: List[str] = Field(default_factory=list, description="Accepted argument names")


class ExpertMetadata(BaseModel):
    """Listing information for an expert prompt resource."""

    id: str
    name: str
    description: str
    specialties: List[str] = Field(default_factory=list)
    uri: str
    mime_type: str = "text/plain"
