"""
Pipeline error kinds.

Every failure that crosses the pipeline boundary is one of these classes.
Each carries a stable ``code`` and an HTTP status; the API layer turns them
into ``{"error": code, "message": ..., "details": {...}}`` bodies.
Collaborator payloads belong in logs, never in ``details``.
"""

from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse


class PipelineError(Exception):
    """Base class for all pipeline failures."""

    code: str = "internal_error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class InvalidInput(PipelineError):
    """Missing or malformed request fields. Not retried."""

    code = "invalid_input"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(PipelineError):
    """Unknown identifier."""

    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    resource_type = "resource"

    def __init__(self, resource_id: str, message: Optional[str] = None):
        super().__init__(
            message or f"{self.resource_type.capitalize()} not found",
            details={"resource_type": self.resource_type, "resource_id": resource_id},
        )
        self.resource_id = resource_id


class TranscriptNotFound(NotFound):
    resource_type = "transcript"


class RecipeNotFound(NotFound):
    resource_type = "recipe"


class RenderNotFound(NotFound):
    resource_type = "render"


class TranscriptionFailed(PipelineError):
    """The transcription collaborator failed or timed out. Safe to retry."""

    code = "transcription_failed"
    status_code = status.HTTP_502_BAD_GATEWAY


class RenderSubmissionFailed(PipelineError):
    """The render collaborator rejected the job. Safe to retry."""

    code = "render_submission_failed"
    status_code = status.HTTP_502_BAD_GATEWAY


class ExecutionError(PipelineError):
    """Recipe and transcript data are inconsistent. Needs human attention."""

    code = "execution_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class RenderTimeout(PipelineError):
    """A bounded wait on the render collaborator was exceeded."""

    code = "render_timeout"
    status_code = status.HTTP_504_GATEWAY_TIMEOUT


class RecipeVersionConflict(PipelineError):
    """Concurrent compiles kept colliding on the next version number."""

    code = "version_conflict"
    status_code = status.HTTP_409_CONFLICT


async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    """FastAPI exception handler for PipelineError."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
