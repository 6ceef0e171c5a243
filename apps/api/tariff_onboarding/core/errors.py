"""
Error taxonomy and response envelopes.

Envelope keys (workflow routes): error, message, request_id, details
Envelope keys (machine endpoint): object, type, message
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse


class WorkflowError(Exception):
    code = "workflow_error"
    status_code = 400
    default_message = "Workflow error"

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class MissingAuthorization(WorkflowError):
    code = "missing_authorization"
    status_code = 403
    default_message = "Missing authorisation"


class MissingState(WorkflowError):
    code = "missing_state"
    status_code = 400
    default_message = "Missing state"


class InvalidState(WorkflowError):
    code = "invalid_state"
    status_code = 400
    default_message = "Failed to parse shared state"


class InvalidCredentials(WorkflowError):
    code = "invalid_credentials"
    status_code = 403
    default_message = "Invalid credentials"


class AuthorisationFailed(WorkflowError):
    code = "authorisation_failed"
    status_code = 400
    default_message = "Authorisation failed"


class PipelineStepFailed(WorkflowError):
    code = "pipeline_step_failed"
    status_code = 502
    default_message = "Failed to connect tariff"

    def __init__(self, step: str, reason: Optional[str] = None) -> None:
        # reason is for logs only; callers get the generic message
        self.step = step
        self.reason = reason
        super().__init__(details={"step": step})


class UnsupportedRoute(WorkflowError):
    code = "unsupported_route"
    status_code = 500
    default_message = "Unsupported route"


class UserCancelled(WorkflowError):
    code = "cancelled"
    status_code = 400
    default_message = "User rejects integration"


class ApiError(Exception):
    """Caller-input or collaborator fault on the machine endpoint."""

    type = "api_error"

    def __init__(self, message: str, status_code: int = 400) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ServerError(Exception):
    """Unexpected fault on the machine endpoint."""

    type = "server_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


def err_envelope(error: str, message: str, request_id: Optional[str], details: Any, status_code: int) -> JSONResponse:
    headers = {}
    if request_id:
        headers["X-Request-Id"] = request_id
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "request_id": request_id,
            "details": details,
        },
        headers=headers,
    )


def api_error_body(exc: ApiError | ServerError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"object": "error", "type": exc.type, "message": exc.message},
    )
