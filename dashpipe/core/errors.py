"""
Pipeline error taxonomy.

Every error is recoverable at the request boundary: ``main`` registers a single
handler that turns a ``PipelineError`` into a JSON response with the matching
status code.
"""
from typing import Optional


class PipelineError(Exception):
    """Base class for errors surfaced to the client."""

    status_code = 500
    default_reason = "internal pipeline error"

    def __init__(self, reason: Optional[str] = None, hint: Optional[str] = None):
        self.reason = reason or self.default_reason
        self.hint = hint
        super().__init__(self.reason)

    def to_body(self) -> dict:
        body = {"success": False, "error": self.reason}
        if self.hint:
            body["hint"] = self.hint
        return body


class MissingCredential(PipelineError):
    status_code = 401
    default_reason = "No session token provided"


class AuthenticationFailed(PipelineError):
    status_code = 401
    default_reason = "Invalid credentials"


class CredentialNotFound(PipelineError):
    status_code = 403
    default_reason = "token not found"


class CredentialExpired(PipelineError):
    status_code = 403
    default_reason = "token expired"


class InvalidRequestBody(PipelineError):
    status_code = 400
    default_reason = "invalid request"


class UpstreamNotFound(PipelineError):
    status_code = 404
    default_reason = "Segment not found"


class UpstreamTransportError(PipelineError):
    status_code = 502
    default_reason = "Upstream error"
