"""
Error taxonomy shared by the normalizer, store, orchestrator and HTTP layer.

Each error knows the HTTP status and public label it is rendered with, so the
API layer never has to guess how to present a failure.
"""

from typing import Any, List, Optional


class PcAnalysError(Exception):
    """Base exception for the report service."""
    status_code = 500
    label = "Internal Server Error"

    def __init__(self, message: str, details: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []


class MalformedInput(PcAnalysError):
    """Client data defect in an ingestion payload. Not retryable."""
    status_code = 400
    label = "Validation Error"

    def __init__(self, message: str, paths: Optional[List[str]] = None):
        super().__init__(message, details=list(paths or []))
        self.paths = list(paths or [])


class InvalidRequest(PcAnalysError):
    """Bad identifier or enum value on a request."""
    status_code = 400
    label = "Bad Request"


class NotFound(PcAnalysError):
    """Valid request for a resource that does not exist."""
    status_code = 404
    label = "Not Found"


class UpstreamGenerationFailure(PcAnalysError):
    """The generation service failed, refused, or produced nothing."""
    status_code = 502
    label = "Bad Gateway"


class PersistenceFailure(PcAnalysError):
    """A store read or write failed."""
    status_code = 500
    label = "Internal Server Error"


class InternalFault(PcAnalysError):
    """Anything unexpected. Details go to the logs only."""
    status_code = 500
    label = "Internal Server Error"
