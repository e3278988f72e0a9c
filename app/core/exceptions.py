"""
Error taxonomy for module timelines.

Validation and not-found errors abort the single operation and reach the
caller directly. Dependency errors raised inside a batch pass are caught per
item and reported in the pass result instead.
"""

from typing import Any, Dict, Optional


class TimelineError(Exception):
    """Base exception for timeline errors"""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(TimelineError):
    """Malformed identifiers or missing required fields"""

    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class NotFoundError(TimelineError):
    """Referenced course/module/department/timeline is absent"""

    status_code = 404

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        details = {"id": resource_id} if resource_id is not None else None
        super().__init__(message, code="NOT_FOUND", details=details)
        self.resource = resource


class ConflictError(TimelineError):
    """A timeline already exists for the same course/module/department"""

    status_code = 409

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFLICT", details=details)


class DependencyError(TimelineError):
    """Store or notification collaborator failure"""

    status_code = 502

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="DEPENDENCY_ERROR", details=details)
