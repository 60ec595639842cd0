"""
Presence-specific exceptions

Each precondition failure carries a machine-readable ``reason`` in
``details`` so clients can show an actionable message.
"""
from typing import Optional, Dict, Any

from atams.exceptions import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    UnprocessableEntityException,
)


def _with_reason(reason: str, details: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    merged = {"reason": reason}
    if details:
        merged.update(details)
    return merged


class InvalidInputException(BadRequestException):
    """400 - malformed month, timezone, slot or missing project scope"""

    def __init__(self, reason: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.reason = reason
        super().__init__(message, _with_reason(reason, details))


class NotProjectMemberException(ForbiddenException):
    """403 - caller is not a current member of the project"""

    reason = "not_project_member"

    def __init__(self, message: str = "Not a member of this project", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, _with_reason(self.reason, details))


class NoActiveShiftException(ConflictException):
    """409 - operation requires an open shift today"""

    reason = "no_active_shift"

    def __init__(self, message: str = "No active shift today", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, _with_reason(self.reason, details))


class SiteLocationMissingException(UnprocessableEntityException):
    """422 - project has no site anchor coordinates"""

    reason = "site_location_missing"

    def __init__(self, message: str = "Site location missing", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, _with_reason(self.reason, details))
