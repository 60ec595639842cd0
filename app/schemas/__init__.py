from .attendance import (
    WorkSession,
    SessionAnomaly,
    ReconstructionResult
)
from .timesheet import DayTimesheet, MonthTimesheet, AvailableMonthsResponse, AnomalyCountsResponse
from .presence import (
    SiteAnchor,
    ShiftState,
    Challenge,
    ChallengeCreateRequest,
    FireTimeReplaceRequest,
    ChallengeRespondRequest,
    AdjudicationResult
)
from .common import DataResponse, PaginationResponse

__all__ = [
    # Attendance schemas
    "WorkSession",
    "SessionAnomaly",
    "ReconstructionResult",
    # Timesheet schemas
    "DayTimesheet",
    "MonthTimesheet",
    "AvailableMonthsResponse",
    "AnomalyCountsResponse",
    # Presence schemas
    "SiteAnchor",
    "ShiftState",
    "Challenge",
    "ChallengeCreateRequest",
    "FireTimeReplaceRequest",
    "ChallengeRespondRequest",
    "AdjudicationResult",
    # Common schemas
    "DataResponse",
    "PaginationResponse"
]
