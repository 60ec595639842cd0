from .timesheet_service import TimesheetService
from .shift_state_service import ShiftStateService
from .challenge_service import ChallengeService
from .adjudication_service import AdjudicationService

__all__ = [
    "TimesheetService",
    "ShiftStateService",
    "ChallengeService",
    "AdjudicationService"
]
