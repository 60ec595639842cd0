from .project_site import ProjectSite
from .project_member import ProjectMember
from .attendance_event import AttendanceEvent
from .presence_challenge import PresenceChallenge

__all__ = [
    "ProjectSite",
    "ProjectMember",
    "AttendanceEvent",
    "PresenceChallenge"
]
