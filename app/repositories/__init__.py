from .project_site_repository import ProjectSiteRepository
from .attendance_event_repository import AttendanceEventRepository
from .presence_challenge_repository import PresenceChallengeRepository

__all__ = [
    "ProjectSiteRepository",
    "AttendanceEventRepository",
    "PresenceChallengeRepository"
]
