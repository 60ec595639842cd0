"""
Challenge Service - schedules the day's proof-of-presence challenges
"""
from typing import List, Optional, Tuple
from datetime import date, datetime
from zoneinfo import ZoneInfo
from sqlalchemy.orm import Session

from app.core.clock import Clock, utcnow, ensure_utc, local_date, local_wall_clock, resolve_timezone
from app.core.config import settings
from app.core.exceptions import (
    InvalidInputException,
    NotProjectMemberException,
    NoActiveShiftException,
    SiteLocationMissingException
)
from app.repositories.project_site_repository import ProjectSiteRepository
from app.repositories.presence_challenge_repository import PresenceChallengeRepository
from app.schemas.presence import Challenge, SiteAnchor
from app.services.fire_time import FireTimePicker, SecureRandomFireTimePicker
from app.services.shift_state_service import ShiftStateService
from atams.exceptions import NotFoundException
from atams.logging import get_logger

logger = get_logger(__name__)

SLOTS = (1, 2)


class ChallengeService:
    def __init__(
        self,
        clock: Clock = utcnow,
        picker: Optional[FireTimePicker] = None,
        shift_state: Optional[ShiftStateService] = None
    ) -> None:
        self.site_repo = ProjectSiteRepository()
        self.challenge_repo = PresenceChallengeRepository()
        self.clock = clock
        self.picker = picker or SecureRandomFireTimePicker()
        self.shift_state = shift_state or ShiftStateService(clock=clock)

    @property
    def tz(self) -> ZoneInfo:
        return resolve_timezone(None, settings.DEFAULT_TIMEZONE)

    def today(self) -> date:
        return local_date(self.clock(), self.tz)

    def slot_window(self, day: date, slot: int) -> Tuple[datetime, datetime]:
        """UTC bounds of a slot's randomized fire window on ``day``"""
        start, end = settings.slot_window(slot)
        return local_wall_clock(day, start, self.tz), local_wall_clock(day, end, self.tz)

    # ==================== GATES ====================

    def _require_project(self, project_id: Optional[int]) -> int:
        if project_id is None:
            raise InvalidInputException("project_required", "project_id is required")
        return project_id

    def _require_slot(self, slot: int) -> int:
        if slot not in SLOTS:
            raise InvalidInputException("invalid_slot", "slot must be 1 or 2")
        return slot

    def _require_member(self, db: Session, project_id: int, employee_id: int) -> None:
        if not self.site_repo.is_member(db, project_id, employee_id):
            raise NotProjectMemberException()

    def _require_anchor(self, db: Session, project_id: int) -> SiteAnchor:
        site = self.site_repo.get_by_id(db, project_id)
        if site is None:
            raise NotFoundException("Project not found", {"reason": "project_not_found"})
        if site.ps_lat is None or site.ps_lng is None:
            raise SiteLocationMissingException()
        return SiteAnchor(project_id=project_id, lat=site.ps_lat, lng=site.ps_lng, radius_m=site.ps_radius_m)

    def _shift_active(self, db: Session, employee_id: int, project_id: int) -> bool:
        return self.shift_state.is_shift_active(db, employee_id, project_id)

    # ==================== OPERATIONS ====================

    def list_today_challenges(self, db: Session, employee_id: int, project_id: Optional[int]) -> List[Challenge]:
        """Read-only view of today's challenges, ordered by slot"""
        project_id = self._require_project(project_id)
        self._require_member(db, project_id, employee_id)

        rows = self.challenge_repo.list_for_day(db, employee_id, project_id, self.today())
        return [Challenge.model_validate(row) for row in rows]

    def ensure_today_challenges(self, db: Session, employee_id: int, project_id: Optional[int]) -> List[Challenge]:
        """
        Make sure both of today's slots exist

        Existing slots are left untouched. Both slots are created as soon
        as the shift is open; the client reveals each one at its fire time.
        Without an open shift nothing is created and the existing rows (if
        any) are returned.

        Raises:
            InvalidInputException: project_id missing
            NotProjectMemberException: Caller does not occupy the project
            NotFoundException: Unknown project
            SiteLocationMissingException: Project has no anchor coordinates
        """
        project_id = self._require_project(project_id)
        self._require_member(db, project_id, employee_id)
        anchor = self._require_anchor(db, project_id)
        today = self.today()

        if not self._shift_active(db, employee_id, project_id):
            logger.debug(
                "No active shift, challenges not created",
                extra={'extra_data': {'user_id': employee_id, 'project_id': project_id}}
            )
            rows = self.challenge_repo.list_for_day(db, employee_id, project_id, today)
            return [Challenge.model_validate(row) for row in rows]

        challenges = []
        for slot in SLOTS:
            row = self.challenge_repo.get_slot(db, employee_id, project_id, today, slot)
            if row is None:
                row = self._create(db, employee_id, anchor, today, slot, None)
            challenges.append(Challenge.model_validate(row))
        return challenges

    def create_challenge(
        self,
        db: Session,
        employee_id: int,
        project_id: Optional[int],
        slot: int,
        fired_at: Optional[datetime] = None
    ) -> Optional[Challenge]:
        """
        Create one of today's slots on demand

        Gated like ensure_today_challenges. An existing slot is returned
        unchanged; without an open shift the existing slot or None is returned.
        """
        project_id = self._require_project(project_id)
        slot = self._require_slot(slot)
        self._require_member(db, project_id, employee_id)
        anchor = self._require_anchor(db, project_id)
        today = self.today()
        fired_at = self._check_fire_time(today, fired_at)

        row = self.challenge_repo.get_slot(db, employee_id, project_id, today, slot)
        if row is None and self._shift_active(db, employee_id, project_id):
            row = self._create(db, employee_id, anchor, today, slot, fired_at)
        return Challenge.model_validate(row) if row is not None else None

    def replace_fire_time(
        self,
        db: Session,
        employee_id: int,
        project_id: Optional[int],
        slot: int,
        fired_at: Optional[datetime] = None
    ) -> Challenge:
        """
        Force a new fire time for one of today's slots

        Creates the slot when absent. The responded flag is never touched.

        Raises:
            NoActiveShiftException: No open shift today
        """
        project_id = self._require_project(project_id)
        slot = self._require_slot(slot)
        self._require_member(db, project_id, employee_id)
        anchor = self._require_anchor(db, project_id)
        today = self.today()
        fired_at = self._check_fire_time(today, fired_at)

        if not self._shift_active(db, employee_id, project_id):
            raise NoActiveShiftException()

        if fired_at is None:
            fired_at = self.picker.pick(*self.slot_window(today, slot))

        row = self.challenge_repo.get_slot(db, employee_id, project_id, today, slot)
        if row is None:
            row = self._create(db, employee_id, anchor, today, slot, fired_at)
        else:
            row = self.challenge_repo.replace_fire_time(db, row, fired_at)
            logger.info(
                "Challenge fire time replaced",
                extra={'extra_data': {
                    'challenge_id': row.pc_id,
                    'slot': slot,
                    'fired_at': fired_at.isoformat()
                }}
            )
        return Challenge.model_validate(row)

    # ==================== HELPERS ====================

    def _check_fire_time(self, today: date, fired_at: Optional[datetime]) -> Optional[datetime]:
        if fired_at is None:
            return None
        fired_at = ensure_utc(fired_at)
        if local_date(fired_at, self.tz) != today:
            raise InvalidInputException("invalid_fire_time", "fired_at must fall on today's local date")
        return fired_at

    def _create(
        self,
        db: Session,
        employee_id: int,
        anchor: SiteAnchor,
        today: date,
        slot: int,
        fired_at: Optional[datetime]
    ):
        if fired_at is None:
            fired_at = self.picker.pick(*self.slot_window(today, slot))
        radius_m = anchor.radius_m if anchor.radius_m is not None else settings.DEFAULT_GEOFENCE_RADIUS_M

        row = self.challenge_repo.insert_if_absent(db, {
            "pc_user_id": employee_id,
            "pc_project_id": anchor.project_id,
            "pc_site_lat": anchor.lat,
            "pc_site_lng": anchor.lng,
            "pc_radius_m": radius_m,
            "pc_date": today,
            "pc_slot": slot,
            "pc_fired_at": fired_at,
            "pc_responded": False
        })
        logger.info(
            "Challenge scheduled",
            extra={'extra_data': {
                'challenge_id': row.pc_id,
                'user_id': employee_id,
                'project_id': anchor.project_id,
                'slot': slot,
                'date': today.isoformat()
            }}
        )
        return row
