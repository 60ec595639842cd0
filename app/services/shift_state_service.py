"""
Shift State Service - cheap "is a shift open today" check

Looks only at the latest event for (employee, project). This can differ
from full session reconstruction: a stale ENTER without EXIT counts as
active only when it happened today. That trade-off is accepted.
"""
from typing import Optional
from sqlalchemy.orm import Session

from app.core.clock import Clock, utcnow, ensure_utc, local_date, resolve_timezone
from app.core.config import settings
from app.models.attendance_event import ACTION_ENTER
from app.repositories.attendance_event_repository import AttendanceEventRepository
from app.schemas.presence import ShiftState


class ShiftStateService:
    def __init__(self, clock: Clock = utcnow) -> None:
        self.event_repo = AttendanceEventRepository()
        self.clock = clock

    def get_shift_state(
        self,
        db: Session,
        employee_id: int,
        project_id: int,
        tz_name: Optional[str] = None
    ) -> ShiftState:
        """Active iff the latest event is ENTER and its local date is today"""
        tz = resolve_timezone(tz_name, settings.DEFAULT_TIMEZONE)
        today = local_date(self.clock(), tz)
        latest = self.event_repo.get_latest_event(db, employee_id, project_id)

        if latest is None:
            return ShiftState(employee_id=employee_id, project_id=project_id, active=False, local_date=today)

        occurred_at = ensure_utc(latest.ae_occurred_at)
        action = (latest.ae_action or "").lower()
        active = action == ACTION_ENTER and local_date(occurred_at, tz) == today

        return ShiftState(
            employee_id=employee_id,
            project_id=project_id,
            active=active,
            local_date=today,
            last_action=action if action in ("enter", "exit") else None,
            last_occurred_at=occurred_at
        )

    def is_shift_active(self, db: Session, employee_id: int, project_id: int) -> bool:
        return self.get_shift_state(db, employee_id, project_id).active
