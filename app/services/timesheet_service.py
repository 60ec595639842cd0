"""
Timesheet Service - monthly timesheets built from reconstructed sessions
"""
from typing import Dict, List, Optional, Tuple
from datetime import datetime, timedelta, timezone, time
from zoneinfo import ZoneInfo
from sqlalchemy.orm import Session

from atams.exceptions import NotFoundException
from atams.logging import get_logger
from app.core.clock import Clock, utcnow, ensure_utc, parse_month, resolve_timezone
from app.core.config import settings
from app.core.counters import AnomalyCounter
from app.models.attendance_event import ACTION_ENTER
from app.repositories.attendance_event_repository import AttendanceEventRepository
from app.repositories.project_site_repository import ProjectSiteRepository
from app.schemas.attendance import WorkSession
from app.schemas.timesheet import DayTimesheet, MonthTimesheet
from app.services.session_reconstructor import reconstruct_sessions, clip_sessions

logger = get_logger(__name__)

DAYS_PER_SHEET = 31


def month_window(year: int, month: int, tz: ZoneInfo) -> Tuple[datetime, datetime]:
    """UTC bounds of [local midnight on day 1, local midnight on day 1 of next month)"""
    next_year, next_month = (year + 1, 1) if month == 12 else (year, month + 1)
    start = datetime(year, month, 1, tzinfo=tz).astimezone(timezone.utc)
    end = datetime(next_year, next_month, 1, tzinfo=tz).astimezone(timezone.utc)
    return start, end


def split_by_local_day(start: datetime, end: datetime, tz: ZoneInfo) -> List[Tuple[datetime, datetime, bool]]:
    """
    Cut [start, end) at every local midnight.

    Returns (piece_start, piece_end, ends_at_midnight) tuples. Midnights are
    computed in the zone, so DST days are 23 or 25 hours long.
    """
    pieces = []
    cursor = start
    while cursor < end:
        local_day = cursor.astimezone(tz).date()
        midnight = datetime.combine(local_day + timedelta(days=1), time(0), tzinfo=tz).astimezone(timezone.utc)
        piece_end = min(end, midnight)
        pieces.append((cursor, piece_end, piece_end == midnight))
        cursor = piece_end
    return pieces


def aggregate_month(
    employee_id: int,
    year: int,
    month: int,
    tz: ZoneInfo,
    sessions: List[WorkSession],
    now: datetime,
    project_id: Optional[int] = None
) -> MonthTimesheet:
    """
    Aggregate sessions into a 31-slot month sheet for the local calendar of ``tz``.

    Sessions are clipped to the month window; an open session runs until
    ``now`` or the month end, whichever comes first. Each day reports the
    whole minutes of its own seconds and the month total is their sum.
    """
    window_start, window_end = month_window(year, month, tz)
    open_until = min(ensure_utc(now), window_end)

    seconds: Dict[int, float] = {}
    first_start: Dict[int, datetime] = {}
    last_end: Dict[int, Tuple[datetime, bool]] = {}

    for start, end in clip_sessions(sessions, window_start, window_end, open_until):
        for piece_start, piece_end, at_midnight in split_by_local_day(start, end, tz):
            day = piece_start.astimezone(tz).day
            seconds[day] = seconds.get(day, 0.0) + (piece_end - piece_start).total_seconds()
            if day not in first_start or piece_start < first_start[day]:
                first_start[day] = piece_start
            if day not in last_end or piece_end > last_end[day][0]:
                last_end[day] = (piece_end, at_midnight)

    days = []
    for day in range(1, DAYS_PER_SHEET + 1):
        minutes = int(seconds.get(day, 0.0) // 60)

        start = first_start.get(day)
        end, end_at_midnight = last_end.get(day, (None, False))
        days.append(DayTimesheet(
            day=day,
            first_start=start,
            last_end=end,
            first_start_local=start.astimezone(tz).strftime("%H:%M") if start else None,
            last_end_local=("24:00" if end_at_midnight else end.astimezone(tz).strftime("%H:%M")) if end else None,
            minutes=minutes
        ))

    return MonthTimesheet(
        employee_id=employee_id,
        project_id=project_id,
        month=f"{year:04d}-{month:02d}",
        timezone=tz.key,
        days=days,
        total_minutes=sum(d.minutes for d in days)
    )


class TimesheetService:
    def __init__(self, clock: Clock = utcnow, counter: Optional[AnomalyCounter] = None) -> None:
        self.event_repo = AttendanceEventRepository()
        self.site_repo = ProjectSiteRepository()
        self.clock = clock
        self.counter = counter or AnomalyCounter()

    def get_month_timesheet(
        self,
        db: Session,
        employee_id: int,
        month: str,
        tz_name: Optional[str] = None,
        project_id: Optional[int] = None
    ) -> MonthTimesheet:
        """
        Build the month timesheet of an employee

        Args:
            db: Database session
            employee_id: Employee to report on
            month: "YYYY-MM"
            tz_name: IANA timezone (default DEFAULT_TIMEZONE)
            project_id: Optional project scope

        Returns:
            MonthTimesheet: 31 day slots; all zero when there are no events

        Raises:
            InvalidInputException: Malformed month or unknown timezone
        """
        year, month_number = parse_month(month)
        tz = resolve_timezone(tz_name, settings.DEFAULT_TIMEZONE)
        return self._build(db, employee_id, year, month_number, tz, project_id, self.clock())

    def get_project_timesheets(
        self,
        db: Session,
        project_id: int,
        month: str,
        tz_name: Optional[str] = None,
        include_empty: bool = False
    ) -> List[MonthTimesheet]:
        """
        Month timesheets of every current project member, scoped to the project

        Members without minutes are left out unless ``include_empty`` is set.

        Raises:
            InvalidInputException: Malformed month or unknown timezone
            NotFoundException: Unknown project
        """
        year, month_number = parse_month(month)
        tz = resolve_timezone(tz_name, settings.DEFAULT_TIMEZONE)
        if self.site_repo.get_by_id(db, project_id) is None:
            raise NotFoundException("Project not found", {"reason": "project_not_found"})

        now = self.clock()
        sheets = []
        for member_id in self.site_repo.list_member_ids(db, project_id):
            sheet = self._build(db, member_id, year, month_number, tz, project_id, now)
            if sheet.total_minutes > 0 or include_empty:
                sheets.append(sheet)

        logger.info(
            "Project timesheets built",
            extra={'extra_data': {
                'project_id': project_id,
                'month': month,
                'sheets': len(sheets)
            }}
        )
        return sheets

    def list_available_months(
        self,
        db: Session,
        employee_id: int,
        project_id: Optional[int] = None,
        tz_name: Optional[str] = None
    ) -> List[str]:
        """Local months ("YYYY-MM") holding at least one event, newest first"""
        tz = resolve_timezone(tz_name, settings.DEFAULT_TIMEZONE)
        return _local_months(self.event_repo.get_occurrence_times(db, employee_id, project_id), tz)

    def list_project_months(
        self,
        db: Session,
        project_id: int,
        tz_name: Optional[str] = None
    ) -> List[str]:
        """Local months with at least one event on the project by anyone, newest first"""
        tz = resolve_timezone(tz_name, settings.DEFAULT_TIMEZONE)
        return _local_months(self.event_repo.get_project_occurrence_times(db, project_id), tz)

    def anomaly_counts(self) -> Dict[str, int]:
        """Anomalies met while reconstructing, per kind, since start-up"""
        return self.counter.snapshot()

    def _build(
        self,
        db: Session,
        employee_id: int,
        year: int,
        month: int,
        tz: ZoneInfo,
        project_id: Optional[int],
        now: datetime
    ) -> MonthTimesheet:
        window_start, window_end = month_window(year, month, tz)

        events = self.event_repo.get_events_in_range(db, employee_id, window_start, window_end, project_id)
        # A session still open at the month start began with the last earlier event
        carried = self.event_repo.get_latest_event_before(db, employee_id, window_start, project_id)
        if carried is not None and (carried.ae_action or "").lower() == ACTION_ENTER:
            events = [carried] + list(events)

        result = reconstruct_sessions(events, employee_id=employee_id, counter=self.counter)
        return aggregate_month(employee_id, year, month, tz, result.sessions, now, project_id)


def _local_months(instants: List[datetime], tz: ZoneInfo) -> List[str]:
    months = {ensure_utc(instant).astimezone(tz).strftime("%Y-%m") for instant in instants}
    return sorted(months, reverse=True)
