"""
Attendance Event Repository - Read access to the attendance ledger
"""
from typing import List, Optional
from datetime import datetime
from sqlalchemy.orm import Session

from atams.db import BaseRepository
from app.models.attendance_event import AttendanceEvent


class AttendanceEventRepository(BaseRepository[AttendanceEvent]):
    def __init__(self):
        super().__init__(AttendanceEvent)

    def get_events_in_range(
        self,
        db: Session,
        user_id: int,
        start: datetime,
        end: datetime,
        project_id: Optional[int] = None
    ) -> List[AttendanceEvent]:
        """Events in [start, end) in ledger order (occurred_at, then insertion) using ORM"""
        query = db.query(AttendanceEvent).filter(
            AttendanceEvent.ae_user_id == user_id,
            AttendanceEvent.ae_occurred_at >= start,
            AttendanceEvent.ae_occurred_at < end
        )

        if project_id is not None:
            query = query.filter(AttendanceEvent.ae_project_id == project_id)

        return query.order_by(
            AttendanceEvent.ae_occurred_at.asc(),
            AttendanceEvent.ae_id.asc()
        ).all()

    def get_latest_event_before(
        self,
        db: Session,
        user_id: int,
        before: datetime,
        project_id: Optional[int] = None
    ) -> Optional[AttendanceEvent]:
        """Last event strictly before an instant, in ledger order, using ORM"""
        query = db.query(AttendanceEvent).filter(
            AttendanceEvent.ae_user_id == user_id,
            AttendanceEvent.ae_occurred_at < before
        )

        if project_id is not None:
            query = query.filter(AttendanceEvent.ae_project_id == project_id)

        return query.order_by(
            AttendanceEvent.ae_occurred_at.desc(),
            AttendanceEvent.ae_id.desc()
        ).first()

    def get_latest_event(
        self,
        db: Session,
        user_id: int,
        project_id: int
    ) -> Optional[AttendanceEvent]:
        """Chronologically latest event for (user, project) using ORM"""
        return db.query(AttendanceEvent).filter(
            AttendanceEvent.ae_user_id == user_id,
            AttendanceEvent.ae_project_id == project_id
        ).order_by(
            AttendanceEvent.ae_occurred_at.desc(),
            AttendanceEvent.ae_id.desc()
        ).first()

    def get_occurrence_times(
        self,
        db: Session,
        user_id: int,
        project_id: Optional[int] = None
    ) -> List[datetime]:
        """All event instants of a user, newest first"""
        query = db.query(AttendanceEvent.ae_occurred_at).filter(
            AttendanceEvent.ae_user_id == user_id
        )

        if project_id is not None:
            query = query.filter(AttendanceEvent.ae_project_id == project_id)

        return [row[0] for row in query.order_by(AttendanceEvent.ae_occurred_at.desc()).all()]

    def get_project_occurrence_times(self, db: Session, project_id: int) -> List[datetime]:
        """All event instants recorded on a project, newest first"""
        rows = db.query(AttendanceEvent.ae_occurred_at).filter(
            AttendanceEvent.ae_project_id == project_id
        ).order_by(AttendanceEvent.ae_occurred_at.desc()).all()
        return [row[0] for row in rows]
