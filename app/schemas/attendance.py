"""
Attendance Schemas for ledger events and reconstructed sessions
"""
import re
from typing import List, Optional, Literal
from datetime import datetime, timezone
from pydantic import BaseModel


def _fix_datetime_timezone(v):
    """Fix datetime timezone format from PostgreSQL (naive values are UTC)"""
    if v == '' or v is None:
        return None

    if isinstance(v, datetime) and v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)

    if isinstance(v, str):
        pattern = r'([+-]\d{2})$'
        match = re.search(pattern, v)
        if match:
            v = v + ':00'

    return v


class WorkSession(BaseModel):
    """Derived clock-in/clock-out interval, never persisted"""
    employee_id: Optional[int] = None
    start: datetime
    end: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.end is None


class SessionAnomaly(BaseModel):
    """Irregularity met while reconstructing sessions"""
    kind: Literal["double_enter", "exit_before_entry", "orphan_exit", "zero_length", "open_at_end"]
    occurred_at: datetime
    employee_id: Optional[int] = None


class ReconstructionResult(BaseModel):
    sessions: List[WorkSession] = []
    anomalies: List[SessionAnomaly] = []

    @property
    def open_session(self) -> Optional[WorkSession]:
        if self.sessions and self.sessions[-1].is_open:
            return self.sessions[-1]
        return None
