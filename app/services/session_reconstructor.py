"""
Session Reconstructor - turns the toggle ledger into work sessions

Pure and stateless: the same events always give the same sessions, and
irregular sequences are reported as anomalies instead of raising.
"""
from typing import Iterable, List, Optional, Protocol, Tuple
from datetime import datetime

from atams.logging import get_logger
from app.core.clock import ensure_utc
from app.core.counters import AnomalyCounter
from app.models.attendance_event import ACTION_ENTER, ACTION_EXIT
from app.schemas.attendance import WorkSession, SessionAnomaly, ReconstructionResult

logger = get_logger(__name__)


class ToggleEvent(Protocol):
    ae_action: str
    ae_occurred_at: datetime


def reconstruct_sessions(
    events: Iterable[ToggleEvent],
    employee_id: Optional[int] = None,
    counter: Optional[AnomalyCounter] = None
) -> ReconstructionResult:
    """
    Rebuild sessions in one left-to-right scan holding at most one pending entry.

    Args:
        events: One employee's events; re-sorted stably by occurred_at
        employee_id: Stamped on sessions and anomalies
        counter: Optional counter incremented per anomaly kind

    Returns:
        ReconstructionResult: closed sessions in order, at most one trailing
        open session (end=None), and the anomalies met on the way
    """
    ordered = sorted(
        ((ensure_utc(e.ae_occurred_at), (e.ae_action or "").lower()) for e in events),
        key=lambda pair: pair[0]
    )

    sessions: List[WorkSession] = []
    anomalies: List[SessionAnomaly] = []
    pending: Optional[datetime] = None

    def flag(kind: str, at: datetime) -> None:
        anomalies.append(SessionAnomaly(kind=kind, occurred_at=at, employee_id=employee_id))

    for occurred_at, action in ordered:
        if action == ACTION_ENTER:
            if pending is not None:
                # Double entry: close at the new ENTER and reopen there
                flag("double_enter", occurred_at)
                if occurred_at > pending:
                    sessions.append(WorkSession(employee_id=employee_id, start=pending, end=occurred_at))
            pending = occurred_at
        elif action == ACTION_EXIT:
            if pending is None:
                flag("orphan_exit", occurred_at)
            elif occurred_at < pending:
                flag("exit_before_entry", occurred_at)
            elif occurred_at == pending:
                flag("zero_length", occurred_at)
                pending = None
            else:
                sessions.append(WorkSession(employee_id=employee_id, start=pending, end=occurred_at))
                pending = None

    if pending is not None:
        flag("open_at_end", pending)
        sessions.append(WorkSession(employee_id=employee_id, start=pending, end=None))

    if anomalies:
        _report(anomalies, employee_id, counter)

    return ReconstructionResult(sessions=sessions, anomalies=anomalies)


def clip_sessions(
    sessions: Iterable[WorkSession],
    window_start: datetime,
    window_end: datetime,
    open_until: Optional[datetime] = None
) -> List[Tuple[datetime, datetime]]:
    """
    Bound sessions to [window_start, window_end) for aggregation only.

    Open sessions run until ``open_until`` (default window_end). Empty
    intersections are dropped. The sessions themselves are left untouched.
    """
    window_start = ensure_utc(window_start)
    window_end = ensure_utc(window_end)
    open_until = ensure_utc(open_until) if open_until is not None else window_end

    clipped: List[Tuple[datetime, datetime]] = []
    for session in sessions:
        end = session.end if session.end is not None else open_until
        start = max(session.start, window_start)
        end = min(end, window_end)
        if end > start:
            clipped.append((start, end))
    return clipped


def _report(anomalies: List[SessionAnomaly], employee_id: Optional[int], counter: Optional[AnomalyCounter]) -> None:
    for anomaly in anomalies:
        if counter is not None:
            counter.increment(anomaly.kind)
        # open_at_end is the normal state of a running shift
        if anomaly.kind == "open_at_end":
            continue
        logger.warning(
            "Attendance sequence anomaly",
            extra={'extra_data': {
                'kind': anomaly.kind,
                'employee_id': employee_id,
                'occurred_at': anomaly.occurred_at.isoformat()
            }}
        )
