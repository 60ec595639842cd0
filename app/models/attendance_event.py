"""
Attendance Event Model - Append-only ledger of clock toggles
"""
from sqlalchemy import Column, BigInteger, Integer, String, DateTime, Float, ForeignKey, Index
from sqlalchemy.sql import func
from atams.db import Base

ACTION_ENTER = "enter"
ACTION_EXIT = "exit"


class AttendanceEvent(Base):
    """Attendance Event model for hris schema - Table: hris.attendance_events

    Written by the scan front door; read-only for this service.
    """
    __tablename__ = "attendance_events"
    __table_args__ = (
        Index("ix_attendance_events_user_occurred", "ae_user_id", "ae_occurred_at"),
        Index("ix_attendance_events_user_project_occurred", "ae_user_id", "ae_project_id", "ae_occurred_at"),
        {"schema": "hris"},
    )

    ae_id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True, autoincrement=True)
    ae_user_id = Column(BigInteger, nullable=False, index=True)  # References pt_atams_indonesia.users(u_id)
    ae_project_id = Column(BigInteger, ForeignKey("hris.project_sites.ps_project_id"), nullable=True, index=True)
    ae_action = Column(String(10), nullable=False)  # 'enter' or 'exit'
    ae_occurred_at = Column(DateTime(timezone=True), nullable=False)
    ae_lat = Column(Float, nullable=True)  # Latitude
    ae_lon = Column(Float, nullable=True)  # Longitude
    ae_created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
