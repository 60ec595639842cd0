"""
Presence Challenge Model - Scheduled proof-of-presence checks
"""
from sqlalchemy import (
    Column, BigInteger, Integer, SmallInteger, Boolean, Date, DateTime, Float, ForeignKey, UniqueConstraint
)
from sqlalchemy.sql import func, false
from atams.db import Base


class PresenceChallenge(Base):
    """Presence challenge model for hris schema - Table: hris.presence_challenges"""
    __tablename__ = "presence_challenges"
    __table_args__ = (
        UniqueConstraint(
            "pc_user_id", "pc_project_id", "pc_date", "pc_slot",
            name="ux_presence_challenges_user_project_date_slot",
        ),
        {"schema": "hris"},
    )

    pc_id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True, autoincrement=True)
    pc_user_id = Column(BigInteger, nullable=False, index=True)  # References pt_atams_indonesia.users(u_id)
    pc_project_id = Column(BigInteger, ForeignKey("hris.project_sites.ps_project_id"), nullable=False, index=True)
    pc_site_lat = Column(Float, nullable=False)
    pc_site_lng = Column(Float, nullable=False)
    pc_radius_m = Column(Integer, nullable=False)
    pc_date = Column(Date, nullable=False)  # Local calendar date of the challenge
    pc_slot = Column(SmallInteger, nullable=False)  # 1 (morning) or 2 (afternoon)
    pc_fired_at = Column(DateTime(timezone=True), nullable=False)
    pc_responded = Column(Boolean, nullable=False, default=False, server_default=false())
    pc_responded_at = Column(DateTime(timezone=True), nullable=True)
    pc_created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    pc_updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)
