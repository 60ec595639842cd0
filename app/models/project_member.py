"""
Project Member Model - Current occupants of a project
"""
from sqlalchemy import Column, BigInteger, SmallInteger, DateTime, ForeignKey
from sqlalchemy.sql import func
from atams.db import Base


class ProjectMember(Base):
    """Project member model for hris schema - Table: hris.project_members"""
    __tablename__ = "project_members"
    __table_args__ = {"schema": "hris"}

    pm_project_id = Column(BigInteger, ForeignKey("hris.project_sites.ps_project_id"), primary_key=True)
    pm_user_id = Column(BigInteger, primary_key=True, index=True)  # References pt_atams_indonesia.users(u_id)
    pm_role = Column(SmallInteger, nullable=False, default=0)  # 0=member, 1=manager
    pm_joined_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
