"""
Project Site Model - Site anchor of a project's geofence
"""
from sqlalchemy import Column, BigInteger, String, DateTime, Float, Integer
from sqlalchemy.sql import func
from atams.db import Base


class ProjectSite(Base):
    """Project site model for hris schema - Table: hris.project_sites

    Read-only projection of the project registry.
    """
    __tablename__ = "project_sites"
    __table_args__ = {"schema": "hris"}

    ps_project_id = Column(BigInteger, primary_key=True, index=True, autoincrement=False)
    ps_name = Column(String(255), nullable=False)
    ps_lat = Column(Float, nullable=True)  # Anchor latitude
    ps_lng = Column(Float, nullable=True)  # Anchor longitude
    ps_radius_m = Column(Integer, nullable=True)  # Falls back to DEFAULT_GEOFENCE_RADIUS_M
    ps_created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    ps_updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)
