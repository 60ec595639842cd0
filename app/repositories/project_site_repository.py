"""
Project Site Repository - Read access to project site anchors
"""
from typing import List, Optional
from sqlalchemy.orm import Session

from atams.db import BaseRepository
from app.models.project_site import ProjectSite
from app.models.project_member import ProjectMember


class ProjectSiteRepository(BaseRepository[ProjectSite]):
    def __init__(self):
        super().__init__(ProjectSite)

    def get_by_id(self, db: Session, project_id: int) -> Optional[ProjectSite]:
        """Get project site by project ID using ORM"""
        return db.query(ProjectSite).filter(ProjectSite.ps_project_id == project_id).first()

    def is_member(self, db: Session, project_id: int, user_id: int) -> bool:
        """Check if user currently occupies the project"""
        return db.query(ProjectMember.pm_user_id).filter(
            ProjectMember.pm_project_id == project_id,
            ProjectMember.pm_user_id == user_id
        ).first() is not None

    def list_member_ids(self, db: Session, project_id: int) -> List[int]:
        """User IDs currently occupying the project, ascending"""
        rows = db.query(ProjectMember.pm_user_id).filter(
            ProjectMember.pm_project_id == project_id
        ).order_by(ProjectMember.pm_user_id.asc()).all()
        return [row[0] for row in rows]
