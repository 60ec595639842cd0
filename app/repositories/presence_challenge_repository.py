"""
Presence Challenge Repository - Data access layer for proof-of-presence challenges
"""
from typing import Optional, List
from datetime import date, datetime
from sqlalchemy.orm import Session
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from atams.db import BaseRepository
from atams.logging import get_logger
from app.models.presence_challenge import PresenceChallenge

logger = get_logger(__name__)


class PresenceChallengeRepository(BaseRepository[PresenceChallenge]):
    def __init__(self):
        super().__init__(PresenceChallenge)

    def get_slot(
        self,
        db: Session,
        user_id: int,
        project_id: int,
        target_date: date,
        slot: int
    ) -> Optional[PresenceChallenge]:
        """Get the challenge occupying (user, project, date, slot) using ORM"""
        return db.query(PresenceChallenge).filter(
            PresenceChallenge.pc_user_id == user_id,
            PresenceChallenge.pc_project_id == project_id,
            PresenceChallenge.pc_date == target_date,
            PresenceChallenge.pc_slot == slot
        ).first()

    def list_for_day(
        self,
        db: Session,
        user_id: int,
        project_id: int,
        target_date: date
    ) -> List[PresenceChallenge]:
        """Get all challenges of a user for a project and day, ordered by slot"""
        return db.query(PresenceChallenge).filter(
            PresenceChallenge.pc_user_id == user_id,
            PresenceChallenge.pc_project_id == project_id,
            PresenceChallenge.pc_date == target_date
        ).order_by(PresenceChallenge.pc_slot.asc()).all()

    def insert_if_absent(self, db: Session, challenge_data: dict) -> PresenceChallenge:
        """
        Insert a challenge unless its slot is already taken.

        The unique constraint on (user, project, date, slot) is the only
        synchronization. A losing concurrent insert rolls back and the
        winning row is returned instead.
        """
        try:
            db_challenge = PresenceChallenge(**challenge_data)
            db.add(db_challenge)
            db.commit()
            db.refresh(db_challenge)
            return db_challenge
        except IntegrityError:
            db.rollback()
            winner = self.get_slot(
                db,
                challenge_data["pc_user_id"],
                challenge_data["pc_project_id"],
                challenge_data["pc_date"],
                challenge_data["pc_slot"]
            )
            if winner is None:
                # Violation of some other constraint, not a lost race
                raise
            logger.info(
                "Challenge slot already created by a concurrent request",
                extra={'extra_data': {
                    'user_id': challenge_data["pc_user_id"],
                    'project_id': challenge_data["pc_project_id"],
                    'date': str(challenge_data["pc_date"]),
                    'slot': challenge_data["pc_slot"]
                }}
            )
            return winner

    def replace_fire_time(
        self,
        db: Session,
        challenge: PresenceChallenge,
        fired_at: datetime
    ) -> PresenceChallenge:
        """Overwrite the fire time of an existing challenge"""
        return self.update(db, challenge, {"pc_fired_at": fired_at})

    def mark_responded(self, db: Session, challenge_id: int, responded_at: datetime) -> bool:
        """
        Flip responded false -> true in one conditional UPDATE.

        Returns False when another request already flipped it.
        """
        result = db.execute(
            update(PresenceChallenge)
            .where(
                PresenceChallenge.pc_id == challenge_id,
                PresenceChallenge.pc_responded.is_(False)
            )
            .values(pc_responded=True, pc_responded_at=responded_at)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        return result.rowcount == 1
