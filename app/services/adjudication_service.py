"""
Adjudication Service - accepts or rejects proof-of-presence responses
"""
import math
from typing import Optional, Tuple
from sqlalchemy.orm import Session

from app.core.clock import Clock, utcnow, local_wall_clock, resolve_timezone
from app.core.config import settings
from app.core.exceptions import InvalidInputException
from app.models.presence_challenge import PresenceChallenge
from app.repositories.project_site_repository import ProjectSiteRepository
from app.repositories.presence_challenge_repository import PresenceChallengeRepository
from app.schemas.presence import AdjudicationResult
from atams.logging import get_logger

logger = get_logger(__name__)

EARTH_RADIUS_M = 6371000  # Earth's radius in meters

REJECTION_MESSAGES = {
    "not_found": "Challenge not found",
    "already_responded": "Challenge already answered",
    "not_project_member": "Not a member of this project",
    "expired": "Slot has expired",
    "out_of_range": "Outside of site geofence",
}


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two coordinates using Haversine formula

    Returns:
        float: Distance in meters
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) *
         math.sin(delta_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


class AdjudicationService:
    def __init__(self, clock: Clock = utcnow) -> None:
        self.site_repo = ProjectSiteRepository()
        self.challenge_repo = PresenceChallengeRepository()
        self.clock = clock

    def _anchor_for(self, db: Session, challenge: PresenceChallenge) -> Tuple[float, float]:
        site = self.site_repo.get_by_id(db, challenge.pc_project_id)
        if site is not None and site.ps_lat is not None and site.ps_lng is not None:
            return site.ps_lat, site.ps_lng
        # Registry lost the anchor; use the one stamped at scheduling time
        return challenge.pc_site_lat, challenge.pc_site_lng

    def _reject(self, challenge_id: int, reason: str, distance_m: Optional[float] = None) -> AdjudicationResult:
        logger.warning(
            "Challenge response rejected",
            extra={'extra_data': {
                'challenge_id': challenge_id,
                'reason': reason,
                'distance_m': round(distance_m, 1) if distance_m is not None else None
            }}
        )
        return AdjudicationResult(
            challenge_id=challenge_id,
            accepted=False,
            reason=reason,
            message=REJECTION_MESSAGES[reason],
            distance_m=distance_m
        )

    def respond_to_challenge(
        self,
        db: Session,
        challenge_id: int,
        employee_id: int,
        lat: float,
        lng: float
    ) -> AdjudicationResult:
        """
        Validate a response and mark the challenge as answered

        Checks stop at the first failure: ownership, membership, deadline,
        distance. A failed check changes nothing, so the employee may retry
        until the deadline. Success is terminal.

        Args:
            db: Database session
            challenge_id: Challenge being answered
            employee_id: Responder from auth
            lat: Reported latitude
            lng: Reported longitude

        Returns:
            AdjudicationResult: accepted, or rejected with a reason

        Raises:
            InvalidInputException: Coordinates out of range
        """
        if not (-90 <= lat <= 90 and -180 <= lng <= 180):
            raise InvalidInputException("invalid_coordinates", "Coordinates out of range")

        # 1. Existence and ownership
        challenge = self.challenge_repo.get(db, challenge_id)
        if challenge is None or challenge.pc_user_id != employee_id:
            return self._reject(challenge_id, "not_found")
        if challenge.pc_responded:
            return self._reject(challenge_id, "already_responded")

        # 2. Membership
        if not self.site_repo.is_member(db, challenge.pc_project_id, employee_id):
            return self._reject(challenge_id, "not_project_member")

        # 3. Fixed wall-clock deadline of the slot
        now = self.clock()
        tz = resolve_timezone(None, settings.DEFAULT_TIMEZONE)
        deadline = local_wall_clock(challenge.pc_date, settings.slot_deadline(challenge.pc_slot), tz)
        if now >= deadline:
            return self._reject(challenge_id, "expired")

        # 4. Distance from the site anchor
        anchor_lat, anchor_lng = self._anchor_for(db, challenge)
        distance = haversine_m(anchor_lat, anchor_lng, lat, lng)
        if distance > challenge.pc_radius_m:
            return self._reject(challenge_id, "out_of_range", distance)

        # Conditional flip; a concurrent double submit loses here
        if not self.challenge_repo.mark_responded(db, challenge_id, now):
            return self._reject(challenge_id, "already_responded", distance)

        logger.info(
            "Challenge response accepted",
            extra={'extra_data': {
                'challenge_id': challenge_id,
                'user_id': employee_id,
                'distance_m': round(distance, 1)
            }}
        )
        return AdjudicationResult(
            challenge_id=challenge_id,
            accepted=True,
            message="Presence confirmed",
            distance_m=distance,
            responded_at=now
        )
