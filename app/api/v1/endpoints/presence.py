"""
Presence Endpoints - shift state, daily challenges and responses
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from app.db.session import get_db
from app.services.shift_state_service import ShiftStateService
from app.services.challenge_service import ChallengeService
from app.services.adjudication_service import AdjudicationService
from app.schemas import (
    ShiftState,
    Challenge,
    ChallengeCreateRequest,
    FireTimeReplaceRequest,
    ChallengeRespondRequest,
    AdjudicationResult,
    DataResponse
)
from app.api.deps import require_auth, require_min_role_level
from app.core.config import settings
from app.core.exceptions import InvalidInputException, NoActiveShiftException
from atams.encryption import encrypt_response_data
from atams.exceptions import NotFoundException, UnprocessableEntityException

router = APIRouter()
shift_state_service = ShiftStateService()
challenge_service = ChallengeService(shift_state=shift_state_service)
adjudication_service = AdjudicationService()


@router.get(
    "/shift",
    response_model=DataResponse[ShiftState],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(settings.MEMBER_MIN_ROLE_LEVEL))]
)
async def get_my_shift_state(
    project_id: Optional[int] = Query(None, description="Project ID"),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Get whether the current user has a shift open today on a project

    **Rule:**
    - Active iff the latest event is a clock-in dated today (local)
    """
    if project_id is None:
        raise InvalidInputException("project_required", "project_id is required")

    state = shift_state_service.get_shift_state(db, current_user["user_id"], project_id)

    response = DataResponse(
        success=True,
        message="Shift state retrieved successfully",
        data=state
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/challenges/today",
    response_model=DataResponse[List[Challenge]],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(settings.MEMBER_MIN_ROLE_LEVEL))]
)
async def list_today_challenges(
    project_id: Optional[int] = Query(None, description="Project ID"),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    List today's challenges of the current user (read-only)
    """
    challenges = challenge_service.list_today_challenges(db, current_user["user_id"], project_id)

    response = DataResponse(
        success=True,
        message="Challenges retrieved successfully",
        data=challenges
    )

    return encrypt_response_data(response, settings)


@router.post(
    "/challenges/today",
    response_model=DataResponse[List[Challenge]],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(settings.MEMBER_MIN_ROLE_LEVEL))]
)
async def ensure_today_challenges(
    project_id: Optional[int] = Query(None, description="Project ID"),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Ensure both of today's challenges exist (idempotent)

    **Process:**
    1. Membership and site anchor checks
    2. Shift must be open today, otherwise nothing is created
    3. Missing slots get a random fire time inside their window

    **Errors:**
    - 400: project_id missing
    - 403: Not a project member
    - 404: Project not found
    - 422: Site location missing
    """
    challenges = challenge_service.ensure_today_challenges(db, current_user["user_id"], project_id)

    return DataResponse(
        success=True,
        message="Challenges ensured successfully",
        data=challenges
    )


@router.post(
    "/challenges",
    response_model=DataResponse[Challenge],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(settings.MEMBER_MIN_ROLE_LEVEL))]
)
async def create_challenge(
    request: ChallengeCreateRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Create one of today's slots on demand

    **Note:**
    - An existing slot is returned unchanged

    **Errors:**
    - 409: No active shift today and no existing slot
    """
    challenge = challenge_service.create_challenge(
        db, current_user["user_id"], request.project_id, request.slot, request.fired_at
    )
    if challenge is None:
        raise NoActiveShiftException("No active shift, challenge not created")

    return DataResponse(
        success=True,
        message="Challenge retrieved successfully",
        data=challenge
    )


@router.put(
    "/challenges/today/{slot}/fire-time",
    response_model=DataResponse[Challenge],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(settings.MEMBER_MIN_ROLE_LEVEL))]
)
async def replace_fire_time(
    slot: int,
    request: FireTimeReplaceRequest,
    project_id: Optional[int] = Query(None, description="Project ID"),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Force a new fire time for one of today's slots

    **Errors:**
    - 409: No active shift today
    """
    challenge = challenge_service.replace_fire_time(
        db, current_user["user_id"], project_id, slot, request.fired_at
    )

    return DataResponse(
        success=True,
        message="Challenge fire time replaced successfully",
        data=challenge
    )


@router.post(
    "/challenges/{challenge_id}/respond",
    response_model=DataResponse[AdjudicationResult],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(settings.MEMBER_MIN_ROLE_LEVEL))]
)
async def respond_to_challenge(
    challenge_id: int,
    request: ChallengeRespondRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Answer a challenge with the current location

    **Validation (stops at first failure):**
    1. Challenge exists and belongs to the caller
    2. Caller is a project member
    3. Before the slot deadline (slot 1: 12:00, slot 2: 17:00 local)
    4. Within the challenge radius of the site anchor

    **Errors:**
    - 404: not_found
    - 422: already_responded, not_project_member, expired, out_of_range
    """
    result = adjudication_service.respond_to_challenge(
        db, challenge_id, current_user["user_id"], request.lat, request.lng
    )

    if not result.accepted:
        details = {"reason": result.reason}
        if result.distance_m is not None:
            details["distance_m"] = round(result.distance_m, 1)
        if result.reason == "not_found":
            raise NotFoundException(result.message, details)
        raise UnprocessableEntityException(result.message, details)

    return DataResponse(
        success=True,
        message="Presence confirmed",
        data=result
    )
