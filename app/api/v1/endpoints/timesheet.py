"""
Timesheet Endpoints - monthly timesheets and available months
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from app.db.session import get_db
from app.services.timesheet_service import TimesheetService
from app.schemas import MonthTimesheet, AvailableMonthsResponse, AnomalyCountsResponse, DataResponse
from app.api.deps import require_auth, require_min_role_level
from app.core.config import settings
from atams.encryption import encrypt_response_data

router = APIRouter()
timesheet_service = TimesheetService()


@router.get(
    "/me",
    response_model=DataResponse[MonthTimesheet],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(settings.MEMBER_MIN_ROLE_LEVEL))]
)
async def get_my_timesheet(
    month: str = Query(..., description="Month in YYYY-MM format"),
    tz: Optional[str] = Query(None, description="IANA timezone (default: DEFAULT_TIMEZONE)"),
    project_id: Optional[int] = Query(None, description="Restrict to one project"),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Get current user's timesheet for a month

    **Authentication:**
    - Requires valid user authentication

    **Response:**
    - 31 day entries (days past the month's end are zero)
    - First start / last end per day, in UTC and local HH:MM
    - Total minutes for the month

    **Errors:**
    - 400: Invalid month or timezone
    """
    user_id = current_user["user_id"]

    sheet = timesheet_service.get_month_timesheet(db, user_id, month, tz, project_id)

    response = DataResponse(
        success=True,
        message="Timesheet retrieved successfully",
        data=sheet
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/me/months",
    response_model=DataResponse[AvailableMonthsResponse],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(settings.MEMBER_MIN_ROLE_LEVEL))]
)
async def get_my_months(
    tz: Optional[str] = Query(None, description="IANA timezone (default: DEFAULT_TIMEZONE)"),
    project_id: Optional[int] = Query(None, description="Restrict to one project"),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Get months with attendance data for the current user, newest first
    """
    user_id = current_user["user_id"]

    months = timesheet_service.list_available_months(db, user_id, project_id, tz)

    response = DataResponse(
        success=True,
        message="Months retrieved successfully",
        data=AvailableMonthsResponse(months=months)
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/users/{user_id}",
    response_model=DataResponse[MonthTimesheet],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(settings.ADMIN_MIN_ROLE_LEVEL))]
)
async def get_user_timesheet(
    user_id: int,
    month: str = Query(..., description="Month in YYYY-MM format"),
    tz: Optional[str] = Query(None, description="IANA timezone (default: DEFAULT_TIMEZONE)"),
    project_id: Optional[int] = Query(None, description="Restrict to one project"),
    db: Session = Depends(get_db)
):
    """
    Get any employee's timesheet for a month (Admin only)

    **Authentication:**
    - Requires role level >= ADMIN_MIN_ROLE_LEVEL
    """
    sheet = timesheet_service.get_month_timesheet(db, user_id, month, tz, project_id)

    response = DataResponse(
        success=True,
        message="Timesheet retrieved successfully",
        data=sheet
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/users/{user_id}/months",
    response_model=DataResponse[AvailableMonthsResponse],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(settings.ADMIN_MIN_ROLE_LEVEL))]
)
async def get_user_months(
    user_id: int,
    tz: Optional[str] = Query(None, description="IANA timezone (default: DEFAULT_TIMEZONE)"),
    project_id: Optional[int] = Query(None, description="Restrict to one project"),
    db: Session = Depends(get_db)
):
    """
    Get months with attendance data for any employee (Admin only)
    """
    months = timesheet_service.list_available_months(db, user_id, project_id, tz)

    response = DataResponse(
        success=True,
        message="Months retrieved successfully",
        data=AvailableMonthsResponse(months=months)
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/projects/{project_id}",
    response_model=DataResponse[List[MonthTimesheet]],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(settings.ADMIN_MIN_ROLE_LEVEL))]
)
async def get_project_timesheets(
    project_id: int,
    month: str = Query(..., description="Month in YYYY-MM format"),
    tz: Optional[str] = Query(None, description="IANA timezone (default: DEFAULT_TIMEZONE)"),
    include_empty: bool = Query(False, description="Also list members without minutes"),
    db: Session = Depends(get_db)
):
    """
    Get the month timesheets of every project member (Admin only)

    **Response:**
    - One timesheet per current member, ordered by user ID
    - Only project events count

    **Errors:**
    - 400: Invalid month or timezone
    - 404: Project not found
    """
    sheets = timesheet_service.get_project_timesheets(db, project_id, month, tz, include_empty)

    response = DataResponse(
        success=True,
        message="Timesheets retrieved successfully",
        data=sheets
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/projects/{project_id}/months",
    response_model=DataResponse[AvailableMonthsResponse],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(settings.ADMIN_MIN_ROLE_LEVEL))]
)
async def get_project_months(
    project_id: int,
    tz: Optional[str] = Query(None, description="IANA timezone (default: DEFAULT_TIMEZONE)"),
    db: Session = Depends(get_db)
):
    """
    Get months with attendance data on a project, newest first (Admin only)
    """
    months = timesheet_service.list_project_months(db, project_id, tz)

    response = DataResponse(
        success=True,
        message="Months retrieved successfully",
        data=AvailableMonthsResponse(months=months)
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/anomalies",
    response_model=DataResponse[AnomalyCountsResponse],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(settings.ADMIN_MIN_ROLE_LEVEL))]
)
async def get_anomaly_counts():
    """
    Get counts of irregular event sequences met while building timesheets (Admin only)

    Counts are per process and reset on restart.
    """
    response = DataResponse(
        success=True,
        message="Anomaly counts retrieved successfully",
        data=AnomalyCountsResponse(counts=timesheet_service.anomaly_counts())
    )

    return encrypt_response_data(response, settings)
