"""
Admin Verification Endpoints - Records, dashboard stats, re-verification and review
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.core.config import settings
from app.services.verification_service import VerificationService
from app.schemas import (
    AdminVerificationView,
    ReverificationResponse,
    ReviewRequest,
    ReviewResponse,
    VerificationStats,
    DataResponse,
    PaginationResponse,
)
from app.api.deps import require_auth, require_min_role_level, get_verification_service
from atams.encryption import encrypt_response_data

router = APIRouter()


@router.get(
    "/",
    response_model=PaginationResponse[AdminVerificationView],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def list_verifications(
    employee_id: Optional[int] = Query(None, description="Filter by employee ID"),
    verification_status: Optional[str] = Query(None, alias="status", description="Filter by lifecycle status"),
    internal_flag: Optional[str] = Query(None, description="Filter by risk tier: VERIFIED, REVIEW, FLAGGED"),
    distance_flagged: Optional[bool] = Query(None, description="Filter by distance threshold flag"),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum records to return"),
    sort: str = Query("desc", pattern="^(asc|desc)$", description="Sort by creation time"),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth),
    service: VerificationService = Depends(get_verification_service)
):
    """
    Get verification records with filters and pagination

    **Authorization:**
    - Requires role level >= 50 (Admin or above)
    """
    filters = {
        "employee_id": employee_id,
        "status": verification_status,
        "internal_flag": internal_flag,
        "distance_flagged": distance_flagged,
    }
    records = service.list_records_admin(db, skip=skip, limit=limit, sort=sort, **filters)
    total = service.count_records_admin(db, **filters)

    response = PaginationResponse(
        success=True,
        message="Verifications retrieved successfully",
        data=records,
        total=total,
        page=skip // limit + 1,
        size=limit,
        pages=(total + limit - 1) // limit
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/stats",
    response_model=DataResponse[VerificationStats],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def get_verification_stats(
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth),
    service: VerificationService = Depends(get_verification_service)
):
    """
    Dashboard counts per lifecycle status

    **Authorization:**
    - Requires role level >= 50 (Admin or above)
    """
    response = DataResponse(
        success=True,
        message="Verification stats retrieved successfully",
        data=service.get_status_counts(db)
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/{av_id}",
    response_model=DataResponse[AdminVerificationView],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def get_verification(
    av_id: int,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth),
    service: VerificationService = Depends(get_verification_service)
):
    """
    Get single verification record, including the internal risk tier

    **Authorization:**
    - Requires role level >= 50 (Admin or above)
    """
    response = DataResponse(
        success=True,
        message="Verification retrieved successfully",
        data=service.get_record_admin(db, av_id)
    )

    return encrypt_response_data(response, settings)


@router.post(
    "/{av_id}/reverify",
    response_model=DataResponse[ReverificationResponse],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def request_reverification(
    av_id: int,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth),
    service: VerificationService = Depends(get_verification_service)
):
    """
    Require the employee to confirm their location again

    **Authorization:**
    - Requires role level >= 50 (Admin or above)
    """
    result = service.request_reverification(db, av_id, current_user["user_id"])

    return DataResponse(
        success=True,
        message="Re-verification requested successfully",
        data=result
    )


@router.post(
    "/{av_id}/review",
    response_model=DataResponse[ReviewResponse],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def review_verification(
    av_id: int,
    request: ReviewRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth),
    service: VerificationService = Depends(get_verification_service)
):
    """
    Approve or reject a GPS-confirmed verification

    **Authorization:**
    - Requires role level >= 50 (Admin or above)

    **Validation:**
    - decision: APPROVED or REJECTED (REJECTED marks the verification FAILED)
    """
    result = service.review(db, av_id, request.decision, request.notes, current_user["user_id"])

    return DataResponse(
        success=True,
        message=f"Verification {request.decision.lower()} successfully",
        data=result
    )
