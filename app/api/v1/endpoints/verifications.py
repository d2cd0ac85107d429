"""
Verification Endpoints - Employee address submission and GPS confirmation
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.core.config import settings
from app.core.policy import VerificationPolicy
from app.services.evidence_service import EvidenceBundle, EvidenceFile
from app.services.verification_service import VerificationService
from app.schemas import (
    InspectionSubmission,
    AddressSubmitRequest,
    ConfirmLocationRequest,
    SubmissionResponse,
    ConfirmLocationResponse,
    WindowOptionsResponse,
    EmployeeVerificationView,
    DataResponse,
)
from app.api.deps import (
    require_auth,
    require_min_role_level,
    get_verification_policy,
    get_verification_service,
)
from atams.encryption import encrypt_response_data

router = APIRouter()


async def _read_upload(upload: Optional[UploadFile], max_bytes: int) -> Optional[EvidenceFile]:
    """
    Buffer one multipart file in memory; empty parts count as not sent

    Reads at most max_bytes + 1 bytes; a larger file still fails the
    evidence size check.
    """
    if upload is None or not upload.filename:
        return None
    content = await upload.read(max_bytes + 1)
    return EvidenceFile(
        filename=upload.filename,
        content_type=upload.content_type or "application/octet-stream",
        content=content,
    )


@router.get(
    "/window-options",
    response_model=DataResponse[WindowOptionsResponse],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def get_window_options(
    current_user: dict = Depends(require_auth),
    policy: VerificationPolicy = Depends(get_verification_policy),
    service: VerificationService = Depends(get_verification_service)
):
    """
    Selectable verification window slots and organization defaults

    **Authorization:**
    - Requires role level >= 1
    """
    response = DataResponse(
        success=True,
        message="Window options retrieved successfully",
        data=service.get_window_options(policy)
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/me",
    response_model=DataResponse[EmployeeVerificationView],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def get_my_verification(
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth),
    service: VerificationService = Depends(get_verification_service)
):
    """
    Get the current user's latest verification record

    **Authorization:**
    - Requires role level >= 1

    **Response:**
    - null data when nothing has been submitted yet
    """
    employee = service.get_employee_for_user(db, current_user["user_id"])
    record = service.get_my_latest(db, employee)

    response = DataResponse(
        success=True,
        message="Verification status retrieved successfully",
        data=record
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/me/history",
    response_model=DataResponse[List[EmployeeVerificationView]],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def get_my_history(
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth),
    service: VerificationService = Depends(get_verification_service)
):
    """
    Get the current user's verification history, newest first

    **Authorization:**
    - Requires role level >= 1
    """
    employee = service.get_employee_for_user(db, current_user["user_id"])
    records = service.get_my_history(db, employee)

    response = DataResponse(
        success=True,
        message="Verification history retrieved successfully",
        data=records
    )

    return encrypt_response_data(response, settings)


@router.post(
    "/me/address",
    response_model=DataResponse[SubmissionResponse],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def submit_address(
    request: AddressSubmitRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth),
    policy: VerificationPolicy = Depends(get_verification_policy),
    service: VerificationService = Depends(get_verification_service)
):
    """
    Submit a flat street/city/state/zip address with a verification window

    **Authorization:**
    - Requires role level >= 1

    **Validation:**
    - street, city, state, zip: required
    - windowStart, windowEnd: 30-minute slots between 22:00 and 04:00, end after start
    - Rejected with 409 once the address is verified
    """
    employee = service.get_employee_for_user(db, current_user["user_id"])
    result = await service.submit_address(db, employee, request, policy)

    return DataResponse(
        success=True,
        message="Address submitted successfully",
        data=result
    )


@router.post(
    "/me/inspection",
    response_model=DataResponse[SubmissionResponse],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def submit_inspection(
    full_address: Optional[str] = Form(None, alias="fullAddress"),
    landmark: Optional[str] = Form(None),
    city: Optional[str] = Form(None),
    lga: Optional[str] = Form(None),
    state: Optional[str] = Form(None),
    building_type: Optional[str] = Form(None, alias="buildingType"),
    building_purpose: Optional[str] = Form(None, alias="buildingPurpose"),
    building_status: Optional[str] = Form(None, alias="buildingStatus"),
    building_colour: Optional[str] = Form(None, alias="buildingColour"),
    has_fence: Optional[bool] = Form(None, alias="hasFence"),
    has_gate: Optional[bool] = Form(None, alias="hasGate"),
    occupants: Optional[str] = Form(None),
    relationship: Optional[str] = Form(None),
    notes: Optional[str] = Form(None),
    window_start: Optional[str] = Form(None, alias="windowStart"),
    window_end: Optional[str] = Form(None, alias="windowEnd"),
    front_view: Optional[UploadFile] = File(None, alias="frontView"),
    gate_view: Optional[UploadFile] = File(None, alias="gateView"),
    street_view: Optional[UploadFile] = File(None, alias="streetView"),
    additional_images: Optional[List[UploadFile]] = File(None, alias="additionalImages"),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth),
    policy: VerificationPolicy = Depends(get_verification_policy),
    service: VerificationService = Depends(get_verification_service)
):
    """
    Submit a structured address inspection with evidence photographs

    **Authorization:**
    - Requires role level >= 1

    **Form fields:**
    - Address: fullAddress, city, state (required), landmark, lga
    - Property: buildingType, buildingPurpose, buildingStatus (required), buildingColour, hasFence, hasGate
    - Occupancy: occupants (required), relationship, notes
    - Window: windowStart, windowEnd (required)

    **Files (JPG, PNG or WebP, max 5MB each, max 8 total):**
    - frontView, streetView: required
    - gateView: required when hasFence or hasGate is true
    - additionalImages: up to 5
    """
    payload = InspectionSubmission(
        full_address=full_address,
        landmark=landmark,
        city=city,
        lga=lga,
        state=state,
        building_type=building_type,
        building_purpose=building_purpose,
        building_status=building_status,
        building_colour=building_colour,
        has_fence=has_fence,
        has_gate=has_gate,
        occupants=occupants,
        relationship=relationship,
        notes=notes,
        window_start=window_start,
        window_end=window_end,
    )

    additional = []
    for upload in additional_images or []:
        evidence_file = await _read_upload(upload, policy.max_file_size_bytes)
        if evidence_file is not None:
            additional.append(evidence_file)

    evidence = EvidenceBundle(
        front_view=await _read_upload(front_view, policy.max_file_size_bytes),
        gate_view=await _read_upload(gate_view, policy.max_file_size_bytes),
        street_view=await _read_upload(street_view, policy.max_file_size_bytes),
        additional_images=additional,
    )

    employee = service.get_employee_for_user(db, current_user["user_id"])
    result = await service.submit_inspection(db, employee, payload, evidence, policy)

    return DataResponse(
        success=True,
        message="Inspection submitted successfully. Please confirm your location during your verification window.",
        data=result
    )


@router.post(
    "/me/confirm-location",
    response_model=DataResponse[ConfirmLocationResponse],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def confirm_location(
    request: ConfirmLocationRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth),
    policy: VerificationPolicy = Depends(get_verification_policy),
    service: VerificationService = Depends(get_verification_service)
):
    """
    Confirm presence at the declared address with a one-time GPS capture

    **Authorization:**
    - Requires role level >= 1

    **Validation:**
    - reporterLocalClock: the device's local time ("HH:MM" or ISO-8601), must fall in the scheduled window
    - distanceThresholdKm: optional, 0.1 - 10 km (default 1.0)
    """
    employee = service.get_employee_for_user(db, current_user["user_id"])
    result = service.confirm_my_location(db, employee, request, policy)

    message = (
        "Location verified but flagged for review due to distance"
        if result.distance_flagged
        else "Location verified successfully"
    )

    return DataResponse(
        success=True,
        message=message,
        data=result
    )
