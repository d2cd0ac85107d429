"""
Verification Service - Address verification lifecycle

Owns every status change of an address verification record: submission
(structured inspection or legacy flat address), GPS confirmation inside the
employee's overnight window, admin re-verification and admin review.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, get_args
from sqlalchemy.orm import Session

from atams.exceptions import (
    NotFoundException,
    BadRequestException,
    ForbiddenException,
    ConflictException,
)
from atams.logging import get_logger

from app.core.exceptions import PolicyViolationException
from app.core.policy import VerificationPolicy
from app.models.address_verification import AddressVerification
from app.models.employee_profile import EmployeeProfile
from app.repositories.address_verification_repository import AddressVerificationRepository
from app.repositories.employee_profile_repository import EmployeeProfileRepository
from app.schemas.verification import (
    BuildingType,
    BuildingPurpose,
    BuildingStatus,
    PropertyDetails,
    OccupancyDetails,
    InspectionSubmission,
    AddressSubmitRequest,
    ConfirmLocationRequest,
    SubmissionResponse,
    ConfirmLocationResponse,
    ReverificationResponse,
    ReviewResponse,
    VerificationStats,
    WindowOptionsResponse,
    EmployeeVerificationView,
    AdminVerificationView,
)
from app.services.distance_classifier import calculate_distance, classify_distance_km, exceeds_threshold
from app.services.evidence_service import EvidenceBundle, EvidenceUploadService
from app.services.geocoding_service import GeocodingService, GeocodeResult
from app.services.window_validator import validate_window_selection, normalize_local_clock, is_within_window

logger = get_logger(__name__)

STATUS_PENDING_ADDRESS = "PENDING_ADDRESS"
STATUS_PENDING_VERIFICATION = "PENDING_VERIFICATION"
STATUS_VERIFIED = "VERIFIED"
STATUS_FAILED = "FAILED"
STATUS_REVERIFICATION_REQUIRED = "REVERIFICATION_REQUIRED"

ALLOWED_TRANSITIONS = {
    STATUS_PENDING_ADDRESS: {STATUS_PENDING_VERIFICATION},
    STATUS_PENDING_VERIFICATION: {
        STATUS_PENDING_VERIFICATION,
        STATUS_VERIFIED,
        STATUS_FAILED,
        STATUS_REVERIFICATION_REQUIRED,
    },
    STATUS_VERIFIED: {STATUS_REVERIFICATION_REQUIRED, STATUS_FAILED},
    STATUS_REVERIFICATION_REQUIRED: {
        STATUS_PENDING_VERIFICATION,
        STATUS_VERIFIED,
        STATUS_REVERIFICATION_REQUIRED,
    },
    STATUS_FAILED: {STATUS_PENDING_VERIFICATION, STATUS_REVERIFICATION_REQUIRED, STATUS_FAILED},
}

ONE_TIME_MESSAGE = "Your address is already verified. Contact your administrator to request re-verification."

# Captured GPS and everything derived from it; set together, cleared together
GPS_RESET = {
    "av_latitude": None,
    "av_longitude": None,
    "av_verified_at": None,
    "av_distance_km": None,
    "av_distance_flagged": False,
    "av_internal_flag": None,
    "av_internal_flag_reason": None,
}

REVIEW_RESET = {
    "av_review_status": "PENDING",
    "av_review_notes": None,
    "av_reviewed_by": None,
    "av_reviewed_at": None,
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


class VerificationService:
    def __init__(
        self,
        geocoder: Optional[GeocodingService] = None,
        evidence: Optional[EvidenceUploadService] = None
    ) -> None:
        self.record_repo = AddressVerificationRepository()
        self.employee_repo = EmployeeProfileRepository()
        self.geocoder = geocoder
        self.evidence = evidence

    # ==================== LOOKUPS ====================

    def get_employee_for_user(self, db: Session, user_id: int) -> EmployeeProfile:
        """
        Resolve the SSO user to their employee profile

        Raises:
            NotFoundException: If no profile is linked to the user
        """
        employee = self.employee_repo.get_by_user_id(db, user_id)
        if not employee:
            raise NotFoundException("Employee profile not found")
        return employee

    def _get_record(self, db: Session, record_id: int) -> AddressVerification:
        record = self.record_repo.get(db, record_id)
        if not record:
            raise NotFoundException("Verification record not found")
        return record

    def _ensure_transition(self, record: AddressVerification, target: str, message: str) -> None:
        if not can_transition(record.av_status, target):
            raise PolicyViolationException(message, details={"status": record.av_status, "target": target})

    def _ensure_not_verified(self, latest: Optional[AddressVerification]) -> None:
        """One-time rule: a verified address cannot be resubmitted"""
        if latest is not None and latest.av_status == STATUS_VERIFIED:
            raise ConflictException(ONE_TIME_MESSAGE)

    # ==================== SUBMISSION ====================

    def _validate_inspection_fields(self, payload: InspectionSubmission) -> None:
        if not payload.full_address or not payload.city or not payload.state:
            raise BadRequestException("Full address, city, and state are required")
        if not payload.window_start or not payload.window_end:
            raise BadRequestException("Verification window is required")
        if not payload.building_type or not payload.building_purpose or not payload.building_status:
            raise BadRequestException("Building type, purpose, and status are required")
        if not payload.occupants:
            raise BadRequestException("Occupancy information is required")

        choices = (
            ("Building type", payload.building_type, BuildingType),
            ("Building purpose", payload.building_purpose, BuildingPurpose),
            ("Building status", payload.building_status, BuildingStatus),
        )
        for label, value, allowed in choices:
            if value not in get_args(allowed):
                raise BadRequestException(
                    f'{label} "{value}" is not supported. Allowed: {", ".join(get_args(allowed))}'
                )

    async def _geocode(self, query: str) -> GeocodeResult:
        if self.geocoder is None:
            return GeocodeResult(error="Geocoding is not configured")

        result = await self.geocoder.geocode(query)
        if not result.resolved:
            logger.warning(f"Geocoding failed, proceeding without coordinates: {result.error}")
        return result

    def _persist_submission(
        self,
        db: Session,
        employee: EmployeeProfile,
        latest: Optional[AddressVerification],
        data: Dict[str, Any]
    ) -> AddressVerification:
        data = {**data, **GPS_RESET, **REVIEW_RESET, "av_status": STATUS_PENDING_VERIFICATION}

        if latest is None:
            record = self.record_repo.create(db, {"av_employee_id": employee.ep_id, **data})
        else:
            record = self.record_repo.update(db, latest, data)

        self.employee_repo.update(db, employee, {"ep_status": "ACTIVE"})
        return record

    async def submit_inspection(
        self,
        db: Session,
        employee: EmployeeProfile,
        payload: InspectionSubmission,
        evidence: EvidenceBundle,
        policy: VerificationPolicy
    ) -> SubmissionResponse:
        """
        Submit (or resubmit) a structured address inspection with evidence images

        Args:
            db: Database session
            employee: Submitting employee
            payload: Address, property, occupancy and window fields
            evidence: Uploaded image files by slot
            policy: Organization verification policy

        Returns:
            SubmissionResponse: Record id, status and chosen window

        Raises:
            ConflictException: The employee's address is already verified
            BadRequestException: Missing or invalid fields, window or images
            PolicyViolationException: Current status does not accept a submission
            EvidenceUploadException: An image could not be stored
        """
        latest = self.record_repo.get_latest_for_employee(db, employee.ep_id)
        self._ensure_not_verified(latest)

        self._validate_inspection_fields(payload)
        validate_window_selection(payload.window_start, payload.window_end, policy.window_slots)
        if latest is not None:
            self._ensure_transition(latest, STATUS_PENDING_VERIFICATION, "Address cannot be resubmitted in its current status")

        if self.evidence is None:
            raise BadRequestException("Evidence upload is not configured")
        images = await self.evidence.process(
            employee.ep_id,
            evidence,
            payload.fence_or_gate_present,
            policy.max_file_size_bytes
        )

        address_parts = [payload.full_address, payload.city, payload.lga, payload.state]
        address_text = ", ".join(part for part in address_parts if part)
        geocode = await self._geocode(address_text)

        property_details = PropertyDetails(
            building_type=payload.building_type,
            building_purpose=payload.building_purpose,
            building_status=payload.building_status,
            building_colour=payload.building_colour,
            has_fence=payload.has_fence,
            has_gate=payload.has_gate,
        )
        occupancy_details = OccupancyDetails(
            occupants=payload.occupants,
            relationship=payload.relationship,
            notes=payload.notes,
        )

        record = self._persist_submission(db, employee, latest, {
            "av_address_text": address_text,
            "av_city": payload.city,
            "av_state": payload.state,
            "av_address_details": {
                "full_address": payload.full_address,
                "landmark": payload.landmark,
                "city": payload.city,
                "lga": payload.lga,
                "state": payload.state,
            },
            "av_property_details": property_details.model_dump(),
            "av_occupancy_details": occupancy_details.model_dump(),
            "av_images": images.model_dump(),
            "av_window_start": payload.window_start,
            "av_window_end": payload.window_end,
            "av_expected_lat": geocode.latitude,
            "av_expected_lon": geocode.longitude,
        })

        logger.info("Inspection submitted", extra={'extra_data': {
            "action": "INSPECTION_SUBMITTED",
            "employee_id": employee.ep_id,
            "verification_id": record.av_id,
            "address": address_text,
            "geocoded": geocode.resolved,
        }})

        images_uploaded = bool(images.front_view)
        if images_uploaded:
            image_types = [
                slot for slot, url in (
                    ("frontView", images.front_view),
                    ("gateView", images.gate_view),
                    ("streetView", images.street_view),
                ) if url
            ]
            count = len(image_types) + len(images.additional_images)
            if images.additional_images:
                image_types.append("additionalImages")
            logger.info("Inspection images uploaded", extra={'extra_data': {
                "action": "IMAGE_UPLOADED",
                "employee_id": employee.ep_id,
                "verification_id": record.av_id,
                "image_types": image_types,
                "count": count,
            }})

        return SubmissionResponse(
            id=record.av_id,
            status=record.av_status,
            window_start=record.av_window_start,
            window_end=record.av_window_end,
            images_uploaded=images_uploaded,
        )

    async def submit_address(
        self,
        db: Session,
        employee: EmployeeProfile,
        payload: AddressSubmitRequest,
        policy: VerificationPolicy
    ) -> SubmissionResponse:
        """
        Submit (or resubmit) a flat street/city/state/zip address

        Kept for clients of the legacy address form; no evidence images.
        """
        latest = self.record_repo.get_latest_for_employee(db, employee.ep_id)
        self._ensure_not_verified(latest)

        if not payload.street or not payload.city or not payload.state or not payload.zip:
            raise BadRequestException("Street, city, state, and ZIP are required")
        if not payload.window_start or not payload.window_end:
            raise BadRequestException("Verification window is required")
        validate_window_selection(payload.window_start, payload.window_end, policy.window_slots)
        if latest is not None:
            self._ensure_transition(latest, STATUS_PENDING_VERIFICATION, "Address cannot be resubmitted in its current status")

        address_text = f"{payload.street}, {payload.city}, {payload.state} {payload.zip}"
        geocode = await self._geocode(address_text)

        record = self._persist_submission(db, employee, latest, {
            "av_address_text": address_text,
            "av_street": payload.street,
            "av_city": payload.city,
            "av_state": payload.state,
            "av_zip": payload.zip,
            "av_landmark": payload.landmark,
            "av_address_details": None,
            "av_property_details": None,
            "av_occupancy_details": None,
            "av_images": None,
            "av_window_start": payload.window_start,
            "av_window_end": payload.window_end,
            "av_expected_lat": geocode.latitude,
            "av_expected_lon": geocode.longitude,
        })

        logger.info("Address submitted", extra={'extra_data': {
            "action": "ADDRESS_SUBMITTED",
            "employee_id": employee.ep_id,
            "verification_id": record.av_id,
            "address": address_text,
            "geocoded": geocode.resolved,
        }})

        return SubmissionResponse(
            id=record.av_id,
            status=record.av_status,
            window_start=record.av_window_start,
            window_end=record.av_window_end,
            images_uploaded=False,
        )

    # ==================== GPS CONFIRMATION ====================

    def confirm_location(
        self,
        db: Session,
        record_id: int,
        request: ConfirmLocationRequest,
        policy: VerificationPolicy,
        employee_id: Optional[int] = None
    ) -> ConfirmLocationResponse:
        """
        Confirm the employee's presence at the declared address

        The window check uses only the reporter's asserted local clock.

        Args:
            db: Database session
            record_id: Verification record ID
            request: Captured coordinates, optional threshold override, local clock
            policy: Organization verification policy
            employee_id: When set, the record must belong to this employee

        Returns:
            ConfirmLocationResponse: Public result, without the internal risk tier

        Raises:
            NotFoundException: Record not found
            ForbiddenException: Record belongs to another employee
            PolicyViolationException: Wrong status or outside the window
        """
        record = self._get_record(db, record_id)
        if employee_id is not None and record.av_employee_id != employee_id:
            raise ForbiddenException("You can only confirm your own verification")

        if record.av_status == STATUS_VERIFIED:
            raise PolicyViolationException("Location already verified")
        if record.av_status not in (STATUS_PENDING_VERIFICATION, STATUS_REVERIFICATION_REQUIRED):
            raise PolicyViolationException("Address must be submitted before verification")

        try:
            local_clock = normalize_local_clock(request.reporter_local_clock)
        except (TypeError, ValueError):
            raise BadRequestException("reporterLocalClock must be HH:MM or an ISO-8601 timestamp")

        if not record.av_window_start or not record.av_window_end:
            raise PolicyViolationException("Verification window is required")
        if not is_within_window(record.av_window_start, record.av_window_end, local_clock):
            raise PolicyViolationException(
                "Verification can only be done during your scheduled window",
                details={
                    "window_start": record.av_window_start,
                    "window_end": record.av_window_end,
                    "reporter_local_clock": local_clock,
                }
            )

        threshold_km = request.distance_threshold_km or policy.distance_threshold_km

        distance_km = None
        if record.av_expected_lat is not None and record.av_expected_lon is not None:
            distance_km = calculate_distance(
                record.av_expected_lat, record.av_expected_lon,
                request.latitude, request.longitude
            )
        distance_flagged = exceeds_threshold(distance_km, threshold_km)
        risk = classify_distance_km(distance_km)

        record = self.record_repo.update(db, record, {
            "av_latitude": request.latitude,
            "av_longitude": request.longitude,
            "av_verified_at": datetime.now(timezone.utc),
            "av_distance_km": distance_km,
            "av_distance_flagged": distance_flagged,
            "av_internal_flag": risk.tier if risk else None,
            "av_internal_flag_reason": risk.reason if risk else None,
            "av_status": STATUS_VERIFIED,
            **REVIEW_RESET,
        })
        self.employee_repo.update_status(db, record.av_employee_id, "VERIFIED")

        logger.info("Location verified", extra={'extra_data': {
            "action": "LOCATION_VERIFIED",
            "employee_id": record.av_employee_id,
            "verification_id": record.av_id,
            "latitude": request.latitude,
            "longitude": request.longitude,
            "distance_km": distance_km,
            "distance_flagged": distance_flagged,
            "internal_flag": record.av_internal_flag,
        }})

        return ConfirmLocationResponse(
            id=record.av_id,
            status=record.av_status,
            verified_at=record.av_verified_at,
            distance_km=distance_km,
            distance_flagged=distance_flagged,
        )

    def confirm_my_location(
        self,
        db: Session,
        employee: EmployeeProfile,
        request: ConfirmLocationRequest,
        policy: VerificationPolicy
    ) -> ConfirmLocationResponse:
        """Confirm against the employee's latest record"""
        latest = self.record_repo.get_latest_for_employee(db, employee.ep_id)
        if latest is None:
            raise PolicyViolationException("No address submitted yet")
        return self.confirm_location(db, latest.av_id, request, policy, employee_id=employee.ep_id)

    # ==================== ADMIN ACTIONS ====================

    def request_reverification(self, db: Session, record_id: int, admin_id: int) -> ReverificationResponse:
        """
        Send a record back for a fresh GPS confirmation

        Clears captured GPS and derived metrics and resets the review;
        declared address and evidence images are kept.
        """
        record = self._get_record(db, record_id)
        self._ensure_transition(
            record,
            STATUS_REVERIFICATION_REQUIRED,
            "Address must be submitted before re-verification can be requested"
        )

        record = self.record_repo.update(db, record, {
            **GPS_RESET,
            **REVIEW_RESET,
            "av_status": STATUS_REVERIFICATION_REQUIRED,
        })
        self.employee_repo.update_status(db, record.av_employee_id, "REVERIFICATION_REQUIRED")

        logger.info("Re-verification requested", extra={'extra_data': {
            "action": "REVERIFICATION_REQUESTED",
            "actor_id": admin_id,
            "employee_id": record.av_employee_id,
            "verification_id": record.av_id,
        }})

        return ReverificationResponse(id=record.av_id, status=record.av_status)

    def review(
        self,
        db: Session,
        record_id: int,
        decision: str,
        notes: Optional[str],
        reviewer_id: int
    ) -> ReviewResponse:
        """
        Record an admin decision on a GPS-confirmed record

        REJECTED also moves the record to FAILED.

        Raises:
            BadRequestException: Unknown decision
            NotFoundException: Record not found
            PolicyViolationException: Record has never been GPS-confirmed
        """
        if decision not in ("APPROVED", "REJECTED"):
            raise BadRequestException("Review status must be APPROVED or REJECTED")

        record = self._get_record(db, record_id)
        if record.av_verified_at is None:
            raise PolicyViolationException("Verification must be confirmed before it can be reviewed")

        update_data = {
            "av_review_status": decision,
            "av_review_notes": notes,
            "av_reviewed_by": reviewer_id,
            "av_reviewed_at": datetime.now(timezone.utc),
        }
        if decision == "REJECTED":
            self._ensure_transition(record, STATUS_FAILED, "Verification cannot be rejected in its current status")
            update_data["av_status"] = STATUS_FAILED

        record = self.record_repo.update(db, record, update_data)

        logger.info("Verification reviewed", extra={'extra_data': {
            "action": "VERIFICATION_REVIEWED",
            "actor_id": reviewer_id,
            "employee_id": record.av_employee_id,
            "verification_id": record.av_id,
            "review_status": decision,
            "review_notes": notes,
        }})

        return ReviewResponse(
            id=record.av_id,
            review_status=record.av_review_status,
            review_notes=record.av_review_notes,
            reviewed_at=record.av_reviewed_at,
        )

    # ==================== READS ====================

    def get_my_latest(self, db: Session, employee: EmployeeProfile) -> Optional[EmployeeVerificationView]:
        record = self.record_repo.get_latest_for_employee(db, employee.ep_id)
        if record is None:
            return None
        return EmployeeVerificationView.model_validate(record)

    def get_my_history(self, db: Session, employee: EmployeeProfile, skip: int = 0, limit: int = 50) -> List[EmployeeVerificationView]:
        records = self.record_repo.list_for_employee(db, employee.ep_id, skip=skip, limit=limit)
        return [EmployeeVerificationView.model_validate(r) for r in records]

    def get_record_admin(self, db: Session, record_id: int) -> AdminVerificationView:
        return AdminVerificationView.model_validate(self._get_record(db, record_id))

    def list_records_admin(
        self,
        db: Session,
        employee_id: int = None,
        status: str = None,
        internal_flag: str = None,
        distance_flagged: bool = None,
        skip: int = 0,
        limit: int = 100,
        sort: str = "desc"
    ) -> List[AdminVerificationView]:
        records = self.record_repo.get_records_with_filters(
            db,
            employee_id=employee_id,
            status=status,
            internal_flag=internal_flag,
            distance_flagged=distance_flagged,
            skip=skip,
            limit=limit,
            sort=sort
        )
        return [AdminVerificationView.model_validate(r) for r in records]

    def count_records_admin(
        self,
        db: Session,
        employee_id: int = None,
        status: str = None,
        internal_flag: str = None,
        distance_flagged: bool = None
    ) -> int:
        return self.record_repo.count_records_with_filters(
            db,
            employee_id=employee_id,
            status=status,
            internal_flag=internal_flag,
            distance_flagged=distance_flagged
        )

    def get_status_counts(self, db: Session) -> VerificationStats:
        counts = self.record_repo.count_by_status(db)
        return VerificationStats(
            total=sum(counts.values()),
            pending_address=counts.get(STATUS_PENDING_ADDRESS, 0),
            pending_verification=counts.get(STATUS_PENDING_VERIFICATION, 0),
            verified=counts.get(STATUS_VERIFIED, 0),
            failed=counts.get(STATUS_FAILED, 0),
            reverification_required=counts.get(STATUS_REVERIFICATION_REQUIRED, 0),
            distance_flagged=self.record_repo.count_distance_flagged(db),
        )

    def get_window_options(self, policy: VerificationPolicy) -> WindowOptionsResponse:
        return WindowOptionsResponse(
            slots=list(policy.window_slots),
            default_window_start=policy.default_window_start,
            default_window_end=policy.default_window_end,
            distance_threshold_km=policy.distance_threshold_km,
        )
