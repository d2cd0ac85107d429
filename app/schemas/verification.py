"""
Address Verification Schemas for submissions, confirmation, review and projections
"""
import re
from typing import Optional, Literal, List, Dict, Any, Union
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from app.schemas.address import (
    StructuredAddress,
    LegacyAddress,
    resolve_declared_address,
    format_address_for_display,
)
from app.services.window_validator import normalize_local_clock

VerificationStatus = Literal[
    "PENDING_ADDRESS",
    "PENDING_VERIFICATION",
    "VERIFIED",
    "FAILED",
    "REVERIFICATION_REQUIRED",
]
ReviewStatus = Literal["PENDING", "APPROVED", "REJECTED"]
ReviewDecision = Literal["APPROVED", "REJECTED"]
InternalFlag = Literal["VERIFIED", "REVIEW", "FLAGGED"]

BuildingType = Literal["Duplex", "Bungalow", "Apartment", "Detached House", "Semi-Detached", "Other"]
BuildingPurpose = Literal["Residential", "Commercial", "Mixed Use"]
BuildingStatus = Literal["Completed", "Completed and Painted", "Under Construction", "Renovated"]


# Stored sub-documents
class PropertyDetails(BaseModel):
    building_type: BuildingType
    building_purpose: BuildingPurpose
    building_status: BuildingStatus
    building_colour: Optional[str] = None
    has_fence: Optional[bool] = None  # None = not answered
    has_gate: Optional[bool] = None


class OccupancyDetails(BaseModel):
    occupants: str
    relationship: Optional[str] = None
    notes: Optional[str] = None


class EvidenceImages(BaseModel):
    """Stable object-storage URLs of inspection photographs"""
    front_view: Optional[str] = None
    gate_view: Optional[str] = None
    street_view: Optional[str] = None
    additional_images: List[str] = Field(default_factory=list)


# Request schemas
class _TrimmedStrings(BaseModel):
    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        """Trim text input; empty strings count as missing"""
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class InspectionSubmission(_TrimmedStrings):
    """
    Inspection form fields, already decoded at the API boundary

    Required fields are deliberately optional here so the service can reject
    omissions with a precise 400 message.
    """
    full_address: Optional[str] = None
    landmark: Optional[str] = None
    city: Optional[str] = None
    lga: Optional[str] = None
    state: Optional[str] = None

    building_type: Optional[str] = None
    building_purpose: Optional[str] = None
    building_status: Optional[str] = None
    building_colour: Optional[str] = None
    has_fence: Optional[bool] = None
    has_gate: Optional[bool] = None

    occupants: Optional[str] = None
    relationship: Optional[str] = None
    notes: Optional[str] = None

    window_start: Optional[str] = None
    window_end: Optional[str] = None

    @property
    def fence_or_gate_present(self) -> bool:
        return bool(self.has_fence) or bool(self.has_gate)


class AddressSubmitRequest(_TrimmedStrings):
    """Legacy flat address submission"""
    model_config = ConfigDict(populate_by_name=True)

    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    landmark: Optional[str] = None
    window_start: Optional[str] = Field(default=None, alias="windowStart")
    window_end: Optional[str] = Field(default=None, alias="windowEnd")


class ConfirmLocationRequest(BaseModel):
    """GPS confirmation; the reporter's own local clock is mandatory"""
    model_config = ConfigDict(populate_by_name=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    distance_threshold_km: Optional[float] = Field(default=None, ge=0.1, le=10, alias="distanceThresholdKm")
    reporter_local_clock: str = Field(alias="reporterLocalClock", description="HH:MM or ISO-8601 local timestamp")

    @field_validator("reporter_local_clock", mode="before")
    @classmethod
    def normalize_clock(cls, v):
        if v is None or v == "":
            raise ValueError("reporterLocalClock is required")
        try:
            return normalize_local_clock(v)
        except (TypeError, ValueError):
            raise ValueError("reporterLocalClock must be HH:MM or an ISO-8601 timestamp")


class ReviewRequest(BaseModel):
    decision: ReviewDecision
    notes: Optional[str] = None


# Response schemas
class SubmissionResponse(BaseModel):
    id: int
    status: VerificationStatus
    window_start: Optional[str] = None
    window_end: Optional[str] = None
    images_uploaded: bool = False


class ConfirmLocationResponse(BaseModel):
    """Employee-facing confirmation result; the internal risk tier is never included"""
    id: int
    status: VerificationStatus
    verified_at: datetime
    distance_km: Optional[float] = None
    distance_flagged: bool = False


class ReverificationResponse(BaseModel):
    id: int
    status: VerificationStatus


class ReviewResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    review_status: ReviewStatus = Field(alias="reviewStatus")
    review_notes: Optional[str] = Field(default=None, alias="reviewNotes")
    reviewed_at: Optional[datetime] = Field(default=None, alias="reviewedAt")


class WindowOptionsResponse(BaseModel):
    slots: List[str]
    default_window_start: str
    default_window_end: str
    distance_threshold_km: float


class VerificationStats(BaseModel):
    total: int = 0
    pending_address: int = 0
    pending_verification: int = 0
    verified: int = 0
    failed: int = 0
    reverification_required: int = 0
    distance_flagged: int = 0


# Read projections
class AddressVerificationBase(BaseModel):
    av_employee_id: int
    av_status: VerificationStatus = "PENDING_ADDRESS"

    # Legacy flat fields stay readable for older records
    av_street: Optional[str] = None
    av_city: Optional[str] = None
    av_state: Optional[str] = None
    av_zip: Optional[str] = None
    av_landmark: Optional[str] = None
    av_address_details: Optional[Dict[str, Any]] = None

    av_property_details: Optional[PropertyDetails] = None
    av_occupancy_details: Optional[OccupancyDetails] = None
    av_images: Optional[EvidenceImages] = None

    av_window_start: Optional[str] = None
    av_window_end: Optional[str] = None

    av_latitude: Optional[float] = None
    av_longitude: Optional[float] = None
    av_distance_km: Optional[float] = None
    av_distance_flagged: bool = False
    av_verified_at: Optional[datetime] = None
    av_review_status: ReviewStatus = "PENDING"

    @computed_field
    @property
    def declared_address(self) -> Optional[Union[StructuredAddress, LegacyAddress]]:
        return resolve_declared_address(self)

    @computed_field
    @property
    def display_address(self) -> Optional[str]:
        return format_address_for_display(resolve_declared_address(self))


class AddressVerificationInDB(AddressVerificationBase):
    model_config = ConfigDict(from_attributes=True)

    av_id: int
    av_created_at: datetime
    av_updated_at: Optional[datetime] = None

    @field_validator('av_verified_at', 'av_created_at', 'av_updated_at', mode='before')
    @classmethod
    def fix_datetime_timezone(cls, v):
        """
        Fix datetime timezone format from PostgreSQL
        PostgreSQL returns: '2025-10-01 09:17:39.587802+00'
        Pydantic expects: '2025-10-01 09:17:39.587802+00:00'
        """
        if v == '' or v is None:
            return None

        if isinstance(v, str) and re.search(r'([+-]\d{2})$', v):
            v = v + ':00'

        return v


class EmployeeVerificationView(AddressVerificationInDB):
    """What the employee may see about their own record"""
    pass


class AdminVerificationView(AddressVerificationInDB):
    """Admin projection: adds geocoded expectation, internal risk tier and review trail"""
    av_expected_lat: Optional[float] = None
    av_expected_lon: Optional[float] = None
    av_internal_flag: Optional[InternalFlag] = None
    av_internal_flag_reason: Optional[str] = None
    av_review_notes: Optional[str] = None
    av_reviewed_by: Optional[int] = None
    av_reviewed_at: Optional[datetime] = None

    @field_validator('av_reviewed_at', mode='before')
    @classmethod
    def fix_reviewed_at_timezone(cls, v):
        """Fix datetime timezone format from PostgreSQL"""
        if v == '' or v is None:
            return None

        if isinstance(v, str) and re.search(r'([+-]\d{2})$', v):
            v = v + ':00'

        return v
