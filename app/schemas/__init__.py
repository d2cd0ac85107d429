from .address import StructuredAddress, LegacyAddress, DeclaredAddress
from .verification import (
    PropertyDetails,
    OccupancyDetails,
    EvidenceImages,
    InspectionSubmission,
    AddressSubmitRequest,
    ConfirmLocationRequest,
    ReviewRequest,
    SubmissionResponse,
    ConfirmLocationResponse,
    ReverificationResponse,
    ReviewResponse,
    WindowOptionsResponse,
    VerificationStats,
    EmployeeVerificationView,
    AdminVerificationView,
)
from .common import DataResponse, PaginationResponse

__all__ = [
    # Address schemas
    "StructuredAddress",
    "LegacyAddress",
    "DeclaredAddress",
    # Verification schemas
    "PropertyDetails",
    "OccupancyDetails",
    "EvidenceImages",
    "InspectionSubmission",
    "AddressSubmitRequest",
    "ConfirmLocationRequest",
    "ReviewRequest",
    "SubmissionResponse",
    "ConfirmLocationResponse",
    "ReverificationResponse",
    "ReviewResponse",
    "WindowOptionsResponse",
    "VerificationStats",
    "EmployeeVerificationView",
    "AdminVerificationView",
    # Common schemas
    "DataResponse",
    "PaginationResponse"
]
