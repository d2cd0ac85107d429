"""
Domain exceptions on top of ATAMS exception classes

Rendered by atams.exceptions.setup_exception_handlers like any AppException.
"""
from typing import Any, Dict, Optional

from atams.exceptions import BadRequestException, InternalServerException


class PolicyViolationException(BadRequestException):
    """400 - Request is well-formed but breaks a verification rule (window, status)"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class EvidenceUploadException(InternalServerException):
    """500 - Object storage rejected an evidence image; the submission is aborted"""

    def __init__(
        self,
        message: str = "Image upload failed. Please try again.",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
