from .employee_profile_repository import EmployeeProfileRepository
from .address_verification_repository import AddressVerificationRepository

__all__ = [
    "EmployeeProfileRepository",
    "AddressVerificationRepository"
]
