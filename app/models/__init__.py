from .employee_profile import EmployeeProfile
from .address_verification import AddressVerification

__all__ = [
    "EmployeeProfile",
    "AddressVerification"
]
