"""
Employee Profile Repository - Data access layer for employee profiles
"""
from typing import Optional
from sqlalchemy.orm import Session

from atams.db import BaseRepository
from app.models.employee_profile import EmployeeProfile


class EmployeeProfileRepository(BaseRepository[EmployeeProfile]):
    def __init__(self):
        super().__init__(EmployeeProfile)

    def get_by_user_id(self, db: Session, user_id: int) -> Optional[EmployeeProfile]:
        """Get employee profile linked to an SSO user using ORM"""
        return db.query(EmployeeProfile).filter(EmployeeProfile.ep_user_id == user_id).first()

    def update_status(self, db: Session, employee_id: int, status: str) -> Optional[EmployeeProfile]:
        """Set the employee lifecycle marker; returns None if the employee does not exist"""
        employee = self.get(db, employee_id)
        if not employee:
            return None
        return self.update(db, employee, {"ep_status": status})
