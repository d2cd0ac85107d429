"""
Address Verification Repository - Data access layer for verification records
"""
from typing import Optional, List, Dict
from sqlalchemy.orm import Session
from sqlalchemy import func

from atams.db import BaseRepository
from app.models.address_verification import AddressVerification


class AddressVerificationRepository(BaseRepository[AddressVerification]):
    def __init__(self):
        super().__init__(AddressVerification)

    def get_latest_for_employee(self, db: Session, employee_id: int) -> Optional[AddressVerification]:
        """Get the employee's most recent record using ORM"""
        return db.query(AddressVerification).filter(
            AddressVerification.av_employee_id == employee_id
        ).order_by(
            AddressVerification.av_created_at.desc(),
            AddressVerification.av_id.desc()
        ).first()

    def list_for_employee(self, db: Session, employee_id: int, skip: int = 0, limit: int = 50) -> List[AddressVerification]:
        """Get employee's records newest first using ORM"""
        return db.query(AddressVerification).filter(
            AddressVerification.av_employee_id == employee_id
        ).order_by(
            AddressVerification.av_created_at.desc(),
            AddressVerification.av_id.desc()
        ).offset(skip).limit(limit).all()

    def _apply_filters(
        self,
        query,
        employee_id: int = None,
        status: str = None,
        internal_flag: str = None,
        distance_flagged: bool = None
    ):
        if employee_id:
            query = query.filter(AddressVerification.av_employee_id == employee_id)
        if status:
            query = query.filter(AddressVerification.av_status == status)
        if internal_flag:
            query = query.filter(AddressVerification.av_internal_flag == internal_flag)
        if distance_flagged is not None:
            query = query.filter(AddressVerification.av_distance_flagged == distance_flagged)
        return query

    def get_records_with_filters(
        self,
        db: Session,
        employee_id: int = None,
        status: str = None,
        internal_flag: str = None,
        distance_flagged: bool = None,
        skip: int = 0,
        limit: int = 100,
        sort: str = "desc"
    ) -> List[AddressVerification]:
        """Get records with various filters using ORM"""
        query = self._apply_filters(
            db.query(AddressVerification),
            employee_id=employee_id,
            status=status,
            internal_flag=internal_flag,
            distance_flagged=distance_flagged
        )

        # Sorting
        if sort.lower() == "asc":
            query = query.order_by(AddressVerification.av_created_at.asc(), AddressVerification.av_id.asc())
        else:
            query = query.order_by(AddressVerification.av_created_at.desc(), AddressVerification.av_id.desc())

        return query.offset(skip).limit(limit).all()

    def count_records_with_filters(
        self,
        db: Session,
        employee_id: int = None,
        status: str = None,
        internal_flag: str = None,
        distance_flagged: bool = None
    ) -> int:
        """Count records with filters using ORM"""
        query = self._apply_filters(
            db.query(func.count(AddressVerification.av_id)),
            employee_id=employee_id,
            status=status,
            internal_flag=internal_flag,
            distance_flagged=distance_flagged
        )
        return query.scalar()

    def count_by_status(self, db: Session) -> Dict[str, int]:
        """Count records grouped by lifecycle status"""
        rows = db.query(
            AddressVerification.av_status,
            func.count(AddressVerification.av_id)
        ).group_by(AddressVerification.av_status).all()
        return {status: count for status, count in rows}

    def count_distance_flagged(self, db: Session) -> int:
        return self.count_filtered(db, {"av_distance_flagged": True})
