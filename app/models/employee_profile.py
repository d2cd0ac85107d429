"""
Employee Profile Model - Employee view consumed by the verification engine
"""
from sqlalchemy import Column, BigInteger, Integer, String, DateTime
from sqlalchemy.sql import func
from atams.db import Base


class EmployeeProfile(Base):
    """Employee Profile model for verification schema - Table: verification.employee_profiles"""
    __tablename__ = "employee_profiles"
    __table_args__ = {"schema": "verification"}

    ep_id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True, autoincrement=True)
    ep_user_id = Column(BigInteger, nullable=False, unique=True, index=True)  # Atlas SSO user id
    ep_full_name = Column(String(255), nullable=False)
    ep_email = Column(String(255), nullable=False)
    ep_status = Column(String(30), nullable=False, default="INVITED")  # INVITED, ACTIVE, VERIFIED, REVERIFICATION_REQUIRED
    ep_created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    ep_updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)
