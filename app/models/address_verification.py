"""
Address Verification Model - One verification cycle per employee address
"""
from sqlalchemy import Column, BigInteger, Integer, String, DateTime, Float, Boolean, Text, JSON, ForeignKey
from sqlalchemy.sql import func
from atams.db import Base


class AddressVerification(Base):
    """Address Verification model for verification schema - Table: verification.address_verifications"""
    __tablename__ = "address_verifications"
    __table_args__ = {"schema": "verification"}

    av_id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True, autoincrement=True)
    av_employee_id = Column(BigInteger, ForeignKey("verification.employee_profiles.ep_id"), nullable=False, index=True)

    # Legacy flat address (records created before structured addresses)
    av_address_text = Column(String(500), nullable=True)
    av_street = Column(String(255), nullable=True)
    av_city = Column(String(100), nullable=True)
    av_state = Column(String(100), nullable=True)
    av_zip = Column(String(20), nullable=True)
    av_landmark = Column(String(255), nullable=True)

    # Structured inspection sections
    av_address_details = Column(JSON, nullable=True)  # {"full_address", "landmark", "city", "lga", "state"}
    av_property_details = Column(JSON, nullable=True)  # {"building_type", ..., "has_fence", "has_gate"}
    av_occupancy_details = Column(JSON, nullable=True)  # {"occupants", "relationship", "notes"}
    av_images = Column(JSON, nullable=True)  # {"front_view", "gate_view", "street_view", "additional_images": []}

    av_window_start = Column(String(5), nullable=True)  # "HH:MM" reporter local time
    av_window_end = Column(String(5), nullable=True)

    # Geocoded expectation
    av_expected_lat = Column(Float, nullable=True)
    av_expected_lon = Column(Float, nullable=True)

    # Captured GPS and derived metrics
    av_latitude = Column(Float, nullable=True)
    av_longitude = Column(Float, nullable=True)
    av_distance_km = Column(Float, nullable=True)
    av_distance_flagged = Column(Boolean, nullable=False, default=False, index=True)
    av_internal_flag = Column(String(10), nullable=True, index=True)  # VERIFIED, REVIEW, FLAGGED (admin only)
    av_internal_flag_reason = Column(String(255), nullable=True)

    av_status = Column(String(30), nullable=False, default="PENDING_ADDRESS", index=True)
    av_verified_at = Column(DateTime(timezone=True), nullable=True, index=True)

    # Admin adjudication
    av_review_status = Column(String(10), nullable=False, default="PENDING")  # PENDING, APPROVED, REJECTED
    av_review_notes = Column(Text, nullable=True)
    av_reviewed_by = Column(BigInteger, nullable=True)  # Atlas SSO user id of the reviewer
    av_reviewed_at = Column(DateTime(timezone=True), nullable=True)

    av_created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    av_updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)
