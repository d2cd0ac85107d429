"""
Pytest configuration and shared fixtures for address verification tests.
"""

import os

# Set required environment variables BEFORE importing app modules
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_verification.db")
os.environ.setdefault("ATLAS_APP_CODE", "ADDRESS_VERIFICATION")
os.environ.setdefault("ENCRYPTION_ENABLED", "false")
os.environ.setdefault("LOGGING_ENABLED", "false")
os.environ.setdefault("AWS_REGION", "us-east-1")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from atams.db import Base

from app.core.policy import VerificationPolicy
from app.models import EmployeeProfile, AddressVerification  # noqa: F401
from app.services.evidence_service import EvidenceUploadService
from app.services.verification_service import VerificationService
from tests.factories import FakeStorage, FakeGeocoder


@pytest.fixture
def engine():
    # SQLite has no schemas; map the "verification" schema away
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        execution_options={"schema_translate_map": {"verification": None}},
    )
    Base.metadata.create_all(test_engine)
    yield test_engine
    Base.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


def _create_employee(db, user_id, name, email):
    profile = EmployeeProfile(
        ep_user_id=user_id,
        ep_full_name=name,
        ep_email=email,
        ep_status="INVITED",
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


@pytest.fixture
def employee(db):
    return _create_employee(db, 101, "Adaeze Okafor", "adaeze@example.com")


@pytest.fixture
def other_employee(db):
    return _create_employee(db, 202, "Tunde Bakare", "tunde@example.com")


@pytest.fixture
def policy():
    return VerificationPolicy(
        window_slots=(
            "22:00", "22:30", "23:00", "23:30", "00:00", "00:30", "01:00",
            "01:30", "02:00", "02:30", "03:00", "03:30", "04:00",
        ),
        default_window_start="22:00",
        default_window_end="04:00",
        distance_threshold_km=1.0,
        max_file_size_bytes=5 * 1024 * 1024,
    )


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def evidence_service(storage):
    return EvidenceUploadService(storage, key_prefix="inspections")


@pytest.fixture
def service(geocoder, evidence_service):
    return VerificationService(geocoder=geocoder, evidence=evidence_service)
