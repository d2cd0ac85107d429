"""
Tests for the address verification lifecycle: submission, GPS confirmation,
re-verification and admin review.
"""

import pytest

from atams.exceptions import BadRequestException, ConflictException, ForbiddenException, NotFoundException

from app.core.exceptions import EvidenceUploadException, PolicyViolationException
from app.models import AddressVerification, EmployeeProfile
from app.schemas.verification import (
    AddressSubmitRequest,
    AdminVerificationView,
    ConfirmLocationRequest,
    InspectionSubmission,
    PropertyDetails,
)
from app.services.evidence_service import EvidenceBundle, EvidenceUploadService
from app.services.geocoding_service import GeocodeResult
from app.services.verification_service import VerificationService, can_transition
from tests.factories import EXPECTED_LAT, EXPECTED_LON, FakeGeocoder, FakeStorage, make_bundle, make_inspection

# ~1.2 km due north of the expected coordinates
FAR_LAT = EXPECTED_LAT + 0.0108
# ~50 m due north
NEAR_LAT = EXPECTED_LAT + 0.00045


def confirm_request(lat=EXPECTED_LAT, lon=EXPECTED_LON, clock="23:30", threshold=None):
    return ConfirmLocationRequest(
        latitude=lat,
        longitude=lon,
        reporter_local_clock=clock,
        distance_threshold_km=threshold,
    )


async def submit(service, db, employee, policy, **overrides):
    return await service.submit_inspection(db, employee, make_inspection(**overrides), make_bundle(), policy)


def record_count(db):
    return db.query(AddressVerification).count()


class TestInspectionSubmission:
    @pytest.mark.parametrize("has_fence, has_gate, expected", [
        (None, None, False),
        (False, False, False),
        (True, None, True),
        (None, True, True),
    ])
    def test_fence_or_gate_present(self, has_fence, has_gate, expected):
        payload = make_inspection(has_fence=has_fence, has_gate=has_gate)
        assert payload.fence_or_gate_present is expected

    def test_stored_property_details_carry_no_derived_flag(self):
        details = PropertyDetails(
            building_type="Duplex",
            building_purpose="Residential",
            building_status="Completed",
            has_fence=True,
        )
        assert not hasattr(details, "fence_or_gate_present")
        assert "fence_or_gate_present" not in details.model_dump()


class TestTransitions:
    def test_table(self):
        assert can_transition("PENDING_ADDRESS", "PENDING_VERIFICATION")
        assert not can_transition("PENDING_ADDRESS", "VERIFIED")
        assert can_transition("PENDING_VERIFICATION", "VERIFIED")
        assert can_transition("VERIFIED", "REVERIFICATION_REQUIRED")
        assert can_transition("VERIFIED", "FAILED")
        assert not can_transition("VERIFIED", "PENDING_VERIFICATION")
        assert can_transition("REVERIFICATION_REQUIRED", "VERIFIED")
        assert can_transition("FAILED", "PENDING_VERIFICATION")


class TestSubmitInspection:
    @pytest.mark.asyncio
    async def test_creates_pending_record(self, service, db, employee, policy, geocoder, storage):
        result = await submit(service, db, employee, policy)

        assert result.status == "PENDING_VERIFICATION"
        assert result.window_start == "23:00"
        assert result.window_end == "01:00"
        assert result.images_uploaded is True

        record = db.get(AddressVerification, result.id)
        assert record.av_employee_id == employee.ep_id
        assert record.av_address_details["full_address"] == "12 Bode Thomas Street"
        assert record.av_property_details["building_type"] == "Duplex"
        assert record.av_occupancy_details["occupants"] == "Family of four"
        assert record.av_images["front_view"].startswith("https://cdn.test/inspections/")
        assert record.av_expected_lat == EXPECTED_LAT
        assert record.av_expected_lon == EXPECTED_LON
        assert record.av_review_status == "PENDING"
        assert geocoder.queries == ["12 Bode Thomas Street, Surulere, Surulere, Lagos"]
        assert len(storage.uploaded) == 2

        db.refresh(employee)
        assert employee.ep_status == "ACTIVE"

    @pytest.mark.asyncio
    async def test_resubmission_overwrites_latest_record(self, service, db, employee, policy):
        first = await submit(service, db, employee, policy)
        second = await submit(service, db, employee, policy, full_address="7 Adeniran Ogunsanya", window_start="22:30")

        assert second.id == first.id
        assert record_count(db) == 1
        record = db.get(AddressVerification, first.id)
        assert record.av_address_details["full_address"] == "7 Adeniran Ogunsanya"
        assert record.av_window_start == "22:30"

    @pytest.mark.parametrize("overrides, message", [
        ({"full_address": None}, "Full address, city, and state are required"),
        ({"state": "   "}, "Full address, city, and state are required"),
        ({"window_end": None}, "Verification window is required"),
        ({"building_purpose": None}, "Building type, purpose, and status are required"),
        ({"occupants": ""}, "Occupancy information is required"),
    ])
    @pytest.mark.asyncio
    async def test_required_fields(self, service, db, employee, policy, overrides, message):
        with pytest.raises(BadRequestException) as exc:
            await submit(service, db, employee, policy, **overrides)

        assert exc.value.message == message
        assert record_count(db) == 0

    @pytest.mark.asyncio
    async def test_unknown_building_type(self, service, db, employee, policy):
        with pytest.raises(BadRequestException) as exc:
            await submit(service, db, employee, policy, building_type="Castle")
        assert 'Building type "Castle" is not supported' in exc.value.message

    @pytest.mark.asyncio
    async def test_window_outside_catalogue(self, service, db, employee, policy):
        with pytest.raises(BadRequestException) as exc:
            await submit(service, db, employee, policy, window_start="20:00")

        assert 'Start time "20:00"' in exc.value.message
        assert record_count(db) == 0

    @pytest.mark.asyncio
    async def test_gate_present_without_gate_image_saves_nothing(self, service, db, employee, policy, storage):
        with pytest.raises(BadRequestException) as exc:
            await service.submit_inspection(
                db, employee, make_inspection(has_gate=True), make_bundle(gate=False), policy
            )

        assert "gateView" in exc.value.message
        assert record_count(db) == 0
        assert storage.uploaded == []

    @pytest.mark.asyncio
    async def test_upload_failure_saves_nothing(self, db, employee, policy, geocoder):
        service = VerificationService(
            geocoder=geocoder,
            evidence=EvidenceUploadService(FakeStorage(fail_on="front_view")),
        )

        with pytest.raises(EvidenceUploadException):
            await submit(service, db, employee, policy)

        assert record_count(db) == 0
        db.refresh(employee)
        assert employee.ep_status == "INVITED"

    @pytest.mark.asyncio
    async def test_geocoding_failure_does_not_block(self, db, employee, policy, evidence_service):
        service = VerificationService(
            geocoder=FakeGeocoder(GeocodeResult(error="Address not found")),
            evidence=evidence_service,
        )

        result = await submit(service, db, employee, policy)

        record = db.get(AddressVerification, result.id)
        assert result.status == "PENDING_VERIFICATION"
        assert record.av_expected_lat is None
        assert record.av_expected_lon is None

    @pytest.mark.asyncio
    async def test_verified_record_rejects_resubmission_regardless_of_payload(self, service, db, employee, policy):
        result = await submit(service, db, employee, policy)
        service.confirm_location(db, result.id, confirm_request(), policy)

        with pytest.raises(ConflictException) as exc:
            await service.submit_inspection(db, employee, InspectionSubmission(), EvidenceBundle(), policy)

        assert exc.value.status_code == 409
        assert "already verified" in exc.value.message

    @pytest.mark.asyncio
    async def test_resubmission_clears_gps_fields(self, service, db, employee, policy):
        result = await submit(service, db, employee, policy)
        service.confirm_location(db, result.id, confirm_request(lat=FAR_LAT), policy)
        service.review(db, result.id, "REJECTED", "Wrong house", reviewer_id=900)

        again = await submit(service, db, employee, policy)

        record = db.get(AddressVerification, again.id)
        assert record.av_status == "PENDING_VERIFICATION"
        assert record.av_latitude is None
        assert record.av_verified_at is None
        assert record.av_distance_km is None
        assert record.av_distance_flagged is False
        assert record.av_internal_flag is None
        assert record.av_review_status == "PENDING"
        assert record.av_review_notes is None


class TestSubmitAddress:
    @pytest.mark.asyncio
    async def test_legacy_address(self, service, db, employee, policy, geocoder):
        payload = AddressSubmitRequest(
            street="12 Bode Thomas Street",
            city="Surulere",
            state="Lagos",
            zip="101283",
            windowStart="23:00",
            windowEnd="01:00",
        )

        result = await service.submit_address(db, employee, payload, policy)

        assert result.status == "PENDING_VERIFICATION"
        assert result.images_uploaded is False
        assert geocoder.queries == ["12 Bode Thomas Street, Surulere, Lagos 101283"]

        view = service.get_my_latest(db, employee)
        assert view.declared_address.kind == "legacy"
        assert view.display_address == "12 Bode Thomas Street, Surulere, Lagos, 101283"

    @pytest.mark.asyncio
    async def test_legacy_requires_zip(self, service, db, employee, policy):
        payload = AddressSubmitRequest(street="1 Marina", city="Lagos Island", state="Lagos",
                                       window_start="23:00", window_end="01:00")

        with pytest.raises(BadRequestException) as exc:
            await service.submit_address(db, employee, payload, policy)
        assert exc.value.message == "Street, city, state, and ZIP are required"

    @pytest.mark.asyncio
    async def test_legacy_address_drops_earlier_inspection(self, service, db, employee, policy):
        submitted = await submit(service, db, employee, policy)
        payload = AddressSubmitRequest(street="1 Marina", city="Lagos Island", state="Lagos", zip="101001",
                                       window_start="23:00", window_end="01:00")

        result = await service.submit_address(db, employee, payload, policy)

        assert result.id == submitted.id
        record = db.get(AddressVerification, submitted.id)
        assert record.av_address_details is None
        assert record.av_property_details is None
        assert record.av_occupancy_details is None
        assert record.av_images is None
        view = service.get_my_latest(db, employee)
        assert view.display_address == "1 Marina, Lagos Island, Lagos, 101001"
        assert view.av_images is None


class TestConfirmLocation:
    @pytest.mark.asyncio
    async def test_nearby_confirmation(self, service, db, employee, policy):
        submitted = await submit(service, db, employee, policy)

        result = service.confirm_location(db, submitted.id, confirm_request(lat=NEAR_LAT), policy)

        assert result.status == "VERIFIED"
        assert result.verified_at is not None
        assert result.distance_km == 0.05
        assert result.distance_flagged is False

        record = db.get(AddressVerification, submitted.id)
        assert record.av_internal_flag == "VERIFIED"
        assert record.av_latitude == NEAR_LAT
        db.refresh(employee)
        assert employee.ep_status == "VERIFIED"

    @pytest.mark.asyncio
    async def test_far_confirmation_flags_and_hides_tier(self, service, db, employee, policy):
        submitted = await submit(service, db, employee, policy)

        result = service.confirm_location(db, submitted.id, confirm_request(lat=FAR_LAT), policy)

        assert result.distance_km == 1.2
        assert result.distance_flagged is True
        assert "internal_flag" not in result.model_dump()

        admin_view = service.get_record_admin(db, submitted.id)
        assert admin_view.av_internal_flag == "FLAGGED"
        assert admin_view.av_internal_flag_reason == "GPS is 1200m from declared address, exceeds 500m threshold"

    @pytest.mark.asyncio
    async def test_threshold_override(self, service, db, employee, policy):
        submitted = await submit(service, db, employee, policy)

        result = service.confirm_location(db, submitted.id, confirm_request(lat=FAR_LAT, threshold=2.0), policy)

        assert result.distance_flagged is False

    @pytest.mark.asyncio
    async def test_without_expected_coordinates(self, db, employee, policy, evidence_service):
        service = VerificationService(
            geocoder=FakeGeocoder(GeocodeResult(error="Geocoding request failed: timeout")),
            evidence=evidence_service,
        )
        submitted = await submit(service, db, employee, policy)

        result = service.confirm_location(db, submitted.id, confirm_request(), policy)

        assert result.status == "VERIFIED"
        assert result.distance_km is None
        assert result.distance_flagged is False
        record = db.get(AddressVerification, submitted.id)
        assert record.av_internal_flag is None
        assert record.av_internal_flag_reason is None

    @pytest.mark.parametrize("clock", ["22:59", "01:01", "12:00"])
    @pytest.mark.asyncio
    async def test_outside_window_rejected(self, service, db, employee, policy, clock):
        submitted = await submit(service, db, employee, policy)

        with pytest.raises(PolicyViolationException) as exc:
            service.confirm_location(db, submitted.id, confirm_request(clock=clock), policy)

        assert exc.value.message == "Verification can only be done during your scheduled window"
        assert db.get(AddressVerification, submitted.id).av_status == "PENDING_VERIFICATION"

    @pytest.mark.parametrize("clock", ["23:01", "00:59", "2026-03-14T00:15:00+01:00"])
    @pytest.mark.asyncio
    async def test_inside_window_accepted(self, service, db, employee, policy, clock):
        submitted = await submit(service, db, employee, policy)

        result = service.confirm_location(db, submitted.id, confirm_request(clock=clock), policy)

        assert result.status == "VERIFIED"

    @pytest.mark.asyncio
    async def test_already_verified(self, service, db, employee, policy):
        submitted = await submit(service, db, employee, policy)
        service.confirm_location(db, submitted.id, confirm_request(), policy)

        with pytest.raises(PolicyViolationException) as exc:
            service.confirm_location(db, submitted.id, confirm_request(), policy)
        assert exc.value.message == "Location already verified"

    def test_pending_address_cannot_confirm(self, service, db, employee, policy):
        record = AddressVerification(av_employee_id=employee.ep_id, av_window_start="23:00", av_window_end="01:00")
        db.add(record)
        db.commit()

        with pytest.raises(PolicyViolationException) as exc:
            service.confirm_location(db, record.av_id, confirm_request(), policy)
        assert exc.value.message == "Address must be submitted before verification"

    def test_nothing_submitted(self, service, db, employee, policy):
        with pytest.raises(PolicyViolationException) as exc:
            service.confirm_my_location(db, employee, confirm_request(), policy)
        assert exc.value.message == "No address submitted yet"

    @pytest.mark.asyncio
    async def test_other_employees_record_forbidden(self, service, db, employee, other_employee, policy):
        submitted = await submit(service, db, employee, policy)

        with pytest.raises(ForbiddenException):
            service.confirm_location(db, submitted.id, confirm_request(), policy, employee_id=other_employee.ep_id)

    def test_unknown_record(self, service, db, policy):
        with pytest.raises(NotFoundException):
            service.confirm_location(db, 9999, confirm_request(), policy)


class TestReverification:
    @pytest.mark.asyncio
    async def test_clears_gps_but_keeps_declared_fields(self, service, db, employee, policy):
        submitted = await submit(service, db, employee, policy)
        service.confirm_location(db, submitted.id, confirm_request(lat=FAR_LAT), policy)
        before = db.get(AddressVerification, submitted.id)
        address_details = dict(before.av_address_details)
        images = dict(before.av_images)

        result = service.request_reverification(db, submitted.id, admin_id=900)

        assert result.status == "REVERIFICATION_REQUIRED"
        record = db.get(AddressVerification, submitted.id)
        assert record.av_latitude is None
        assert record.av_longitude is None
        assert record.av_distance_km is None
        assert record.av_distance_flagged is False
        assert record.av_internal_flag is None
        assert record.av_verified_at is None
        assert record.av_address_details == address_details
        assert record.av_images == images
        assert record.av_expected_lat == EXPECTED_LAT
        db.refresh(employee)
        assert employee.ep_status == "REVERIFICATION_REQUIRED"

    @pytest.mark.asyncio
    async def test_reverified_record_can_confirm_again(self, service, db, employee, policy):
        submitted = await submit(service, db, employee, policy)
        service.confirm_location(db, submitted.id, confirm_request(), policy)
        service.request_reverification(db, submitted.id, admin_id=900)

        result = service.confirm_location(db, submitted.id, confirm_request(clock="00:30"), policy)

        assert result.status == "VERIFIED"

    def test_pending_address_cannot_be_reverified(self, service, db, employee):
        record = AddressVerification(av_employee_id=employee.ep_id)
        db.add(record)
        db.commit()

        with pytest.raises(PolicyViolationException):
            service.request_reverification(db, record.av_id, admin_id=900)


class TestReview:
    @pytest.mark.asyncio
    async def test_review_requires_confirmation(self, service, db, employee, policy):
        submitted = await submit(service, db, employee, policy)

        with pytest.raises(PolicyViolationException):
            service.review(db, submitted.id, "APPROVED", None, reviewer_id=900)

    @pytest.mark.asyncio
    async def test_approve(self, service, db, employee, policy):
        submitted = await submit(service, db, employee, policy)
        service.confirm_location(db, submitted.id, confirm_request(), policy)

        result = service.review(db, submitted.id, "APPROVED", "Looks right", reviewer_id=900)

        assert result.review_status == "APPROVED"
        assert result.review_notes == "Looks right"
        assert result.reviewed_at is not None
        assert result.model_dump(by_alias=True)["reviewStatus"] == "APPROVED"
        record = db.get(AddressVerification, submitted.id)
        assert record.av_status == "VERIFIED"
        assert record.av_reviewed_by == 900

    @pytest.mark.asyncio
    async def test_reject_marks_failed(self, service, db, employee, policy):
        submitted = await submit(service, db, employee, policy)
        service.confirm_location(db, submitted.id, confirm_request(lat=FAR_LAT), policy)

        service.review(db, submitted.id, "REJECTED", "Too far", reviewer_id=900)

        record = db.get(AddressVerification, submitted.id)
        assert record.av_status == "FAILED"
        assert record.av_review_status == "REJECTED"

    def test_invalid_decision(self, service, db):
        with pytest.raises(BadRequestException) as exc:
            service.review(db, 1, "MAYBE", None, reviewer_id=900)
        assert exc.value.message == "Review status must be APPROVED or REJECTED"


class TestReads:
    @pytest.mark.asyncio
    async def test_employee_projection_hides_tier(self, service, db, employee, policy):
        submitted = await submit(service, db, employee, policy)
        service.confirm_location(db, submitted.id, confirm_request(lat=FAR_LAT), policy)

        view = service.get_my_latest(db, employee)
        dumped = view.model_dump()

        assert "av_internal_flag" not in dumped
        assert "av_internal_flag_reason" not in dumped
        assert dumped["declared_address"]["kind"] == "structured"
        assert view.display_address == "12 Bode Thomas Street, Surulere, Surulere, Lagos"
        assert dumped["av_distance_flagged"] is True

    def test_no_record_yet(self, service, db, employee):
        assert service.get_my_latest(db, employee) is None
        assert service.get_my_history(db, employee) == []

    @pytest.mark.asyncio
    async def test_admin_list_filters_and_stats(self, service, db, employee, other_employee, policy):
        first = await submit(service, db, employee, policy)
        await submit(service, db, other_employee, policy)
        service.confirm_location(db, first.id, confirm_request(lat=FAR_LAT), policy)

        flagged = service.list_records_admin(db, distance_flagged=True)
        assert [r.av_id for r in flagged] == [first.id]
        assert isinstance(flagged[0], AdminVerificationView)
        assert service.count_records_admin(db, status="PENDING_VERIFICATION") == 1
        assert service.count_records_admin(db, internal_flag="FLAGGED") == 1

        stats = service.get_status_counts(db)
        assert stats.total == 2
        assert stats.verified == 1
        assert stats.pending_verification == 1
        assert stats.distance_flagged == 1

    def test_window_options(self, service, policy):
        options = service.get_window_options(policy)

        assert options.slots[0] == "22:00"
        assert options.slots[-1] == "04:00"
        assert options.default_window_start == "22:00"
        assert options.distance_threshold_km == 1.0

    def test_unknown_user(self, service, db):
        with pytest.raises(NotFoundException):
            service.get_employee_for_user(db, 555)

    def test_employee_lookup(self, service, db, employee):
        found = service.get_employee_for_user(db, 101)
        assert isinstance(found, EmployeeProfile)
        assert found.ep_id == employee.ep_id
