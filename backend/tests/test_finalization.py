import uuid

import pytest
from sqlalchemy.orm.attributes import set_committed_value

from app.core.constants import VerificationStatus, PhotoStatus, LocationType, RejectionReason
from app.core.exceptions import InvalidInputError, NotFoundError, AlreadyFinalizedError, ConflictError
from app.services.finalization_service import FinalizationService
from app.services.photo_review_service import PhotoReviewService
from app.services.query_service import QueryService
from tests.conftest import make_verification


async def _with_approved_photo(db_session, clock):
    verification = await make_verification(db_session, photo_count=2)
    await PhotoReviewService(db_session, clock=clock).review_photos(
        verification.id, [verification.photos[0].id]
    )
    return verification


@pytest.mark.asyncio
async def test_approve_sets_location_type_and_review_metadata(db_session, clock):
    verification = await _with_approved_photo(db_session, clock)

    service = FinalizationService(db_session, clock=clock)
    approved = await service.finalize(
        verification.id, "approved", reviewer_id="support-7", location_type="farm"
    )

    assert approved.status == VerificationStatus.APPROVED
    assert approved.location_type == LocationType.FARM
    assert approved.reviewed_by == "support-7"
    assert approved.reviewed_at is not None
    assert approved.rejection_reason is None


@pytest.mark.asyncio
async def test_approve_needs_an_approved_photo(db_session, clock):
    verification = await make_verification(db_session)

    service = FinalizationService(db_session, clock=clock)
    with pytest.raises(ConflictError):
        await service.finalize(verification.id, "approved", location_type="village")

    assert (await QueryService(db_session).get_by_id(verification.id)).status == VerificationStatus.PENDING


@pytest.mark.asyncio
async def test_approve_after_all_photos_rejected(db_session, clock):
    verification = await make_verification(db_session)
    await PhotoReviewService(db_session, clock=clock).review_photos(verification.id, [])

    service = FinalizationService(db_session, clock=clock)
    with pytest.raises(ConflictError):
        await service.finalize(verification.id, "approved", location_type="farm")


@pytest.mark.asyncio
async def test_reject_with_other_reason(db_session, clock):
    verification = await make_verification(db_session)

    service = FinalizationService(db_session, clock=clock)
    rejected = await service.finalize(
        verification.id,
        "rejected",
        rejection_reason="other",
        rejection_notes="Photo shows a different field",
        location_type="village",
    )

    assert rejected.status == VerificationStatus.REJECTED
    assert rejected.rejection_reason == RejectionReason.OTHER
    assert rejected.rejection_notes == "Photo shows a different field"
    assert rejected.location_type is None
    assert rejected.reviewed_at is not None


@pytest.mark.asyncio
async def test_reject_does_not_need_reviewed_photos(db_session, clock):
    verification = await make_verification(db_session)

    service = FinalizationService(db_session, clock=clock)
    rejected = await service.finalize(verification.id, "rejected", rejection_reason="poor_photo_quality")

    assert rejected.status == VerificationStatus.REJECTED
    assert all(photo.status == PhotoStatus.PENDING for photo in rejected.photos)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kwargs",
    [
        {"decision": "pending"},
        {"decision": None},
        {"decision": "APPROVED", "location_type": "farm"},
        {"decision": "rejected"},
        {"decision": "rejected", "rejection_reason": "not-a-real-reason"},
        {"decision": "approved"},
        {"decision": "approved", "location_type": "field"},
        {"decision": "rejected", "rejection_reason": "other", "location_type": "field"},
        {"decision": "rejected", "rejection_reason": "other", "location_type": ""},
    ],
)
async def test_invalid_input_is_checked_before_lookup(db_session, clock, kwargs):
    service = FinalizationService(db_session, clock=clock)
    # Unknown id: input validation must fail first
    with pytest.raises(InvalidInputError):
        await service.finalize(uuid.uuid4(), **kwargs)


@pytest.mark.asyncio
async def test_finalize_unknown_record(db_session, clock):
    service = FinalizationService(db_session, clock=clock)
    with pytest.raises(NotFoundError):
        await service.finalize(uuid.uuid4(), "rejected", rejection_reason="other")


@pytest.mark.asyncio
async def test_second_finalize_is_refused_and_changes_nothing(db_session, clock):
    verification = await _with_approved_photo(db_session, clock)

    service = FinalizationService(db_session, clock=clock)
    approved = await service.finalize(verification.id, "approved", location_type="farm", reviewer_id="a")
    reviewed_at = approved.reviewed_at

    with pytest.raises(AlreadyFinalizedError):
        await service.finalize(verification.id, "rejected", rejection_reason="other", reviewer_id="b")

    current = await QueryService(db_session).get_by_id(verification.id)
    assert current.status == VerificationStatus.APPROVED
    assert current.reviewed_by == "a"
    assert current.reviewed_at == reviewed_at
    assert current.rejection_reason is None


@pytest.mark.asyncio
async def test_concurrent_decision_loses_on_conditional_update(db_session, clock, monkeypatch):
    verification = await _with_approved_photo(db_session, clock)
    service = FinalizationService(db_session, clock=clock)
    await service.finalize(verification.id, "approved", location_type="farm")

    # Make the precondition read see a stale pending record, as a racing request would
    real_get_by_id = QueryService.get_by_id
    reads = []

    async def stale_get_by_id(self, record_id):
        record = await real_get_by_id(self, record_id)
        reads.append(record_id)
        if len(reads) == 1:
            set_committed_value(record, "status", VerificationStatus.PENDING)
        return record

    monkeypatch.setattr(QueryService, "get_by_id", stale_get_by_id)

    with pytest.raises(AlreadyFinalizedError):
        await service.finalize(verification.id, "rejected", rejection_reason="other")

    monkeypatch.undo()
    current = await QueryService(db_session).get_by_id(verification.id)
    assert current.status == VerificationStatus.APPROVED
    assert current.rejection_reason is None


@pytest.mark.asyncio
@pytest.mark.parametrize("status", list(VerificationStatus))
async def test_set_location_type_ignores_status(db_session, clock, status):
    verification = await make_verification(db_session, status=status)

    service = FinalizationService(db_session, clock=clock)
    updated = await service.set_location_type(verification.id, "village")

    assert updated.location_type == LocationType.VILLAGE
    assert updated.status == status


@pytest.mark.asyncio
@pytest.mark.parametrize("location_type", [None, "", "field"])
async def test_set_location_type_validates_value(db_session, clock, location_type):
    verification = await make_verification(db_session)

    service = FinalizationService(db_session, clock=clock)
    with pytest.raises(InvalidInputError):
        await service.set_location_type(verification.id, location_type)


@pytest.mark.asyncio
async def test_set_location_type_unknown_record(db_session, clock):
    service = FinalizationService(db_session, clock=clock)
    with pytest.raises(NotFoundError):
        await service.set_location_type(uuid.uuid4(), "farm")
