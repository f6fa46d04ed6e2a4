import logging
from enum import Enum
from typing import Optional, Type
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import VerificationStatus, PhotoStatus, LocationType, RejectionReason, TERMINAL_STATUSES
from app.core.exceptions import InvalidInputError, AlreadyFinalizedError, ConflictError
from app.core.identifiers import Clock, utcnow
from app.models.verification import Verification
from app.services.query_service import QueryService
from app.services.transition_log import TransitionLog, snapshot

logger = logging.getLogger(__name__)


def _parse_choice(enum_cls: Type[Enum], value, message: str, field: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidInputError(message, field=field)


class FinalizationService:
    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    async def finalize(
        self,
        record_id: UUID,
        decision,
        rejection_reason=None,
        rejection_notes: Optional[str] = None,
        reviewer_id: Optional[str] = None,
        location_type=None,
    ) -> Verification:
        """Apply the one-way approve/reject decision to a pending request."""
        if decision not in TERMINAL_STATUSES:
            raise InvalidInputError("Status must be 'approved' or 'rejected'", field="status")
        decision = VerificationStatus(decision)

        reason = None
        if decision == VerificationStatus.REJECTED:
            if not rejection_reason:
                raise InvalidInputError(
                    "Rejection reason is required when rejecting a request",
                    field="rejection_reason",
                )
            reason = _parse_choice(
                RejectionReason,
                rejection_reason,
                f"Invalid rejection reason. Must be one of: {', '.join(r.value for r in RejectionReason)}",
                "rejection_reason",
            )

        if decision == VerificationStatus.APPROVED and not location_type:
            raise InvalidInputError(
                "location_type (farm/village) is required when approving a request",
                field="location_type",
            )

        location = None
        if location_type is not None:
            location = _parse_choice(
                LocationType, location_type, "location_type must be 'farm' or 'village'", "location_type"
            )

        queries = QueryService(self.db)
        verification = await queries.get_by_id(record_id)

        if verification.status != VerificationStatus.PENDING:
            raise AlreadyFinalizedError(verification.status.value, f"mark request as {decision.value}")

        if decision == VerificationStatus.APPROVED and not any(
            photo.status == PhotoStatus.APPROVED for photo in verification.photos
        ):
            raise ConflictError(
                "Cannot approve request. At least one photo must be approved first.",
                details={"photo_summary": verification.photo_summary()},
            )

        before = snapshot(verification)
        now = self.clock()
        values = {"status": decision, "reviewed_at": now, "updated_at": now}
        if reviewer_id:
            values["reviewed_by"] = reviewer_id
        if decision == VerificationStatus.REJECTED:
            values["rejection_reason"] = reason
            if rejection_notes:
                values["rejection_notes"] = rejection_notes
        if decision == VerificationStatus.APPROVED:
            values["location_type"] = location

        # Conditional on pending so two concurrent decisions cannot both win
        result = await self.db.execute(
            update(Verification)
            .where(
                Verification.id == record_id,
                Verification.status == VerificationStatus.PENDING,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            current = await queries.get_by_id(record_id)
            raise AlreadyFinalizedError(current.status.value, f"mark request as {decision.value}")

        verification = await queries.get_by_id(record_id)
        await TransitionLog(self.db, clock=self.clock).record(verification, "finalize", before, actor_id=reviewer_id)
        logger.info(f"Verification {verification.request_id} {decision.value} by {reviewer_id or 'unknown reviewer'}")
        return verification

    async def set_location_type(self, record_id: UUID, location_type) -> Verification:
        """Reclassify the location of any request, regardless of its status."""
        if not location_type:
            raise InvalidInputError("location_type must be 'farm' or 'village'", field="location_type")
        location = _parse_choice(
            LocationType, location_type, "location_type must be 'farm' or 'village'", "location_type"
        )

        verification = await QueryService(self.db).get_by_id(record_id)
        before = snapshot(verification)
        verification.location_type = location
        verification.updated_at = self.clock()
        await self.db.flush()
        await TransitionLog(self.db, clock=self.clock).record(verification, "update_location_type", before)

        logger.info(f"Location type of {verification.request_id} set to {location.value}")
        return verification
