import logging
from typing import Iterable, Tuple
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import VerificationStatus, PhotoStatus
from app.core.exceptions import InvalidInputError, AlreadyFinalizedError
from app.core.identifiers import Clock, utcnow
from app.models.verification import Verification
from app.services.query_service import QueryService
from app.services.transition_log import TransitionLog, snapshot

logger = logging.getLogger(__name__)


class PhotoReviewService:
    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    async def review_photos(self, record_id: UUID, approved_photo_ids: Iterable) -> Tuple[Verification, dict]:
        """Approve the listed photos and reject every other photo of a pending request."""
        if approved_photo_ids is None or isinstance(approved_photo_ids, (str, bytes, dict)):
            raise InvalidInputError("approved_photo_ids must be an array", field="approved_photo_ids")
        approved = {str(photo_id) for photo_id in approved_photo_ids}

        queries = QueryService(self.db)
        verification = await queries.get_by_id(record_id)

        if verification.status != VerificationStatus.PENDING:
            raise AlreadyFinalizedError(verification.status.value, "review images")

        before = snapshot(verification)

        # Claim the record while it is still pending, then rewrite its photos
        result = await self.db.execute(
            update(Verification)
            .where(
                Verification.id == record_id,
                Verification.status == VerificationStatus.PENDING,
            )
            .values(updated_at=self.clock())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            current = await queries.get_by_id(record_id)
            raise AlreadyFinalizedError(current.status.value, "review images")

        for photo in verification.photos:
            photo.status = PhotoStatus.APPROVED if str(photo.id) in approved else PhotoStatus.REJECTED
        await self.db.flush()

        verification = await queries.get_by_id(record_id)
        summary = verification.photo_summary()
        await TransitionLog(self.db, clock=self.clock).record(verification, "review_images", before)
        logger.info(
            f"Reviewed photos of {verification.request_id}: "
            f"{summary['approved']} approved, {summary['rejected']} rejected"
        )
        return verification, summary
