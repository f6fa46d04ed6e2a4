import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import VerificationStatus
from app.core.identifiers import Clock, utcnow
from app.models.transition import VerificationTransition
from app.models.verification import Verification

logger = logging.getLogger(__name__)

TRACKED_FIELDS = ("status", "location_type", "rejection_reason", "rejection_notes", "reviewed_by")


def _value(value):
    return getattr(value, "value", value)


def snapshot(verification: Verification) -> dict:
    """Reviewable state of a request: decision fields and per-photo status."""
    state = {field: _value(getattr(verification, field)) for field in TRACKED_FIELDS}
    state["photos"] = {str(photo.id): _value(photo.status) for photo in verification.photos}
    return state


def diff_states(before: Optional[dict], after: dict) -> dict:
    """Fields that differ between two snapshots, as {"from": x, "to": y}; photos are keyed by id."""
    before = before or {}
    changes = {}
    for field in TRACKED_FIELDS:
        if before.get(field) != after.get(field):
            changes[field] = {"from": before.get(field), "to": after.get(field)}

    before_photos = before.get("photos") or {}
    photo_changes = {
        photo_id: {"from": before_photos.get(photo_id), "to": status}
        for photo_id, status in after.get("photos", {}).items()
        if before_photos.get(photo_id) != status
    }
    if photo_changes:
        changes["photos"] = photo_changes
    return changes


class TransitionLog:
    """Append-only history of lifecycle mutations, written in the caller's transaction."""

    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    async def record(
        self,
        verification: Verification,
        action: str,
        before: Optional[dict],
        actor_id: Optional[str] = None,
    ) -> VerificationTransition:
        after = snapshot(verification)
        entry = VerificationTransition(
            verification_id=verification.id,
            action=action,
            actor_id=actor_id,
            from_status=VerificationStatus(before["status"]) if before else None,
            to_status=VerificationStatus(after["status"]),
            changes=diff_states(before, after),
            created_at=self.clock(),
        )
        self.db.add(entry)
        await self.db.flush()
        logger.debug(f"Recorded {action} on {verification.request_id}: {sorted(entry.changes)}")
        return entry
