import asyncio
import logging
import math
import random
import uuid
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.constants import VerificationStatus, PhotoStatus, BLOCK_MESSAGES, OVERRIDE_FIELDS
from app.core.exceptions import InvalidInputError, ConflictError, StorageError, UploadFailedError
from app.core.identifiers import Clock, utcnow
from app.models.verification import Verification, VerificationPhoto
from app.services.crop_directory import CropDirectory, CropDetails
from app.services.identity_service import RequestIdentityService
from app.services.media_store import MediaStore, PhotoUpload
from app.services.query_service import QueryService
from app.services.transition_log import TransitionLog

logger = logging.getLogger(__name__)


class SubmissionService:
    def __init__(
        self,
        db: AsyncSession,
        crop_directory: CropDirectory,
        media_store: MediaStore,
        clock: Clock = utcnow,
        rng: random.Random = None,
    ):
        self.db = db
        self.crop_directory = crop_directory
        self.media_store = media_store
        self.clock = clock
        self.identity = RequestIdentityService(db, rng=rng, clock=clock)
        self.queries = QueryService(db)

    async def submit(
        self,
        crop_id: Optional[str],
        photos: List[PhotoUpload],
        location: Optional[dict],
        overrides: Optional[dict] = None,
    ) -> Tuple[Verification, Optional[Verification]]:
        """Create a new verification request.

        Returns the new record and the owner's previous latest record (a
        rejected one when this is a resubmission, otherwise None).
        """
        crop_id = (crop_id or "").strip()
        self._validate_photos(crop_id, photos)

        crop = await self.crop_directory.lookup(crop_id)
        owner_id = crop.owner_user_id
        logger.info(f"Processing verification for user_id={owner_id} crop_id={crop_id} crop_name={crop.crop_name}")

        previous = await self.queries.get_latest_for_owner(owner_id)
        self._check_can_submit(previous)

        longitude, latitude = self._parse_location(location)

        urls = await self._upload_photos(photos, owner_id, crop_id)

        now = self.clock()
        verification = Verification(
            id=uuid.uuid4(),
            request_id=await self.identity.generate_unique(),
            user_id=owner_id,
            crop_id=crop_id,
            crop_name=crop.crop_name,
            longitude=longitude,
            latitude=latitude,
            status=VerificationStatus.PENDING,
            created_at=now,
            updated_at=now,
            photos=[
                VerificationPhoto(id=uuid.uuid4(), position=index, url=url, status=PhotoStatus.PENDING)
                for index, url in enumerate(urls)
            ],
            **self._merge_fields(crop, overrides),
        )
        self.db.add(verification)
        try:
            await self.db.flush()
        except IntegrityError:
            # Another submission for this owner was stored since the check above
            await self.db.rollback()
            logger.warning(f"Submission for user_id={owner_id} lost a race, re-checking latest request")
            self._check_can_submit(await self.queries.get_latest_for_owner(owner_id))
            raise

        await TransitionLog(self.db, clock=self.clock).record(verification, "submit", before=None, actor_id=owner_id)

        logger.info(f"New verification created: {verification.id} ({verification.request_id})")
        if previous is not None:
            logger.info(
                f"New request created for user_id={owner_id} after previous rejection (ID: {previous.id})"
            )
        return verification, previous

    def _validate_photos(self, crop_id: str, photos: List[PhotoUpload]) -> None:
        if not crop_id or not photos:
            raise InvalidInputError("Missing required fields: crop_id or photos")
        if len(photos) > settings.MAX_PHOTOS:
            raise InvalidInputError(f"At most {settings.MAX_PHOTOS} photos are allowed", field="photos")
        for index, photo in enumerate(photos):
            if not photo.content:
                raise InvalidInputError(f"Photo {index + 1} is empty", field="photos")
            if len(photo.content) > settings.MAX_PHOTO_BYTES:
                raise InvalidInputError(
                    f"Photo {index + 1} exceeds {settings.MAX_PHOTO_BYTES} bytes",
                    field="photos",
                )

    def _check_can_submit(self, previous: Optional[Verification]) -> None:
        if previous is None or previous.status == VerificationStatus.REJECTED:
            return

        details = {
            "existing_request_id": str(previous.id),
            "request_id": previous.request_id,
            "status": previous.status.value,
            "can_submit": False,
        }
        if previous.status == VerificationStatus.APPROVED:
            details["approved_at"] = previous.reviewed_at.isoformat() if previous.reviewed_at else None
        else:
            details["created_at"] = previous.created_at.isoformat() if previous.created_at else None
        raise ConflictError(BLOCK_MESSAGES[previous.status], details=details)

    @staticmethod
    def _parse_location(location: Optional[dict]) -> Tuple[float, float]:
        if not isinstance(location, dict) or location.get("lat") is None or location.get("lng") is None:
            raise InvalidInputError("Invalid location data", field="location")
        try:
            latitude = float(location["lat"])
            longitude = float(location["lng"])
        except (TypeError, ValueError):
            raise InvalidInputError("Invalid location data", field="location")

        if not (math.isfinite(latitude) and math.isfinite(longitude)):
            raise InvalidInputError("Invalid location data", field="location")
        if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
            raise InvalidInputError("Location coordinates are out of range", field="location")
        return longitude, latitude

    async def _upload_photos(self, photos: List[PhotoUpload], owner_id: str, crop_id: str) -> List[str]:
        logger.info(f"Uploading {len(photos)} photos for user {owner_id}")
        results = await asyncio.gather(
            *[
                self.media_store.put(photo.content, f"{owner_id}_{crop_id}_{index}")
                for index, photo in enumerate(photos)
            ],
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, BaseException)]
        for failure in failures:
            if not isinstance(failure, StorageError):
                raise failure
        if failures or not all(results):
            logger.error(f"Photo upload failed for user {owner_id}: {len(failures)} of {len(photos)} failed")
            raise UploadFailedError(details={"failed": len(failures) or 1, "total": len(photos)})
        return list(results)

    @staticmethod
    def _merge_fields(crop: CropDetails, overrides: Optional[dict]) -> dict:
        """Crop directory values are the defaults; non-empty farmer values win."""
        fields = crop.defaults()
        for name in OVERRIDE_FIELDS:
            value = (overrides or {}).get(name)
            if value is not None and str(value).strip():
                fields[name] = str(value).strip()
        return fields
