"""
Farmer and reviewer routes - submission, photo review, final decision and status lookups
"""
import json
import logging
import random
from typing import Optional, List
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.api.deps import get_clock, get_rng, get_crop_directory, get_media_store
from app.core.identifiers import Clock
from app.schemas.verification import (
    ReviewImagesRequest,
    FinalizeRequest,
    LocationTypeUpdate,
    SubmissionOverrides,
    CurrentStatusResponse,
    TransitionResponse,
    serialize_verification,
    serialize_status_brief,
)
from app.services.crop_directory import CropDirectory
from app.services.finalization_service import FinalizationService
from app.services.media_store import MediaStore, PhotoUpload
from app.services.photo_review_service import PhotoReviewService
from app.services.query_service import QueryService
from app.services.submission_service import SubmissionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/verifications", tags=["Verifications"])


def _parse_location_field(raw: Optional[str]) -> Optional[dict]:
    """The location arrives as a JSON string in the multipart form."""
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


@router.post("/submit")
async def submit_verification(
    crop_id: Optional[str] = Form(default=None),
    location: Optional[str] = Form(default=None),
    photos: Optional[List[UploadFile]] = File(default=None),
    full_name: Optional[str] = Form(default=None),
    phone: Optional[str] = Form(default=None),
    village: Optional[str] = Form(default=None),
    taluk: Optional[str] = Form(default=None),
    district: Optional[str] = Form(default=None),
    quantity: Optional[str] = Form(default=None),
    variety: Optional[str] = Form(default=None),
    moisture: Optional[str] = Form(default=None),
    will_dry: Optional[str] = Form(default=None),
    db: AsyncSession = Depends(get_db),
    crop_directory: CropDirectory = Depends(get_crop_directory),
    media_store: MediaStore = Depends(get_media_store),
    clock: Clock = Depends(get_clock),
    rng: random.Random = Depends(get_rng),
):
    """Submit a new verification request (multipart, up to 3 photos)."""
    uploads = [
        PhotoUpload(content=await photo.read(), filename=photo.filename or "", content_type=photo.content_type)
        for photo in (photos or [])
    ]
    overrides = SubmissionOverrides(
        full_name=full_name,
        phone=phone,
        village=village,
        taluk=taluk,
        district=district,
        quantity=quantity,
        variety=variety,
        moisture=moisture,
        will_dry=will_dry,
    )

    service = SubmissionService(db, crop_directory, media_store, clock=clock, rng=rng)
    verification, previous = await service.submit(
        crop_id=crop_id,
        photos=uploads,
        location=_parse_location_field(location),
        overrides=overrides.model_dump(exclude_none=True),
    )

    return {
        "message": "Verification submitted successfully",
        "data": {
            **serialize_verification(verification).model_dump(mode="json"),
            "is_resubmission": previous is not None,
        },
    }


@router.patch("/{verification_id}/review-images")
async def review_images(
    verification_id: UUID,
    body: ReviewImagesRequest,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Approve the listed photos, reject the rest."""
    service = PhotoReviewService(db, clock=clock)
    verification, summary = await service.review_photos(verification_id, body.approved_photo_ids)

    view = serialize_verification(verification)
    return {
        "message": "Image review completed successfully",
        "data": {
            "id": str(verification.id),
            "request_id": verification.request_id,
            "photos": [photo.model_dump(mode="json") for photo in view.photos],
            "summary": summary,
        },
    }


@router.patch("/{verification_id}/finalize")
async def finalize_verification(
    verification_id: UUID,
    body: FinalizeRequest,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Approve or reject a pending request."""
    service = FinalizationService(db, clock=clock)
    verification = await service.finalize(
        verification_id,
        decision=body.status,
        rejection_reason=body.rejection_reason,
        rejection_notes=body.rejection_notes,
        reviewer_id=body.reviewed_by,
        location_type=body.location_type,
    )

    return {
        "message": f"Verification request {verification.status.value} successfully",
        "data": serialize_verification(verification).model_dump(mode="json"),
    }


@router.patch("/{verification_id}/update-location-type")
async def update_location_type(
    verification_id: UUID,
    body: LocationTypeUpdate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Reclassify the location of a request (farm or village)."""
    service = FinalizationService(db, clock=clock)
    verification = await service.set_location_type(verification_id, body.location_type)

    return {
        "message": "Location type updated successfully",
        "data": {
            "id": str(verification.id),
            "location_type": verification.location_type.value,
            "coordinates": verification.coordinates,
        },
    }


@router.get("/user/{user_id}")
async def get_user_verifications(
    user_id: str,
    db: AsyncSession = Depends(get_db),
):
    """All requests of a farmer, newest first."""
    service = QueryService(db)
    verifications = await service.list_by_owner(user_id)
    return {
        "message": "Verifications fetched successfully",
        "data": [serialize_verification(v).model_dump(mode="json") for v in verifications],
    }


@router.get("/user/{user_id}/current-status")
async def get_current_status(
    user_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Whether the farmer may submit a new request."""
    service = QueryService(db)
    status = await service.get_current_status(user_id)
    latest = status["verification"]
    response = CurrentStatusResponse(
        has_verification=status["has_verification"],
        can_submit=status["can_submit"],
        block_message=status["block_message"],
        verification=serialize_status_brief(latest) if latest else None,
    )
    return {
        "message": "Current status fetched successfully" if latest else "No verification requests found",
        "data": response.model_dump(mode="json"),
    }


@router.get("/{verification_id}")
async def get_verification(
    verification_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Details of a single request with its photo summary."""
    service = QueryService(db)
    verification = await service.get_by_id(verification_id)
    return {
        "message": "Verification fetched successfully",
        "data": serialize_verification(verification).model_dump(mode="json"),
    }


@router.get("/{verification_id}/history")
async def get_verification_history(
    verification_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Lifecycle transitions of a request, oldest first."""
    service = QueryService(db)
    await service.get_by_id(verification_id)
    transitions = await service.list_transitions(verification_id)
    return {
        "message": "Verification history fetched successfully",
        "data": [TransitionResponse.model_validate(t).model_dump(mode="json") for t in transitions],
    }
