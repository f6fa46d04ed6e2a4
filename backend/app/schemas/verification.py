from typing import Optional, List
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.constants import VerificationStatus, PhotoStatus, LocationType, RejectionReason
from app.models.verification import Verification


# === Submission ===
class SubmissionOverrides(BaseModel):
    """Farmer supplied values that replace the crop directory defaults"""
    full_name: Optional[str] = Field(default=None, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=20)
    village: Optional[str] = Field(default=None, max_length=100)
    taluk: Optional[str] = Field(default=None, max_length=100)
    district: Optional[str] = Field(default=None, max_length=100)
    quantity: Optional[str] = Field(default=None, max_length=50)
    variety: Optional[str] = Field(default=None, max_length=100)
    moisture: Optional[str] = Field(default=None, max_length=20)
    will_dry: Optional[str] = Field(default=None, max_length=10)


# === Review ===
class ReviewImagesRequest(BaseModel):
    """Photo ids to approve; every other photo is rejected"""
    approved_photo_ids: Optional[List[str]] = None


class FinalizeRequest(BaseModel):
    """Final decision. Values are validated by the service so that errors carry the INVALID_INPUT code."""
    status: Optional[str] = None
    rejection_reason: Optional[str] = None
    rejection_notes: Optional[str] = Field(default=None, max_length=2000)
    reviewed_by: Optional[str] = Field(default=None, max_length=100)
    location_type: Optional[str] = None


class LocationTypeUpdate(BaseModel):
    location_type: Optional[str] = None


# === Responses ===
class PhotoResponse(BaseModel):
    id: UUID
    url: str
    status: PhotoStatus

    model_config = {"from_attributes": True}


class PhotoSummary(BaseModel):
    total: int
    approved: int
    rejected: int
    pending: int


class LocationResponse(BaseModel):
    type: str = "Point"
    coordinates: List[float]  # [lng, lat]
    location_type: Optional[LocationType] = None


class VerificationResponse(BaseModel):
    id: UUID
    request_id: str
    user_id: str
    crop_id: str
    crop_name: str
    full_name: Optional[str]
    phone: Optional[str]
    village: Optional[str]
    taluk: Optional[str]
    district: Optional[str]
    quantity: Optional[str]
    variety: Optional[str]
    moisture: Optional[str]
    will_dry: Optional[str]
    photos: List[PhotoResponse]
    location: LocationResponse
    status: VerificationStatus
    rejection_reason: Optional[RejectionReason]
    rejection_notes: Optional[str]
    reviewed_at: Optional[datetime]
    reviewed_by: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    photo_summary: PhotoSummary


class VerificationStatusBrief(BaseModel):
    """Latest request as shown on the farmer's status screen"""
    id: UUID
    request_id: str
    status: VerificationStatus
    rejection_reason: Optional[RejectionReason]
    rejection_notes: Optional[str]
    photo_summary: PhotoSummary
    created_at: Optional[datetime]
    reviewed_at: Optional[datetime]


class CurrentStatusResponse(BaseModel):
    has_verification: bool
    can_submit: bool
    block_message: Optional[str] = None
    verification: Optional[VerificationStatusBrief] = None


class TransitionResponse(BaseModel):
    id: UUID
    action: str
    actor_id: Optional[str]
    from_status: Optional[VerificationStatus]
    to_status: VerificationStatus
    changes: dict
    created_at: Optional[datetime]

    model_config = {"from_attributes": True}


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_requests: int
    requests_per_page: int
    has_next_page: bool
    has_prev_page: bool


class AdminVerificationList(BaseModel):
    requests: List[VerificationResponse]
    pagination: Pagination
    applied_filters: dict = {}


def serialize_verification(verification: Verification) -> VerificationResponse:
    """Build the API view of a record, nesting the location and adding the photo summary."""
    return VerificationResponse(
        id=verification.id,
        request_id=verification.request_id,
        user_id=verification.user_id,
        crop_id=verification.crop_id,
        crop_name=verification.crop_name,
        full_name=verification.full_name,
        phone=verification.phone,
        village=verification.village,
        taluk=verification.taluk,
        district=verification.district,
        quantity=verification.quantity,
        variety=verification.variety,
        moisture=verification.moisture,
        will_dry=verification.will_dry,
        photos=[PhotoResponse.model_validate(photo) for photo in verification.photos],
        location=LocationResponse(
            coordinates=verification.coordinates,
            location_type=verification.location_type,
        ),
        status=verification.status,
        rejection_reason=verification.rejection_reason,
        rejection_notes=verification.rejection_notes,
        reviewed_at=verification.reviewed_at,
        reviewed_by=verification.reviewed_by,
        created_at=verification.created_at,
        updated_at=verification.updated_at,
        photo_summary=PhotoSummary(**verification.photo_summary()),
    )


def serialize_status_brief(verification: Verification) -> VerificationStatusBrief:
    return VerificationStatusBrief(
        id=verification.id,
        request_id=verification.request_id,
        status=verification.status,
        rejection_reason=verification.rejection_reason,
        rejection_notes=verification.rejection_notes,
        photo_summary=PhotoSummary(**verification.photo_summary()),
        created_at=verification.created_at,
        reviewed_at=verification.reviewed_at,
    )
