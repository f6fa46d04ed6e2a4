from app.schemas.verification import (
    SubmissionOverrides,
    ReviewImagesRequest,
    FinalizeRequest,
    LocationTypeUpdate,
    PhotoResponse,
    PhotoSummary,
    LocationResponse,
    VerificationResponse,
    VerificationStatusBrief,
    CurrentStatusResponse,
    TransitionResponse,
    Pagination,
    AdminVerificationList,
    serialize_verification,
    serialize_status_brief,
)

__all__ = [
    # Requests
    "SubmissionOverrides",
    "ReviewImagesRequest",
    "FinalizeRequest",
    "LocationTypeUpdate",
    # Responses
    "PhotoResponse",
    "PhotoSummary",
    "LocationResponse",
    "VerificationResponse",
    "VerificationStatusBrief",
    "CurrentStatusResponse",
    "TransitionResponse",
    "Pagination",
    "AdminVerificationList",
    "serialize_verification",
    "serialize_status_brief",
]
