import enum


class VerificationStatus(str, enum.Enum):
    """Overall status of a verification request"""
    PENDING = "pending"           # waiting for the support team
    APPROVED = "approved"         # farmer verified (terminal)
    REJECTED = "rejected"         # rejected, farmer may resubmit (terminal)


class PhotoStatus(str, enum.Enum):
    """Per-photo review status"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LocationType(str, enum.Enum):
    """Classification of the submitted coordinate, set by a reviewer"""
    FARM = "farm"
    VILLAGE = "village"


class RejectionReason(str, enum.Enum):
    """Closed set of reasons a reviewer may give when rejecting"""
    POOR_PHOTO_QUALITY = "poor_photo_quality"           # blurry or unclear photos
    FACE_NOT_VISIBLE = "face_not_visible"
    INCORRECT_LOCATION = "incorrect_location"           # location doesn't match farm/village
    INSUFFICIENT_PHOTOS = "insufficient_photos"
    DUPLICATE_REQUEST = "duplicate_request"
    CROP_MISMATCH = "crop_mismatch"                     # crop in photo differs from declared crop
    FAKE_OR_MANIPULATED = "fake_or_manipulated"
    INCOMPLETE_INFORMATION = "incomplete_information"
    SUSPICIOUS_ACTIVITY = "suspicious_activity"
    OTHER = "other"                                     # explained in rejection notes


TERMINAL_STATUSES = (VerificationStatus.APPROVED, VerificationStatus.REJECTED)

# Statuses accepted by the admin listing
ADMIN_STATUS_FILTERS = ("pending", "approved", "rejected", "all")

# Messages shown to a farmer whose latest request blocks a new submission
BLOCK_MESSAGES = {
    VerificationStatus.PENDING: "Your request is under review by the support team.",
    VerificationStatus.APPROVED: "Cannot submit new request. You are already verified.",
}

# Fields a farmer may override on submission; everything else comes from the crop directory
OVERRIDE_FIELDS = (
    "full_name",
    "phone",
    "village",
    "taluk",
    "district",
    "quantity",
    "variety",
    "moisture",
    "will_dry",
)

# Fields the admin listing matches as case-insensitive substrings
PARTIAL_MATCH_FIELDS = ("phone", "full_name", "crop_name", "village", "taluk", "district")
