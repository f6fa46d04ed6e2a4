import uuid

from sqlalchemy import Column, String, Integer, Float, Text, DateTime, Enum, ForeignKey, Index, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.database import Base
from app.core.constants import VerificationStatus, PhotoStatus, LocationType, RejectionReason


ACTIVE_STATUS_CLAUSE = "status IN ('pending', 'approved')"


def enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Verification(Base):
    """One crop verification submission attempt"""
    __tablename__ = "verifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    request_id = Column(String(32), unique=True, index=True, nullable=False)    # OR-REQ-<year>-XXXXXX

    # Subject of verification
    user_id = Column(String(64), nullable=False, index=True)        # owner from the crop directory
    crop_id = Column(String(64), nullable=False, index=True)
    crop_name = Column(String(100), nullable=False)

    # Farmer and crop details (crop directory defaults, farmer overrides)
    full_name = Column(String(200), nullable=True)
    phone = Column(String(20), nullable=True)
    village = Column(String(100), nullable=True)
    taluk = Column(String(100), nullable=True)
    district = Column(String(100), nullable=True)
    quantity = Column(String(50), nullable=True)
    variety = Column(String(100), nullable=True)
    moisture = Column(String(20), nullable=True)
    will_dry = Column(String(10), nullable=True)

    # Location - location_type is set by a reviewer, never by the farmer
    longitude = Column(Float, nullable=False)
    latitude = Column(Float, nullable=False)
    location_type = Column(
        Enum(LocationType, name="locationtype", values_callable=enum_values),
        nullable=True,
    )

    # Decision
    status = Column(
        Enum(VerificationStatus, name="verificationstatus", values_callable=enum_values),
        nullable=False,
        default=VerificationStatus.PENDING,
        index=True,
    )
    rejection_reason = Column(
        Enum(RejectionReason, name="rejectionreason", values_callable=enum_values),
        nullable=True,
    )
    rejection_notes = Column(Text, nullable=True)

    # Review metadata
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    photos = relationship(
        "VerificationPhoto",
        back_populates="verification",
        order_by="VerificationPhoto.position",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_verifications_user_id_created_at", "user_id", "created_at"),
        # At most one pending or approved request per owner, enforced at write time
        Index(
            "uq_verifications_active_owner",
            "user_id",
            unique=True,
            postgresql_where=text(ACTIVE_STATUS_CLAUSE),
            sqlite_where=text(ACTIVE_STATUS_CLAUSE),
        ),
    )

    @property
    def coordinates(self) -> list:
        return [self.longitude, self.latitude]

    def photo_summary(self) -> dict:
        statuses = [photo.status for photo in self.photos]
        return {
            "total": len(statuses),
            "approved": statuses.count(PhotoStatus.APPROVED),
            "rejected": statuses.count(PhotoStatus.REJECTED),
            "pending": statuses.count(PhotoStatus.PENDING),
        }


class VerificationPhoto(Base):
    """A submitted photo with its own review status"""
    __tablename__ = "verification_photos"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    verification_id = Column(UUID(as_uuid=True), ForeignKey("verifications.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)                       # upload order, 0-based
    url = Column(String(500), nullable=False)
    status = Column(
        Enum(PhotoStatus, name="photostatus", values_callable=enum_values),
        nullable=False,
        default=PhotoStatus.PENDING,
    )

    # Relationships
    verification = relationship("Verification", back_populates="photos")
