import uuid

from sqlalchemy import Column, String, DateTime, Enum, ForeignKey, JSON, func
from sqlalchemy.dialects.postgresql import UUID

from app.database import Base
from app.core.constants import VerificationStatus
from app.models.verification import enum_values


class VerificationTransition(Base):
    """One lifecycle mutation of a verification request, with the fields it changed"""
    __tablename__ = "verification_transitions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    verification_id = Column(UUID(as_uuid=True), ForeignKey("verifications.id"), nullable=False, index=True)
    action = Column(String(50), nullable=False)             # submit, review_images, finalize, update_location_type
    actor_id = Column(String(100), nullable=True)           # farmer or reviewer, when known

    # Status before and after; from_status is empty for a submission
    from_status = Column(
        Enum(VerificationStatus, name="verificationstatus", values_callable=enum_values),
        nullable=True,
    )
    to_status = Column(
        Enum(VerificationStatus, name="verificationstatus", values_callable=enum_values),
        nullable=False,
    )
    changes = Column(JSON, nullable=False)                  # {field: {"from": x, "to": y}}, photos keyed by id

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
