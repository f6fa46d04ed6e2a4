from app.models.verification import Verification, VerificationPhoto
from app.models.transition import VerificationTransition

__all__ = [
    "Verification",
    "VerificationPhoto",
    "VerificationTransition",
]
