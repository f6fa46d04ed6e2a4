import logging
import random

from sqlalchemy import select, exists
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import IdentityExhaustedError
from app.core.identifiers import Clock, generate_request_id, utcnow
from app.models.verification import Verification

logger = logging.getLogger(__name__)


class RequestIdentityService:
    def __init__(
        self,
        db: AsyncSession,
        rng: random.Random = None,
        clock: Clock = utcnow,
        max_attempts: int = None,
    ):
        self.db = db
        self.rng = rng or random.SystemRandom()
        self.clock = clock
        self.max_attempts = max_attempts or settings.REQUEST_ID_MAX_ATTEMPTS

    async def generate_unique(self) -> str:
        """Generate a request id that no stored verification uses yet."""
        year = self.clock().year
        for attempt in range(1, self.max_attempts + 1):
            candidate = generate_request_id(settings.REQUEST_ID_PREFIX, year, self.rng)
            taken = await self.db.scalar(
                select(exists().where(Verification.request_id == candidate))
            )
            if not taken:
                return candidate
            logger.warning(f"Request id collision on {candidate} (attempt {attempt})")

        raise IdentityExhaustedError(self.max_attempts)
