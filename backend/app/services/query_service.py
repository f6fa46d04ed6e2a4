import logging
import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple, List
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.constants import VerificationStatus, ADMIN_STATUS_FILTERS, BLOCK_MESSAGES, PARTIAL_MATCH_FIELDS
from app.core.exceptions import NotFoundError, InvalidInputError
from app.models.transition import VerificationTransition
from app.models.verification import Verification

logger = logging.getLogger(__name__)


def parse_day(value) -> Optional[date]:
    """Lenient date parsing for query filters; unparseable input yields None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).date() if value.tzinfo else value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def day_bounds(from_date: Optional[date], to_date: Optional[date]) -> Tuple[Optional[datetime], Optional[datetime]]:
    """UTC bounds covering whole days: start is inclusive, end is the exclusive midnight after to_date."""
    start = datetime.combine(from_date, time.min, tzinfo=timezone.utc) if from_date else None
    end = datetime.combine(to_date + timedelta(days=1), time.min, tzinfo=timezone.utc) if to_date else None
    return start, end


class QueryService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, record_id: UUID) -> Verification:
        result = await self.db.execute(
            select(Verification)
            .where(Verification.id == record_id)
            .execution_options(populate_existing=True)
        )
        verification = result.scalar_one_or_none()
        if not verification:
            raise NotFoundError("Verification request", str(record_id))
        return verification

    async def list_by_owner(self, user_id: str) -> List[Verification]:
        result = await self.db.execute(
            select(Verification)
            .where(Verification.user_id == user_id)
            .order_by(Verification.created_at.desc(), Verification.id.desc())
        )
        return list(result.scalars().all())

    async def get_latest_for_owner(self, user_id: str) -> Optional[Verification]:
        """Most recent request of an owner across all crops; id breaks created_at ties."""
        result = await self.db.execute(
            select(Verification)
            .where(Verification.user_id == user_id)
            .order_by(Verification.created_at.desc(), Verification.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_transitions(self, record_id: UUID) -> List[VerificationTransition]:
        result = await self.db.execute(
            select(VerificationTransition)
            .where(VerificationTransition.verification_id == record_id)
            .order_by(VerificationTransition.created_at, VerificationTransition.id)
        )
        return list(result.scalars().all())

    async def get_current_status(self, user_id: str) -> dict:
        latest = await self.get_latest_for_owner(user_id)

        if latest is None:
            return {
                "has_verification": False,
                "can_submit": True,
                "block_message": None,
                "verification": None,
            }

        can_submit = latest.status == VerificationStatus.REJECTED
        return {
            "has_verification": True,
            "can_submit": can_submit,
            "block_message": None if can_submit else BLOCK_MESSAGES[latest.status],
            "verification": latest,
        }

    async def admin_search(
        self,
        status: str = "all",
        user_id: Optional[str] = None,
        crop_id: Optional[str] = None,
        partial_filters: Optional[dict] = None,
        from_date=None,
        to_date=None,
        page: int = 1,
        page_size: int = None,
    ) -> Tuple[List[Verification], int]:
        """Filtered, newest-first, offset-paginated listing for the admin view."""
        if status not in ADMIN_STATUS_FILTERS:
            raise InvalidInputError(
                f"Invalid status. Allowed: {', '.join(ADMIN_STATUS_FILTERS)}",
                field="status",
            )

        page, page_size = normalize_paging(page, page_size)

        query = select(Verification)

        if status != "all":
            query = query.where(Verification.status == VerificationStatus(status))

        # Exact matches
        if user_id and user_id.strip():
            query = query.where(Verification.user_id == user_id.strip())
        if crop_id and crop_id.strip():
            query = query.where(Verification.crop_id == crop_id.strip())

        # Case-insensitive substring matches, LIKE wildcards escaped
        for field, value in (partial_filters or {}).items():
            if field not in PARTIAL_MATCH_FIELDS or value is None or not str(value).strip():
                continue
            column = getattr(Verification, field)
            query = query.where(column.icontains(str(value).strip(), autoescape=True))

        # Date range on created_at
        start, end = day_bounds(parse_day(from_date), parse_day(to_date))
        if start:
            query = query.where(Verification.created_at >= start)
        if end:
            query = query.where(Verification.created_at < end)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar()

        query = query.order_by(Verification.created_at.desc(), Verification.id.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)

        result = await self.db.execute(query)
        items = list(result.scalars().all())

        logger.info(f"Admin search status={status}: {total} total, {len(items)} on page {page}")
        return items, total


def pagination(page: int, page_size: int, total: int) -> dict:
    total_pages = math.ceil(total / page_size) if page_size else 0
    return {
        "current_page": page,
        "total_pages": total_pages,
        "total_requests": total,
        "requests_per_page": page_size,
        "has_next_page": page < total_pages,
        "has_prev_page": page > 1,
    }


def normalize_paging(page: Optional[int], page_size: Optional[int]) -> Tuple[int, int]:
    page = max(1, page or 1)
    page_size = max(1, min(settings.ADMIN_PAGE_SIZE_MAX, page_size or settings.ADMIN_PAGE_SIZE_DEFAULT))
    return page, page_size
