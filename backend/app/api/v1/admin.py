"""
Admin listing - filter, search and paginate verification requests
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas.verification import AdminVerificationList, Pagination, serialize_verification
from app.services.query_service import QueryService, normalize_paging, pagination

router = APIRouter(prefix="/verifications/admin", tags=["Admin"])


@router.get("/{status}")
async def get_admin_verifications(
    status: str,
    user_id: Optional[str] = Query(default=None),
    crop_id: Optional[str] = Query(default=None),
    phone: Optional[str] = Query(default=None),
    full_name: Optional[str] = Query(default=None),
    crop_name: Optional[str] = Query(default=None),
    village: Optional[str] = Query(default=None),
    taluk: Optional[str] = Query(default=None),
    district: Optional[str] = Query(default=None),
    from_date: Optional[str] = Query(default=None, description="YYYY-MM-DD, inclusive (UTC)"),
    to_date: Optional[str] = Query(default=None, description="YYYY-MM-DD, inclusive (UTC)"),
    page: int = Query(default=1),
    limit: int = Query(default=10),
    db: AsyncSession = Depends(get_db),
):
    """List requests by status (pending, approved, rejected, all) with filters."""
    page, limit = normalize_paging(page, limit)
    partial_filters = {
        "phone": phone,
        "full_name": full_name,
        "crop_name": crop_name,
        "village": village,
        "taluk": taluk,
        "district": district,
    }

    service = QueryService(db)
    verifications, total = await service.admin_search(
        status=status,
        user_id=user_id,
        crop_id=crop_id,
        partial_filters=partial_filters,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=limit,
    )

    applied_filters = {
        key: value
        for key, value in {
            "user_id": user_id,
            "crop_id": crop_id,
            **partial_filters,
            "from_date": from_date,
            "to_date": to_date,
        }.items()
        if value
    }

    result = AdminVerificationList(
        requests=[serialize_verification(v) for v in verifications],
        pagination=Pagination(**pagination(page, limit, total)),
        applied_filters=applied_filters,
    )
    label = "All" if status == "all" else status.capitalize()
    return {
        "message": f"{label} requests fetched successfully",
        "data": result.model_dump(mode="json"),
    }
