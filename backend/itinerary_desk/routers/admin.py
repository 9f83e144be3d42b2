from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from itinerary_desk.core.db import get_db
from itinerary_desk.core.deps import CurrentUser, require_admin
from itinerary_desk.schemas.admin import AdminStatsOut
from itinerary_desk.services.admin_service import get_stats

router = APIRouter()


@router.get("/admin/stats", response_model=AdminStatsOut)
def admin_stats(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
) -> AdminStatsOut:
    return get_stats(db)
