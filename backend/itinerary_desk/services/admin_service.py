from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from itinerary_desk.models import Itinerary, UserRole
from itinerary_desk.schemas.admin import AdminStatsOut

STATUSES = ("draft", "sent", "completed", "cancelled")


def get_stats(db: Session, now: datetime | None = None) -> AdminStatsOut:
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    users = db.execute(select(func.count()).select_from(UserRole)).scalar_one()
    itineraries = db.execute(select(func.count()).select_from(Itinerary)).scalar_one()
    this_month = db.execute(
        select(func.count())
        .select_from(Itinerary)
        .where(Itinerary.created_at >= month_start)
    ).scalar_one()

    by_status = dict.fromkeys(STATUSES, 0)
    rows = db.execute(select(Itinerary.status, func.count()).group_by(Itinerary.status)).all()
    for status, count in rows:
        by_status[status] = count

    return AdminStatsOut(
        users=users,
        itineraries=itineraries,
        this_month=this_month,
        by_status=by_status,
    )
