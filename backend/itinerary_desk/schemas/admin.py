from __future__ import annotations

from pydantic import BaseModel


class AdminStatsOut(BaseModel):
    users: int
    itineraries: int
    this_month: int
    by_status: dict[str, int]
