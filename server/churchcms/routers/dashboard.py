from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from churchcms.auth.deps import require_module
from churchcms.core.db import get_db
from churchcms.models.user import User
from churchcms.schemas.common import Envelope
from churchcms.schemas.dashboard import DashboardStats
from churchcms.services.reporting import dashboard_stats

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=Envelope[DashboardStats])
def stats(
    db: Session = Depends(get_db),
    _: User = Depends(require_module("dashboard")),
) -> Envelope[DashboardStats]:
    return Envelope(data=dashboard_stats(db))
