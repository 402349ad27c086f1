from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from content_scheduler.database import get_db
from content_scheduler.models.user import User
from content_scheduler.schemas.schedule import ScheduledContentOut
from content_scheduler.services.authz import require_admin
from content_scheduler.services.publisher_worker import fetch_due

router = APIRouter(prefix="/publisher", tags=["publisher"])

@router.get("/due", response_model=List[ScheduledContentOut])
def due(
    user: User = Depends(require_admin),
    db: Session = Depends(get_db),
    limit: int = Query(20, ge=1, le=200),
):
    return fetch_due(db, limit=limit)
