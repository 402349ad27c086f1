from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from content_scheduler.database import get_db
from content_scheduler.models.user import User
from content_scheduler.schemas.schedule import (
    ContentType,
    ScheduleCreate,
    ScheduledContentOut,
    ScheduleHistoryOut,
    ScheduleListOut,
    ScheduleStatus,
    ScheduleUpdate,
    TimezoneOut,
)
from content_scheduler.services import scheduling
from content_scheduler.services.authz import get_current_user
from content_scheduler.utils.timezone import COMMON_TIMEZONES, timezone_offset_string

router = APIRouter(prefix="/schedule", tags=["schedule"])


@router.get("", response_model=ScheduleListOut)
def list_schedules(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    content_type: Optional[ContentType] = Query(None, alias="contentType"),
    status: Optional[ScheduleStatus] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    rows, total = scheduling.list_schedules(db, content_type=content_type, status=status, limit=limit, offset=offset)
    return {"schedules": rows, "total": total, "limit": limit, "offset": offset}


@router.post("", response_model=ScheduledContentOut, status_code=201)
def create_schedule(payload: ScheduleCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return scheduling.create_schedule(db, user, payload)


# must stay above /{schedule_id}
@router.get("/timezones", response_model=List[TimezoneOut])
def timezones(user: User = Depends(get_current_user)):
    return [{**tz, "offset": timezone_offset_string(tz["value"])} for tz in COMMON_TIMEZONES]


@router.get("/{schedule_id}", response_model=ScheduledContentOut)
def get_schedule(schedule_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return scheduling.get_schedule(db, schedule_id)


@router.get("/{schedule_id}/history", response_model=List[ScheduleHistoryOut])
def get_history(schedule_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return scheduling.schedule_history(db, schedule_id)


@router.patch("/{schedule_id}", response_model=ScheduledContentOut)
def update_schedule(
    schedule_id: str,
    payload: ScheduleUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return scheduling.update_schedule(db, user, schedule_id, payload)


@router.delete("/{schedule_id}")
def cancel_schedule(schedule_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    # soft delete: the row stays, marked cancelled
    scheduling.cancel_schedule(db, user, schedule_id)
    return {"message": "Schedule cancelled successfully"}
