"""
Lifecycle of scheduled-publish records.

Every check (input, ownership, state) runs before the first write. The
one-pending-schedule-per-content rule lives in a partial unique index; creating a
duplicate is detected from the insert failing, never by looking first.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import asc, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from content_scheduler.config import settings
from content_scheduler.models.schedule_history import ScheduleHistory
from content_scheduler.models.scheduled_content import ScheduledContent
from content_scheduler.models.user import User
from content_scheduler.schemas.schedule import ScheduleCreate, ScheduleUpdate
from content_scheduler.services.errors import (
    Conflict,
    Forbidden,
    InternalError,
    InvalidState,
    NotFound,
    ValidationError,
)
from content_scheduler.services.ownership import verify_content_access
from content_scheduler.services.state_machine import InvalidTransition, ensure_transition
from content_scheduler.services.tokens import utcnow
from content_scheduler.utils.constants import CONTENT_TYPES, HISTORY_ACTIONS, STATES
from content_scheduler.utils.timezone import InvalidTimezone, ensure_utc, from_utc, localize

log = logging.getLogger(__name__)

UPDATE_PENDING_ONLY = "Can only update pending schedules"
DELETE_PENDING_ONLY = "Can only delete pending schedules"


def _parse_id(schedule_id: Any) -> uuid.UUID:
    try:
        return schedule_id if isinstance(schedule_id, uuid.UUID) else uuid.UUID(str(schedule_id))
    except ValueError:
        raise NotFound("Schedule not found") from None


def _resolve_instant(value: datetime | str, timezone_name: str) -> datetime:
    try:
        instant = localize(value, timezone_name)
        # the local rendering must exist too, or every later read of the record fails
        from_utc(instant, timezone_name)
    except InvalidTimezone:
        raise ValidationError("timezone", "must be a valid IANA timezone name") from None
    except OverflowError:
        raise ValidationError("scheduledFor", "is out of range") from None
    except (TypeError, ValueError):
        raise ValidationError("scheduledFor", "must be an ISO 8601 date-time") from None
    return instant


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    return code == "23505" or "UNIQUE constraint failed" in str(orig)


def record_history(
    db: Session,
    schedule_id: uuid.UUID,
    action: str,
    *,
    actor_id: uuid.UUID | None = None,
    previous: datetime | None = None,
    new: datetime | None = None,
    reason: str | None = None,
    metadata: dict | None = None,
) -> ScheduleHistory:
    if action not in HISTORY_ACTIONS:
        raise ValueError(f"unknown history action: {action}")
    row = ScheduleHistory(
        scheduled_content_id=schedule_id,
        action=action,
        previous_scheduled_for=previous,
        new_scheduled_for=new,
        actor_id=actor_id,
        reason=reason,
        metadata_=metadata or {},
    )
    db.add(row)
    return row


def list_schedules(
    db: Session,
    content_type: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[ScheduledContent], int]:
    if content_type is not None and content_type not in CONTENT_TYPES:
        raise ValidationError("contentType", "unknown content type")
    if status is not None and status not in STATES:
        raise ValidationError("status", "unknown status")

    q = select(ScheduledContent)
    count_q = select(func.count()).select_from(ScheduledContent)

    if content_type:
        q = q.where(ScheduledContent.content_type == content_type)
        count_q = count_q.where(ScheduledContent.content_type == content_type)

    if status:
        q = q.where(ScheduledContent.status == status)
        count_q = count_q.where(ScheduledContent.status == status)

    q = q.order_by(asc(ScheduledContent.scheduled_for)).offset(offset).limit(limit)

    try:
        total = db.execute(count_q).scalar_one()
        rows = db.execute(q).scalars().all()
    except SQLAlchemyError as exc:
        log.exception("Error fetching scheduled content")
        raise InternalError("Failed to fetch scheduled content") from exc

    return list(rows), total


def get_schedule(db: Session, schedule_id: Any) -> ScheduledContent:
    sid = _parse_id(schedule_id)
    try:
        record = db.get(ScheduledContent, sid)
    except SQLAlchemyError as exc:
        log.exception("Error fetching schedule")
        raise InternalError("Failed to fetch schedule") from exc
    if record is None:
        raise NotFound("Schedule not found")
    return record


def create_schedule(db: Session, user: User, data: ScheduleCreate) -> ScheduledContent:
    if data.content_type not in CONTENT_TYPES:
        raise ValidationError("contentType", "unknown content type")

    scheduled_for = _resolve_instant(data.scheduled_for, data.timezone)

    verify_content_access(db, user, data.content_type, data.content_id)

    record = ScheduledContent(
        content_type=data.content_type,
        content_id=data.content_id,
        scheduled_for=scheduled_for,
        timezone=data.timezone,
        auto_publish=data.auto_publish,
        publish_action=data.publish_action or {},
        status="pending",
        max_retries=settings.MAX_PUBLISH_RETRIES,
        created_by=user.id,
    )
    db.add(record)

    try:
        db.flush()
        record_history(db, record.id, "scheduled", actor_id=user.id, new=scheduled_for)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if _is_unique_violation(exc):
            log.info("%s %s is already scheduled", data.content_type, data.content_id)
            raise Conflict("Content is already scheduled") from None
        log.exception("Error creating schedule")
        raise InternalError("Failed to create schedule") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        log.exception("Error creating schedule")
        raise InternalError("Failed to create schedule") from exc

    db.refresh(record)
    log.info(
        "scheduled %s %s for %s (%s) by user=%s",
        record.content_type, record.content_id, scheduled_for.isoformat(), record.timezone, user.id,
    )
    return record


def _ensure_can_modify(user: User, record: ScheduledContent) -> None:
    if user.is_admin or record.created_by == user.id:
        return
    log.warning("user=%s may not modify schedule %s", user.id, record.id)
    raise Forbidden("You don't have permission to modify this schedule")


def update_schedule(
    db: Session,
    user: User,
    schedule_id: Any,
    changes: ScheduleUpdate,
    *,
    state_message: str = UPDATE_PENDING_ONLY,
) -> ScheduledContent:
    record = get_schedule(db, schedule_id)
    _ensure_can_modify(user, record)

    if record.status != "pending":
        raise InvalidState(state_message)

    fields = changes.model_dump(exclude_unset=True)
    for name, alias in (
        ("scheduled_for", "scheduledFor"), ("timezone", "timezone"), ("auto_publish", "autoPublish"),
        ("status", "status"),
    ):
        if name in fields and fields[name] is None:
            raise ValidationError(alias, "may not be null")

    values: dict[str, Any] = {}
    timezone_name = fields.get("timezone", record.timezone)

    if "scheduled_for" in fields:
        values["scheduled_for"] = _resolve_instant(fields["scheduled_for"], timezone_name)
    elif "timezone" in fields:
        # the stored instant has to render in the new zone as well
        _resolve_instant(ensure_utc(record.scheduled_for), timezone_name)

    if "timezone" in fields:
        values["timezone"] = timezone_name

    if "auto_publish" in fields:
        values["auto_publish"] = fields["auto_publish"]

    if "publish_action" in fields:
        values["publish_action"] = fields["publish_action"] or {}

    if fields.get("status"):
        try:
            ensure_transition(record.status, fields["status"])
        except InvalidTransition:
            raise InvalidState(state_message) from None
        values["status"] = fields["status"]

    if not values:
        return record

    previous = ensure_utc(record.scheduled_for)
    values["updated_at"] = utcnow()

    try:
        # the pending check is repeated in the WHERE so a concurrent publish wins cleanly
        result = db.execute(
            update(ScheduledContent)
            .where(ScheduledContent.id == record.id, ScheduledContent.status == "pending")
            .values(**values)
        )
        if result.rowcount != 1:
            db.rollback()
            raise InvalidState(state_message)

        new_time = values.get("scheduled_for")
        if new_time is not None and new_time != previous:
            record_history(db, record.id, "rescheduled", actor_id=user.id, previous=previous, new=new_time)
        if values.get("status") == "cancelled":
            record_history(db, record.id, "cancelled", actor_id=user.id)

        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        log.exception("Error updating schedule")
        raise InternalError("Failed to update schedule") from exc

    db.refresh(record)
    log.info("updated schedule %s (%s) by user=%s", record.id, ", ".join(sorted(values)), user.id)
    return record


def cancel_schedule(db: Session, user: User, schedule_id: Any) -> ScheduledContent:
    return update_schedule(
        db, user, schedule_id, ScheduleUpdate(status="cancelled"), state_message=DELETE_PENDING_ONLY
    )


def schedule_history(db: Session, schedule_id: Any) -> list[ScheduleHistory]:
    record = get_schedule(db, schedule_id)
    try:
        rows = db.execute(
            select(ScheduleHistory)
            .where(ScheduleHistory.scheduled_content_id == record.id)
            .order_by(asc(ScheduleHistory.created_at))
        ).scalars().all()
    except SQLAlchemyError as exc:
        log.exception("Error fetching schedule history")
        raise InternalError("Failed to fetch schedule history") from exc
    return list(rows)
