import logging
from datetime import datetime
from typing import Callable

from sqlalchemy import asc, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from content_scheduler.config import settings
from content_scheduler.models.content import Announcement, Course, EmailProgram, Lesson, YoutubeUpload
from content_scheduler.models.scheduled_content import ScheduledContent
from content_scheduler.services.scheduling import record_history
from content_scheduler.services.state_machine import ensure_transition
from content_scheduler.services.tokens import utcnow

log = logging.getLogger(__name__)


class PublishError(Exception):
    pass


def _notify_if_requested(item: ScheduledContent) -> None:
    if (item.publish_action or {}).get("sendNotification"):
        # delivery belongs to the notification service; we only flag the request
        log.info("notification requested for %s %s", item.content_type, item.content_id)


def _publish_course(db: Session, item: ScheduledContent, now: datetime) -> None:
    course = db.get(Course, item.content_id)
    if course is None:
        raise PublishError("Course not found")
    course.published = True
    course.published_at = now
    _notify_if_requested(item)


def _publish_lesson(db: Session, item: ScheduledContent, now: datetime) -> None:
    lesson = db.get(Lesson, item.content_id)
    if lesson is None:
        raise PublishError("Lesson not found")
    lesson.is_preview = False
    lesson.published_at = now


def _publish_announcement(db: Session, item: ScheduledContent, now: datetime) -> None:
    announcement = db.get(Announcement, item.content_id)
    if announcement is None:
        raise PublishError("Announcement not found")
    announcement.published_at = now
    _notify_if_requested(item)


def _publish_youtube_video(db: Session, item: ScheduledContent, now: datetime) -> None:
    upload = db.get(YoutubeUpload, item.content_id)
    if upload is None:
        raise PublishError("YouTube upload not found")
    upload.status = "published"
    upload.privacy_status = "public"
    upload.published_at = now


def _publish_email(db: Session, item: ScheduledContent, now: datetime) -> None:
    program = db.get(EmailProgram, item.content_id)
    if program is None:
        raise PublishError("Email program not found")
    # the mail service picks up programs in "sending"
    program.status = "sending"


PUBLISHERS: dict[str, Callable[[Session, ScheduledContent, datetime], None]] = {
    "course": _publish_course,
    "lesson": _publish_lesson,
    "announcement": _publish_announcement,
    "youtube_video": _publish_youtube_video,
    "email": _publish_email,
}


def fetch_due(db: Session, now: datetime | None = None, limit: int = 20, auto_publish: bool = True):
    now = now or utcnow()
    q = (
        select(ScheduledContent)
        .where(ScheduledContent.status == "pending")
        .where(ScheduledContent.auto_publish.is_(auto_publish))
        .where(ScheduledContent.scheduled_for <= now)
        .order_by(asc(ScheduledContent.scheduled_for))
        .limit(limit)
    )
    return db.execute(q).scalars().all()


def claim(db: Session, item: ScheduledContent, now: datetime) -> bool:
    """
    Flip one pending record to published. Only the caller whose UPDATE matched
    the row owns the publish; everyone else sees zero rows.
    """
    ensure_transition("pending", "published")
    result = db.execute(
        update(ScheduledContent)
        .where(ScheduledContent.id == item.id, ScheduledContent.status == "pending")
        .values(status="published", published_at=now, error_message=None, updated_at=now)
    )
    return result.rowcount == 1


def _record_failure(db: Session, item_id, error: str) -> dict:
    record = db.get(ScheduledContent, item_id)
    record.retry_count = (record.retry_count or 0) + 1
    record.error_message = error
    record.updated_at = utcnow()
    will_retry = record.retry_count < record.max_retries
    if not will_retry:
        # stays pending, but the sweep leaves it for someone to look at
        record.auto_publish = False
    record_history(
        db,
        record.id,
        "failed",
        reason=error,
        metadata={"error": error, "retryCount": record.retry_count, "willRetry": will_retry},
    )
    db.commit()
    return {"retryCount": record.retry_count, "willRetry": will_retry}


def publish_one(db: Session, item: ScheduledContent, now: datetime) -> dict:
    item_id, content_type, content_id = item.id, item.content_type, item.content_id
    result = {"id": str(item_id), "contentType": content_type, "contentId": str(content_id)}

    try:
        if not claim(db, item, now):
            db.rollback()
            result["status"] = "skipped"
            return result

        publisher = PUBLISHERS.get(content_type)
        if publisher is None:
            raise PublishError(f"Unsupported content type: {content_type}")

        publisher(db, item, now)
        record_history(db, item_id, "published", new=now)
        db.commit()

    except Exception as e:
        db.rollback()
        log.warning("Error publishing %s %s: %s", content_type, content_id, e)
        result.update(status="failed", error=str(e))
        try:
            result.update(_record_failure(db, item_id, str(e)))
        except SQLAlchemyError:
            db.rollback()
            log.exception("Could not record publish failure for schedule %s", item_id)
        return result

    log.info("published %s %s (schedule %s)", content_type, content_id, item_id)
    result["status"] = "published"
    return result


def publish_due(db: Session, limit: int | None = None, now: datetime | None = None) -> dict:
    now = now or utcnow()
    limit = limit or settings.PUBLISH_BATCH_SIZE

    manual = fetch_due(db, now=now, limit=limit, auto_publish=False)
    for it in manual:
        log.info("schedule %s is due and awaits a manual publish", it.id)

    due_items = fetch_due(db, now=now, limit=limit)
    results = [publish_one(db, it, now) for it in due_items]

    published = sum(1 for r in results if r["status"] == "published")
    failed = sum(1 for r in results if r["status"] == "failed")
    if due_items:
        log.info("publish sweep: due=%s published=%s failed=%s", len(due_items), published, failed)

    return {"due": len(due_items), "published": published, "failed": failed, "results": results}
