"""
Who may schedule what.

Admins may schedule anything. Otherwise each content type registers an
`OwnershipResolver` that finds the owning user of a content row; content types
without a resolver are admin-only.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.orm import Session

from content_scheduler.models.content import Announcement, Course, Lesson
from content_scheduler.models.user import User
from content_scheduler.services.errors import Forbidden

log = logging.getLogger(__name__)


class ContentNotFound(LookupError):
    pass


@dataclass(frozen=True)
class OwnershipResolver:
    label: str
    owner_of: Callable[[Session, uuid.UUID], Optional[uuid.UUID]]


def _course_owner(db: Session, content_id: uuid.UUID):
    course = db.get(Course, content_id)
    if course is None:
        raise ContentNotFound
    return course.instructor_id


def _lesson_owner(db: Session, content_id: uuid.UUID):
    lesson = db.get(Lesson, content_id)
    if lesson is None:
        raise ContentNotFound
    return lesson.course.instructor_id if lesson.course else None


def _announcement_owner(db: Session, content_id: uuid.UUID):
    announcement = db.get(Announcement, content_id)
    if announcement is None:
        raise ContentNotFound
    return announcement.author_id


RESOLVERS: dict[str, OwnershipResolver] = {
    "course": OwnershipResolver("course", _course_owner),
    "lesson": OwnershipResolver("lesson", _lesson_owner),
    "announcement": OwnershipResolver("announcement", _announcement_owner),
}


def register_resolver(content_type: str, resolver: OwnershipResolver) -> None:
    RESOLVERS[content_type] = resolver


def verify_content_access(db: Session, user: User, content_type: str, content_id: uuid.UUID) -> None:
    """Raise Forbidden unless `user` may schedule this content item."""
    if user.is_admin:
        return

    resolver = RESOLVERS.get(content_type)
    if resolver is None:
        log.warning("non-admin user=%s tried to schedule admin-only type=%s", user.id, content_type)
        raise Forbidden("Only admins can schedule this content type")

    try:
        owner_id = resolver.owner_of(db, content_id)
    except ContentNotFound:
        raise Forbidden(f"{resolver.label.capitalize()} not found") from None

    if owner_id != user.id:
        log.warning("user=%s is not the owner of %s %s", user.id, content_type, content_id)
        raise Forbidden(f"You don't have permission to schedule this {resolver.label}")
