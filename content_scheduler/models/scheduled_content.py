import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text, Uuid, func, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from content_scheduler.database import Base


class ScheduledContent(Base):
    __tablename__ = "scheduled_content"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # course | lesson | announcement | email | post | youtube_video
    content_type: Mapped[str] = mapped_column(String(30), nullable=False)
    content_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    # always UTC; timezone is what the author picked, kept for display
    scheduled_for: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), default="UTC", nullable=False)

    # pending | published | cancelled
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)

    auto_publish: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    publish_action: Mapped[dict] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), default=dict, nullable=False
    )

    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    max_retries: Mapped[int] = mapped_column(Integer, default=3, nullable=False)

    created_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


PENDING_ONLY = text("status = 'pending'")

# one live schedule per content item; cancelled/published rows don't count
Index(
    "uq_scheduled_content_pending",
    ScheduledContent.content_type,
    ScheduledContent.content_id,
    unique=True,
    postgresql_where=PENDING_ONLY,
    sqlite_where=PENDING_ONLY,
)
Index(
    "ix_scheduled_content_due",
    ScheduledContent.scheduled_for,
    postgresql_where=PENDING_ONLY,
    sqlite_where=PENDING_ONLY,
)
Index("ix_scheduled_content_status", ScheduledContent.status)
