from __future__ import annotations

import uuid
from datetime import datetime
from typing import Annotated, Any, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from content_scheduler.utils.timezone import ensure_utc, from_utc, is_valid_timezone

ContentType = Literal["course", "lesson", "announcement", "email", "post", "youtube_video"]
ScheduleStatus = Literal["pending", "published", "cancelled"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _check_timezone(value: str) -> str:
    if not is_valid_timezone(value):
        raise ValueError("must be a valid IANA timezone name")
    return value


TimezoneName = Annotated[str, AfterValidator(_check_timezone)]


class ScheduleCreate(CamelModel):
    model_config = ConfigDict(extra="forbid")

    content_type: ContentType
    content_id: uuid.UUID
    scheduled_for: datetime  # ISO 8601; naive values are wall-clock time in `timezone`
    timezone: TimezoneName = "UTC"
    auto_publish: bool = True
    publish_action: Optional[dict[str, Any]] = None



class ScheduleUpdate(CamelModel):
    model_config = ConfigDict(extra="forbid")

    scheduled_for: Optional[datetime] = None
    timezone: Optional[TimezoneName] = None
    auto_publish: Optional[bool] = None
    publish_action: Optional[dict[str, Any]] = None
    status: Optional[Literal["cancelled"]] = None



class ScheduledContentOut(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    content_type: str
    content_id: uuid.UUID
    scheduled_for: datetime
    timezone: str
    auto_publish: bool
    publish_action: dict[str, Any] = Field(default_factory=dict)
    status: str
    published_at: Optional[datetime] = None
    error_message: Optional[str] = None
    retry_count: int = 0
    max_retries: int = 3
    created_by: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("scheduled_for", "published_at", "created_at", "updated_at")
    @classmethod
    def _as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @field_validator("publish_action", mode="before")
    @classmethod
    def _default_action(cls, v):
        return v or {}

    @computed_field(alias="scheduledForLocal")
    @property
    def scheduled_for_local(self) -> str:
        return from_utc(self.scheduled_for, self.timezone)


class ScheduleListOut(CamelModel):
    schedules: List[ScheduledContentOut]
    total: int
    limit: int
    offset: int


class ScheduleHistoryOut(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    action: str
    previous_scheduled_for: Optional[datetime] = None
    new_scheduled_for: Optional[datetime] = None
    actor_id: Optional[uuid.UUID] = None
    reason: Optional[str] = None
    metadata_: dict[str, Any] = Field(
        default_factory=dict, validation_alias="metadata_", serialization_alias="metadata"
    )
    created_at: datetime

    @field_validator("previous_scheduled_for", "new_scheduled_for", "created_at")
    @classmethod
    def _as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class TimezoneOut(BaseModel):
    value: str
    label: str
    offset: str
