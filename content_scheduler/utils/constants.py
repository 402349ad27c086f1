CONTENT_TYPES = {"course", "lesson", "announcement", "email", "post", "youtube_video"}

STATES = {
    "pending",
    "published",
    "cancelled",
}

HISTORY_ACTIONS = {"scheduled", "rescheduled", "published", "failed", "cancelled"}
