from .user import User
from .session import Session
from .content import Course, Lesson, Announcement, YoutubeUpload, EmailProgram
from .scheduled_content import ScheduledContent
from .schedule_history import ScheduleHistory
