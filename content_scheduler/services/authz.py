import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session as DbSession

from content_scheduler.database import get_db
from content_scheduler.models.session import Session
from content_scheduler.models.user import User
from content_scheduler.services.errors import Forbidden, Unauthorized
from content_scheduler.services.sessions import COOKIE_NAME, hash_session_token
from content_scheduler.services.tokens import utcnow
from content_scheduler.utils.timezone import ensure_utc

log = logging.getLogger(__name__)


def raw_session_token(req: Request) -> str | None:
    raw = req.cookies.get(COOKIE_NAME)
    if raw:
        return raw
    # API clients may send the session token as a bearer credential
    auth = req.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return None


def get_current_user(req: Request, db: DbSession = Depends(get_db)) -> User:
    raw = raw_session_token(req)
    if not raw:
        raise Unauthorized()

    sh = hash_session_token(raw)
    sess = db.query(Session).filter(Session.session_token == sh, Session.revoked_at.is_(None)).first()
    if not sess or ensure_utc(sess.expires_at) < utcnow():
        raise Unauthorized("Session expired")

    user = db.query(User).filter(User.id == sess.user_id).first()
    if not user or not user.is_active:
        raise Unauthorized()
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        log.warning("admin-only route denied for user=%s", user.id)
        raise Forbidden("Admin only")
    return user
