from datetime import timedelta

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, EmailStr
from sqlalchemy.orm import Session as DbSession

from content_scheduler.config import settings
from content_scheduler.database import get_db
from content_scheduler.models.session import Session
from content_scheduler.models.user import User
from content_scheduler.services.authz import get_current_user, raw_session_token
from content_scheduler.services.errors import Unauthorized
from content_scheduler.services.passwords import verify_password
from content_scheduler.services.sessions import (
    clear_session_cookie,
    hash_session_token,
    new_session_token,
    set_session_cookie,
)
from content_scheduler.services.tokens import utcnow

router = APIRouter(prefix="/auth", tags=["auth"])

class LoginIn(BaseModel):
    email: EmailStr
    password: str


@router.post("/login")
def login(payload: LoginIn, req: Request, resp: Response, db: DbSession = Depends(get_db)):
    email = payload.email.lower().strip()
    user = db.query(User).filter(User.email == email).first()

    if not user or not user.is_active or not verify_password(payload.password, user.password_hash):
        raise Unauthorized("Invalid credentials")

    st = new_session_token()
    sess = Session(
        user_id=user.id,
        session_token=hash_session_token(st),
        expires_at=utcnow() + timedelta(days=settings.SESSION_DAYS),
        revoked_at=None,
        user_agent=req.headers.get("user-agent"),
        ip_address=req.client.host if req.client else None,
    )
    db.add(sess)
    db.commit()

    set_session_cookie(resp, st)
    # API clients without a cookie jar send this back as a bearer token
    return {"ok": True, "token": st}

@router.post("/logout")
def logout(req: Request, resp: Response, db: DbSession = Depends(get_db)):
    raw = raw_session_token(req)
    if raw:
        sh = hash_session_token(raw)
        sess = db.query(Session).filter(Session.session_token == sh, Session.revoked_at.is_(None)).first()
        if sess:
            sess.revoked_at = utcnow()
            db.commit()
    clear_session_cookie(resp)
    return {"ok": True}

@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return {"id": str(user.id), "email": user.email, "role": user.role}
