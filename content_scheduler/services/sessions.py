from fastapi import Response

from content_scheduler.config import settings
from .tokens import new_token, hash_token

COOKIE_NAME = "cs_session"

def new_session_token() -> str:
    return new_token()

def hash_session_token(token: str) -> str:
    return hash_token(token)

def set_session_cookie(resp: Response, token: str, days: int | None = None):
    is_prod = settings.ENV == "production"
    days = days or settings.SESSION_DAYS

    resp.set_cookie(
        key=COOKIE_NAME,
        value=token,
        httponly=True,
        secure=is_prod,              # True in prod (HTTPS)
        samesite="lax",
        max_age=days * 24 * 60 * 60,
        path="/",
    )

def clear_session_cookie(resp: Response):
    resp.delete_cookie(COOKIE_NAME, path="/")
