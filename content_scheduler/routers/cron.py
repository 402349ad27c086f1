import hmac
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from content_scheduler.config import settings
from content_scheduler.database import get_db
from content_scheduler.services.errors import Unauthorized
from content_scheduler.services.publisher_worker import publish_due

log = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])


def verify_cron_secret(req: Request) -> None:
    secret = settings.CRON_SECRET
    header = req.headers.get("authorization", "")
    if not secret or not hmac.compare_digest(header, f"Bearer {secret}"):
        log.warning("rejected cron call from %s", req.client.host if req.client else "unknown")
        raise Unauthorized()


@router.get("/publish-scheduled", dependencies=[Depends(verify_cron_secret)])
def publish_scheduled(db: Session = Depends(get_db)):
    res = publish_due(db)
    if not res["due"]:
        return {"message": "No content to publish", **res}
    return {"message": "Scheduled content processed", **res}
