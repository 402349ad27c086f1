from content_scheduler.database import SessionLocal
from content_scheduler.main import configure_logging
from content_scheduler.services.publisher_worker import publish_due

def main():
    configure_logging()
    db = SessionLocal()
    try:
        res = publish_due(db)
        print(res)
    finally:
        db.close()

if __name__ == "__main__":
    main()
