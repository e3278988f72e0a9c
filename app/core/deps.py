from datetime import datetime, timezone

from fastapi import Depends
from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.services.notifier import DatabaseNotifier, Notifier


# every request that needs DB will get a fresh session, and it will always close.
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_clock() -> datetime:
    return datetime.now(timezone.utc)


def get_notifier(db: Session = Depends(get_db)) -> Notifier:
    return DatabaseNotifier(db)
