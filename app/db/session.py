from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import DATABASE_URL as CONFIGURED_DATABASE_URL

BASE_DIR = Path(__file__).resolve().parent.parent.parent
DATABASE_URL = CONFIGURED_DATABASE_URL or f"sqlite:///{BASE_DIR}/module_timelines.db"

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)
