from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session, declarative_base

from paydesk.core.config import settings

def make_engine(db_url: str = None):
    db_url = db_url or settings.DB_URL
    # Use connect_args for SQLite to allow multithreading in simple dev setups
    connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
    return create_engine(db_url, echo=False, future=True, connect_args=connect_args)

engine = make_engine()
SessionLocal = scoped_session(sessionmaker(bind=engine, autoflush=False, autocommit=False))
Base = declarative_base()

def init_db(bind=None):
    # Import models here so they are registered on Base
    import paydesk.db.models as _models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
