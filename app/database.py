# app/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
import logging

from app.core.config import DATABASE_URL, SQL_ECHO

logger = logging.getLogger(__name__)

# SQLite needs this to share a connection across FastAPI's worker threads
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    echo=SQL_ECHO,
    pool_pre_ping=True,  # Checks connection before using
    connect_args=connect_args,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db():
    """Create the programs collection if it does not exist yet"""
    import app.models  # noqa: F401  (registers tables on Base.metadata)

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
