from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from typing import Generator
import logging
import redis
from .config import settings

logger = logging.getLogger(__name__)

_database_url = settings.get_database_url

if _database_url.startswith("sqlite"):
    engine = create_engine(
        _database_url,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_engine(
        _database_url,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,  # Recycle connections after 30 minutes
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# Connections are opened lazily on first command
redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)

# Database dependency
def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# Redis dependency
def get_redis():
    """Get Redis client."""
    return redis_client

DEFAULT_SPECIALIZATIONS = [
    ("Therapist", "General practitioner"),
    ("Cardiologist", "Heart and blood vessels"),
    ("Dermatologist", "Skin, hair and nails"),
    ("Neurologist", "Nervous system"),
    ("Pediatrician", "Children's health"),
    ("Surgeon", "Operative treatment"),
]

def seed_specializations(db: Session) -> None:
    """Insert the reference specializations that are missing."""
    from ..models.specialization import Specialization

    existing = {name for (name,) in db.query(Specialization.name).all()}
    for name, description in DEFAULT_SPECIALIZATIONS:
        if name not in existing:
            db.add(Specialization(name=name, description=description))
    db.commit()

# Database initialization
def init_db():
    """Initialize database tables and reference data."""
    from .. import models  # noqa: F401  registers the tables on Base

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_specializations(db)
    finally:
        db.close()
    logger.info("Database schema ready")
