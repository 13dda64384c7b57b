import logging
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from agenda.config import DATABASE_URL, SEED_ADMIN_CODE, SEED_ADMIN_LOCATION

logger = logging.getLogger(__name__)


def make_engine(url: str):
    # sqlite connections are shared across request threads; wait on locks instead of failing fast
    connect_args = {"check_same_thread": False, "timeout": 30} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    # Import models here to create tables
    from agenda.models import AccessCodeRecord
    bind = bind or engine
    Base.metadata.create_all(bind=bind)

    # Seed the administrator code if missing
    db = sessionmaker(autocommit=False, autoflush=False, bind=bind)()
    try:
        if not db.query(AccessCodeRecord).filter(AccessCodeRecord.code == SEED_ADMIN_CODE).first():
            db.add(AccessCodeRecord(
                code=SEED_ADMIN_CODE,
                role="admin",
                location=SEED_ADMIN_LOCATION,
                status="active",
                created_at=datetime.now(timezone.utc),
            ))
            db.commit()
            logger.info("Seeded default admin access code %s", SEED_ADMIN_CODE)
    finally:
        db.close()
