from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from tracker.config import settings

Base = declarative_base()


def make_engine(url: Optional[str] = None) -> Optional[Engine]:
    url = url or settings.DATABASE_URL
    if not url:
        return None
    return create_engine(url, pool_pre_ping=True, future=True)


engine = make_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
