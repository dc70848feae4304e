from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from backend.app.core.config import settings

engine = create_engine(settings.database_url, echo=settings.database_echo, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    Une transition = une transaction.
    Commit si tout passe, rollback complet sinon (aucune décrémentation partielle).
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
