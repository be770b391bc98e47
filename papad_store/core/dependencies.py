"""FastAPI dependencies"""
from typing import Generator
from sqlalchemy.orm import Session
from papad_store.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency
    Yields a database session and ensures it's closed after use
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
