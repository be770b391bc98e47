"""Initialize database tables and create initial data if needed"""
import logging
from sqlalchemy.exc import SQLAlchemyError
from papad_store.db.base import Base
from papad_store.db.session import engine, SessionLocal
from papad_store.models import OTP, User, UserRole  # noqa: F401  (registers tables)
from papad_store.services.auth_service import get_password_hash, normalize_email
from papad_store.core.config import settings

logger = logging.getLogger(__name__)


def init_db() -> None:
    """Create all database tables"""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        logger.error(f"Error creating database tables: {str(e)}")
        raise


def create_initial_data() -> None:
    """Seed the store admin from .env configuration on an empty users table"""
    db = SessionLocal()
    try:
        if db.query(User).count() == 0:
            admin = User(
                name=settings.ADMIN_NAME,
                email=normalize_email(settings.ADMIN_EMAIL),
                password_hash=get_password_hash(settings.ADMIN_PASSWORD),
                role=UserRole.ADMIN,
                is_verified=True,
            )
            db.add(admin)
            db.commit()
            logger.info(f"Admin account created: {admin.email}")
            logger.warning("Change default admin credentials in .env file!")
    except SQLAlchemyError as e:
        logger.error(f"Error creating initial data: {str(e)}")
        db.rollback()
    finally:
        db.close()
