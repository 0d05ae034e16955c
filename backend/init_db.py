"""Initialize the database with the system account and an admin user."""

from loguru import logger

from authentication.auth import get_password_hash
from helpers.time_utils import utc_now
from models.config import settings
from repositories.database import Base, SessionLocal, engine
from repositories.db_models import User, UserRole
from repositories.user_repository import UserRepository


def init_db() -> None:
    """Create tables, the SYSTEM user and the bootstrap admin."""
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        user_repo = UserRepository(db)

        system_user = user_repo.get_or_create_system_user(
            settings.SYSTEM_USER_EMAIL, settings.SYSTEM_USER_NAME
        )
        logger.info(f"System user ready (id={system_user.id})")

        if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
            logger.warning("ADMIN_EMAIL or ADMIN_PASSWORD not set; skipping admin")
        elif user_repo.email_exists(settings.ADMIN_EMAIL.lower()):
            logger.info(f"Admin {settings.ADMIN_EMAIL} already exists")
        else:
            db.add(
                User(
                    email=settings.ADMIN_EMAIL.lower(),
                    name="Administrator",
                    hashed_password=get_password_hash(settings.ADMIN_PASSWORD),
                    role=UserRole.ADMIN,
                    email_verified_at=utc_now(),
                )
            )
            logger.info(f"Admin user created: {settings.ADMIN_EMAIL}")

        db.commit()
        logger.info("Database initialization complete")
    except Exception:
        db.rollback()
        logger.exception("Error initializing database")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
