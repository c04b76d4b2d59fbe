"""Seed the administrator account from env vars."""

from sqlalchemy.orm import Session

from footballzone.core.config import settings
from footballzone.core.security import auth_service
from footballzone.models.user import User, UserRole


def seed_admin(db: Session) -> User:
    """Create the admin user if not already present."""
    existing = db.query(User).filter(User.email == settings.ADMIN_EMAIL.lower()).first()
    if existing:
        print(f"ℹ️  Admin '{settings.ADMIN_EMAIL}' already exists, skipping.")
        return existing

    admin = auth_service.create_user(
        db,
        email=settings.ADMIN_EMAIL,
        password=settings.ADMIN_PASSWORD,
        name="Администратор",
        role=UserRole.ADMIN,
        email_verified=True,
    )
    print(f"✅ Created admin: {admin.email}")
    return admin
