"""Seed the first admin user from env vars."""

from sqlalchemy.orm import Session
from grant_portal.models.user import User
from grant_portal.models.role import Role
from grant_portal.core.security import hash_password
from grant_portal.core.config import settings


def seed_super_admin(db: Session) -> None:
    """Create the admin user if not already present."""
    admin_role = db.query(Role).filter(Role.name == "admin").first()
    if not admin_role:
        print("⚠️  admin role not found. Run seed_roles first.")
        return

    existing = db.query(User).filter(User.email == settings.SUPER_ADMIN_EMAIL).first()
    if existing:
        print(f"ℹ️  Admin '{settings.SUPER_ADMIN_EMAIL}' already exists, skipping.")
        return

    admin = User(
        email=settings.SUPER_ADMIN_EMAIL,
        hashed_password=hash_password(settings.SUPER_ADMIN_PASSWORD),
        full_name="Portal Admin",
        is_active=True,
        onboarding_status="active",
        role_id=admin_role.id,
    )
    db.add(admin)
    db.commit()
    print(f"✅ Created admin: {settings.SUPER_ADMIN_EMAIL}")
