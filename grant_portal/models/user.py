"""User model: login identity plus the scholar/manager profile."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from grant_portal.db.base import Base, new_uuid


class User(Base):
    """Portal user with role-based access and profile data."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=True)
    cpf = Column(String(11), unique=True, nullable=True)
    phone = Column(String(30), nullable=True)
    institution = Column(String(255), nullable=True)
    academic_level = Column(String(50), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    onboarding_status = Column(String(30), default="pending", nullable=False)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False)
    organization_id = Column(String(36), ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True)
    thematic_project_id = Column(
        String(36), ForeignKey("thematic_projects.id", ondelete="SET NULL"), nullable=True
    )
    invite_code_used = Column(String(50), nullable=True)
    invite_used_at = Column(DateTime, nullable=True)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    role = relationship("Role", lazy="joined")

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or "User"
