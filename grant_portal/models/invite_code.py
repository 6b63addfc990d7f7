"""Invite code models gating scholar self-registration."""

from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from grant_portal.db.base import Base, new_uuid


class InviteCode(Base):
    """Single or multi-use registration code bound to a thematic project."""
    __tablename__ = "invite_codes"

    id = Column(String(36), primary_key=True, default=new_uuid)
    code = Column(String(50), unique=True, nullable=False, index=True)
    thematic_project_id = Column(String(36), ForeignKey("thematic_projects.id"), nullable=False)
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=True)
    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    max_uses = Column(Integer, nullable=True)  # NULL = unlimited
    used_count = Column(Integer, default=0, nullable=False)
    expires_at = Column(Date, nullable=True)
    status = Column(String(20), default="active", nullable=False)  # active, inactive, exhausted
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    uses = relationship("InviteCodeUse", back_populates="invite_code", lazy="selectin")


class InviteCodeUse(Base):
    """One redemption of an invite code."""
    __tablename__ = "invite_code_uses"

    id = Column(String(36), primary_key=True, default=new_uuid)
    invite_code_id = Column(String(36), ForeignKey("invite_codes.id", ondelete="CASCADE"), nullable=False)
    used_by = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    used_by_email = Column(String(255), nullable=False)
    used_at = Column(DateTime, server_default=func.now(), nullable=False)

    invite_code = relationship("InviteCode", back_populates="uses")
