"""Organization, thematic project, and sub-project models."""

import enum

from sqlalchemy import (
    Column, String, Boolean, Date, DateTime, Numeric, Text, ForeignKey, Enum, func,
)
from sqlalchemy.orm import relationship
from grant_portal.db.base import Base, new_uuid


class ProjectStatusEnum(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    archived = "archived"


class GrantModalityEnum(str, enum.Enum):
    ict = "ict"
    ext = "ext"
    ens = "ens"
    ino = "ino"
    dct_a = "dct_a"
    dct_b = "dct_b"
    dct_c = "dct_c"
    postdoc = "postdoc"
    senior = "senior"
    prod = "prod"
    visitor = "visitor"


class Organization(Base):
    """Funding institution that owns thematic projects."""
    __tablename__ = "organizations"

    id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    email_notifications_enabled = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)


class ThematicProject(Base):
    """Sponsored research programme grouping sub-projects."""
    __tablename__ = "thematic_projects"

    id = Column(String(36), primary_key=True, default=new_uuid)
    title = Column(String(255), nullable=False)
    sponsor_name = Column(String(255), nullable=False)
    status = Column(String(20), default="active", nullable=False)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    observations = Column(Text, nullable=True)
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    organization = relationship("Organization")
    projects = relationship("Project", back_populates="thematic_project", lazy="selectin")


class Project(Base):
    """Funded sub-project scholars are enrolled into."""
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=new_uuid)
    code = Column(String(50), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    advisor = Column(String(255), nullable=False)
    modality = Column(Enum(GrantModalityEnum), nullable=True)
    monthly_value = Column(Numeric(12, 2), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(Enum(ProjectStatusEnum), default=ProjectStatusEnum.active, nullable=False)
    observations = Column(Text, nullable=True)
    thematic_project_id = Column(String(36), ForeignKey("thematic_projects.id"), nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    thematic_project = relationship("ThematicProject", back_populates="projects")
