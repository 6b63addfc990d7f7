"""Monthly report model."""

import enum

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Enum, func
from grant_portal.db.base import Base, new_uuid


class ReportStatusEnum(str, enum.Enum):
    under_review = "under_review"
    approved = "approved"
    rejected = "rejected"


class Report(Base):
    """Monthly activity report submitted by a scholar."""
    __tablename__ = "reports"

    id = Column(String(36), primary_key=True, default=new_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    reference_month = Column(String(7), nullable=False)  # YYYY-MM
    installment_number = Column(Integer, nullable=False)
    file_name = Column(String(255), nullable=False)
    file_url = Column(String(500), nullable=False)
    observations = Column(Text, nullable=True)
    status = Column(Enum(ReportStatusEnum), default=ReportStatusEnum.under_review, nullable=False)
    feedback = Column(Text, nullable=True)
    reviewed_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    resubmission_deadline = Column(DateTime, nullable=True)
    submitted_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
