"""Enrollment and Payment models."""

import enum

from sqlalchemy import (
    Column, Integer, String, Date, DateTime, Numeric, Text, ForeignKey, Enum, func,
)
from sqlalchemy.orm import relationship
from grant_portal.db.base import Base, new_uuid
from grant_portal.models.organization import GrantModalityEnum


class EnrollmentStatusEnum(str, enum.Enum):
    active = "active"
    suspended = "suspended"
    completed = "completed"
    cancelled = "cancelled"


class PaymentStatusEnum(str, enum.Enum):
    pending = "pending"
    eligible = "eligible"
    paid = "paid"
    cancelled = "cancelled"


class Enrollment(Base):
    """Link between a scholar and a funded sub-project."""
    __tablename__ = "enrollments"

    id = Column(String(36), primary_key=True, default=new_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=False, index=True)
    modality = Column(Enum(GrantModalityEnum), nullable=False)
    grant_value = Column(Numeric(12, 2), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    total_installments = Column(Integer, nullable=False)
    status = Column(Enum(EnrollmentStatusEnum), default=EnrollmentStatusEnum.active, nullable=False)
    observations = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    project = relationship("Project")
    payments = relationship("Payment", back_populates="enrollment", lazy="selectin")


class Payment(Base):
    """One monthly installment of an enrollment."""
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=new_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    enrollment_id = Column(String(36), ForeignKey("enrollments.id"), nullable=False, index=True)
    installment_number = Column(Integer, nullable=False)
    reference_month = Column(String(7), nullable=False)  # YYYY-MM
    amount = Column(Numeric(12, 2), nullable=False)
    status = Column(Enum(PaymentStatusEnum), default=PaymentStatusEnum.pending, nullable=False)
    paid_at = Column(DateTime, nullable=True)
    receipt_url = Column(String(500), nullable=True)
    report_id = Column(String(36), ForeignKey("reports.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    enrollment = relationship("Enrollment", back_populates="payments")
