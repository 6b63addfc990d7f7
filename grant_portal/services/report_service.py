"""Report service: monthly report submission and review."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from grant_portal.core.config import settings
from grant_portal.core.exceptions import (
    ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from grant_portal.core.security import ActorContext
from grant_portal.core.validators import is_reference_month
from grant_portal.models.enrollment import (
    Enrollment, EnrollmentStatusEnum, Payment, PaymentStatusEnum,
)
from grant_portal.models.report import Report, ReportStatusEnum
from grant_portal.models.user import User
from grant_portal.services.audit_service import audit_service


class ReportService:
    """Handles the monthly report lifecycle: under_review → approved | rejected."""

    @staticmethod
    def submit(
        db: Session,
        actor: ActorContext,
        reference_month: str,
        file_name: str,
        file_url: str,
        observations: Optional[str] = None,
    ) -> Report:
        """Submit the scholar's report for a month; a rejected report may be resubmitted."""
        if not is_reference_month(reference_month):
            raise ValidationError("reference_month must be YYYY-MM", code="invalid_reference_month")

        enrollment = db.query(Enrollment).filter(
            Enrollment.user_id == actor.user_id,
            Enrollment.status == EnrollmentStatusEnum.active,
        ).first()
        if not enrollment:
            raise ValidationError("No active enrollment to report on", code="no_active_enrollment")

        payment = db.query(Payment).filter(
            Payment.enrollment_id == enrollment.id,
            Payment.reference_month == reference_month,
        ).first()
        if not payment:
            raise ValidationError(
                "Reference month is outside the enrollment period", code="month_out_of_range"
            )

        existing = db.query(Report).filter(
            Report.user_id == actor.user_id,
            Report.reference_month == reference_month,
            Report.status != ReportStatusEnum.rejected,
        ).first()
        if existing:
            raise ResourceConflictError(
                f"A report for {reference_month} was already submitted", code="duplicate_report"
            )

        report = Report(
            user_id=actor.user_id,
            reference_month=reference_month,
            installment_number=payment.installment_number,
            file_name=file_name,
            file_url=file_url,
            observations=observations,
            status=ReportStatusEnum.under_review,
        )
        db.add(report)
        db.commit()
        db.refresh(report)
        return report

    @staticmethod
    def get(db: Session, report_id: str) -> Report:
        report = db.query(Report).filter(Report.id == report_id).first()
        if not report:
            raise ResourceNotFoundError(f"Report {report_id} not found")
        return report

    @staticmethod
    def list_reports(
        db: Session,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        reference_month: Optional[str] = None,
    ) -> list[Report]:
        query = db.query(Report)
        if user_id:
            query = query.filter(Report.user_id == user_id)
        if status:
            query = query.filter(Report.status == ReportStatusEnum(status))
        if reference_month:
            query = query.filter(Report.reference_month == reference_month)
        return query.order_by(Report.submitted_at.desc()).all()

    @staticmethod
    def _pending_review(db: Session, report_id: str) -> Report:
        report = ReportService.get(db, report_id)
        if report.status != ReportStatusEnum.under_review:
            raise ResourceConflictError("Report was already reviewed", code="already_reviewed")
        return report

    @staticmethod
    def approve(
        db: Session, actor: ActorContext, report_id: str, feedback: Optional[str] = None,
    ) -> Report:
        """Approve a report and release the payment of the same month."""
        report = ReportService._pending_review(db, report_id)
        report.status = ReportStatusEnum.approved
        report.reviewed_at = datetime.now(timezone.utc)
        report.reviewed_by = actor.user_id
        report.feedback = feedback or None

        payment = db.query(Payment).filter(
            Payment.user_id == report.user_id,
            Payment.reference_month == report.reference_month,
            Payment.status == PaymentStatusEnum.pending,
        ).first()
        if payment:
            payment.status = PaymentStatusEnum.eligible
            payment.report_id = report.id
        db.commit()
        db.refresh(report)

        scholar = db.query(User).filter(User.id == report.user_id).first()
        audit_service.log_action(
            db, actor,
            action="approve_report",
            entity_type="report",
            entity_id=report.id,
            details={
                "scholar_id": report.user_id,
                "scholar_name": scholar.full_name if scholar else None,
                "reference_month": report.reference_month,
                "feedback": report.feedback,
                "released_payment_id": payment.id if payment else None,
            },
        )
        return report

    @staticmethod
    def reject(db: Session, actor: ActorContext, report_id: str, feedback: str) -> Report:
        """Return a report for correction; feedback is mandatory."""
        if not (feedback or "").strip():
            raise ValidationError("Feedback is required to return a report", code="feedback_required")
        report = ReportService._pending_review(db, report_id)
        now = datetime.now(timezone.utc)
        deadline = now + timedelta(days=settings.REPORT_RESUBMISSION_DAYS)
        report.status = ReportStatusEnum.rejected
        report.reviewed_at = now
        report.reviewed_by = actor.user_id
        report.feedback = feedback
        report.resubmission_deadline = deadline
        db.commit()
        db.refresh(report)

        audit_service.log_action(
            db, actor,
            action="reject_report",
            entity_type="report",
            entity_id=report.id,
            details={
                "scholar_id": report.user_id,
                "reference_month": report.reference_month,
                "feedback": feedback,
                "resubmission_deadline": deadline,
            },
        )
        return report


report_service = ReportService()
