"""Enrollment service: assigning scholars to sub-projects and their installments."""

import logging
from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from grant_portal.core.exceptions import (
    AuthorizationError, ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from grant_portal.core.security import ActorContext
from grant_portal.core.validators import (
    is_valid_uuid, month_delta_installments, reference_months,
)
from grant_portal.models.enrollment import (
    Enrollment, EnrollmentStatusEnum, Payment, PaymentStatusEnum,
)
from grant_portal.models.organization import GrantModalityEnum, Project
from grant_portal.models.user import User
from grant_portal.services.audit_service import audit_service

logger = logging.getLogger("grant_portal.enrollments")


class EnrollmentService:
    """Creates and updates scholar enrollments."""

    @staticmethod
    def assign_scholar(
        db: Session,
        actor: ActorContext,
        scholar_id: str,
        project_id: str,
        start_date: date,
        end_date: date,
    ) -> Dict[str, Any]:
        """Enroll a scholar into a sub-project and create every monthly payment.

        A scholar holds at most one active enrollment at a time.
        """
        if not actor.is_manager:
            raise AuthorizationError("You are not allowed to assign scholars", code="permission_denied")
        if not is_valid_uuid(scholar_id):
            raise ValidationError("Invalid scholar id format", code="invalid_scholar_id")
        if not is_valid_uuid(project_id):
            raise ValidationError("Invalid project id format", code="invalid_project_id")
        if end_date <= start_date:
            raise ValidationError("End date must be after start date", code="invalid_date_range")

        project = db.query(Project).filter(Project.id == project_id).first()
        if not project:
            raise ResourceNotFoundError("Sub-project not found", code="project_not_found")
        if start_date < project.start_date or end_date > project.end_date:
            raise ValidationError(
                f"Period must be within the sub-project period "
                f"({project.start_date} to {project.end_date})",
                code="date_out_of_project_range",
            )

        scholar = db.query(User).filter(User.id == scholar_id).first()
        if not scholar:
            raise ResourceNotFoundError("Scholar not found", code="scholar_not_found")

        active = db.query(Enrollment).filter(
            Enrollment.user_id == scholar_id,
            Enrollment.status == EnrollmentStatusEnum.active,
        ).all()
        if any(e.project_id == project_id for e in active):
            raise ResourceConflictError(
                "This scholar is already enrolled in this sub-project", code="duplicate_enrollment"
            )
        if active:
            existing = active[0].project
            raise ResourceConflictError(
                "This scholar already has an active sub-project"
                + (f" ({existing.code})" if existing else ""),
                code="scholar_has_active_enrollment",
            )

        total_installments = month_delta_installments(start_date, end_date)
        modality = project.modality or GrantModalityEnum.ict

        enrollment = Enrollment(
            user_id=scholar_id,
            project_id=project_id,
            modality=modality,
            grant_value=project.monthly_value,
            start_date=start_date,
            end_date=end_date,
            total_installments=total_installments,
            status=EnrollmentStatusEnum.active,
        )
        db.add(enrollment)
        db.flush()

        for number, month in enumerate(reference_months(start_date, total_installments), start=1):
            db.add(Payment(
                user_id=scholar_id,
                enrollment_id=enrollment.id,
                installment_number=number,
                reference_month=month,
                amount=project.monthly_value,
                status=PaymentStatusEnum.pending,
            ))
        scholar.onboarding_status = "active"
        db.commit()
        db.refresh(enrollment)

        audit_service.log_action(
            db, actor,
            action="assign_scholar_to_project",
            entity_type="enrollment",
            entity_id=enrollment.id,
            details={
                "project_id": project_id,
                "project_code": project.code,
                "scholar_id": scholar_id,
                "modality": modality.value,
                "grant_value": project.monthly_value,
                "start_date": start_date,
                "end_date": end_date,
                "total_installments": total_installments,
            },
        )
        logger.info("Scholar %s assigned to project %s", scholar_id, project.code)

        return {
            "success": True,
            "enrollment_id": enrollment.id,
            "scholar_name": scholar.full_name or "Scholar",
            "total_installments": total_installments,
            "message": f"Scholar assigned to sub-project {project.code}.",
        }

    @staticmethod
    def update_status(
        db: Session,
        actor: ActorContext,
        enrollment_id: str,
        status: str,
        observations: Optional[str] = None,
    ) -> Enrollment:
        enrollment = db.query(Enrollment).filter(Enrollment.id == enrollment_id).first()
        if not enrollment:
            raise ResourceNotFoundError(f"Enrollment {enrollment_id} not found")
        try:
            new_status = EnrollmentStatusEnum(status)
        except ValueError:
            raise ValidationError(f"Invalid enrollment status '{status}'", code="invalid_status")

        if new_status == EnrollmentStatusEnum.active and enrollment.status != EnrollmentStatusEnum.active:
            other = db.query(Enrollment.id).filter(
                Enrollment.user_id == enrollment.user_id,
                Enrollment.status == EnrollmentStatusEnum.active,
                Enrollment.id != enrollment.id,
            ).first()
            if other:
                raise ResourceConflictError(
                    "This scholar already has an active sub-project",
                    code="scholar_has_active_enrollment",
                )

        previous = enrollment.status.value
        enrollment.status = new_status
        if observations is not None:
            enrollment.observations = observations
        db.commit()
        db.refresh(enrollment)

        audit_service.log_action(
            db, actor,
            action="update_enrollment",
            entity_type="enrollment",
            entity_id=enrollment.id,
            previous_value={"status": previous},
            new_value={"status": new_status.value},
        )
        return enrollment

    @staticmethod
    def list_for_user(db: Session, user_id: str) -> list[Enrollment]:
        return (
            db.query(Enrollment)
            .filter(Enrollment.user_id == user_id)
            .order_by(Enrollment.start_date.desc())
            .all()
        )


enrollment_service = EnrollmentService()
