"""Project service: organizations, thematic projects and sub-projects CRUD."""

import re
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from grant_portal.core.exceptions import (
    DependencyConflictError, ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from grant_portal.core.security import ActorContext
from grant_portal.models.enrollment import Enrollment, Payment
from grant_portal.models.invite_code import InviteCode
from grant_portal.models.organization import (
    Organization, Project, ProjectStatusEnum, ThematicProject,
)
from grant_portal.services.audit_service import audit_service


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


class ProjectService:
    """Administrative CRUD over the funding hierarchy."""

    # ---- Organizations ----
    @staticmethod
    def create_organization(db: Session, name: str, slug: Optional[str] = None) -> Organization:
        slug = slug or slugify(name)
        if db.query(Organization.id).filter(Organization.slug == slug).first():
            raise ResourceConflictError(f"Organization slug '{slug}' already exists", code="slug_taken")
        org = Organization(name=name, slug=slug)
        db.add(org)
        db.commit()
        db.refresh(org)
        return org

    @staticmethod
    def list_organizations(db: Session, include_inactive: bool = False) -> list[Organization]:
        query = db.query(Organization)
        if not include_inactive:
            query = query.filter(Organization.is_active == True)  # noqa: E712
        return query.order_by(Organization.name).all()

    @staticmethod
    def update_organization(db: Session, org_id: str, **changes: Any) -> Organization:
        org = db.query(Organization).filter(Organization.id == org_id).first()
        if not org:
            raise ResourceNotFoundError(f"Organization {org_id} not found")
        for field in ("name", "is_active", "email_notifications_enabled"):
            if changes.get(field) is not None:
                setattr(org, field, changes[field])
        db.commit()
        db.refresh(org)
        return org

    # ---- Thematic projects ----
    @staticmethod
    def create_thematic_project(db: Session, actor: ActorContext, **fields: Any) -> ThematicProject:
        thematic = ThematicProject(**fields)
        db.add(thematic)
        db.commit()
        db.refresh(thematic)
        audit_service.log_action(
            db, actor,
            action="create_thematic_project",
            entity_type="thematic_project",
            entity_id=thematic.id,
            details={"title": thematic.title, "sponsor_name": thematic.sponsor_name},
        )
        return thematic

    @staticmethod
    def get_thematic_project(db: Session, thematic_id: str) -> ThematicProject:
        thematic = db.query(ThematicProject).filter(ThematicProject.id == thematic_id).first()
        if not thematic:
            raise ResourceNotFoundError(f"Thematic project {thematic_id} not found")
        return thematic

    @staticmethod
    def list_thematic_projects(
        db: Session, organization_id: Optional[str] = None, status: Optional[str] = None,
    ) -> list[ThematicProject]:
        query = db.query(ThematicProject)
        if organization_id:
            query = query.filter(ThematicProject.organization_id == organization_id)
        if status:
            query = query.filter(ThematicProject.status == status)
        return query.order_by(ThematicProject.title).all()

    @staticmethod
    def archive_thematic_project(db: Session, actor: ActorContext, thematic_id: str) -> ThematicProject:
        """Archive a thematic project together with its sub-projects."""
        thematic = ProjectService.get_thematic_project(db, thematic_id)
        previous = thematic.status
        thematic.status = "archived"
        for project in thematic.projects:
            project.status = ProjectStatusEnum.archived
        db.commit()
        audit_service.log_action(
            db, actor,
            action="archive_thematic_project",
            entity_type="thematic_project",
            entity_id=thematic.id,
            previous_value={"status": previous},
            new_value={"status": "archived"},
            details={"archived_subprojects": len(thematic.projects)},
        )
        return thematic

    @staticmethod
    def thematic_dependency_counts(db: Session, thematic_id: str) -> Dict[str, int]:
        return {
            "projects": db.query(func.count(Project.id)).filter(
                Project.thematic_project_id == thematic_id
            ).scalar() or 0,
            "invite_codes": db.query(func.count(InviteCode.id)).filter(
                InviteCode.thematic_project_id == thematic_id
            ).scalar() or 0,
        }

    @staticmethod
    def delete_thematic_project(db: Session, actor: ActorContext, thematic_id: str) -> None:
        thematic = ProjectService.get_thematic_project(db, thematic_id)
        counts = ProjectService.thematic_dependency_counts(db, thematic_id)
        if any(counts.values()):
            raise DependencyConflictError(
                "Thematic project has linked records. Archive it instead.",
                details={"counts": counts},
            )
        audit_service.log_action(
            db, actor,
            action="delete_thematic_project",
            entity_type="thematic_project",
            entity_id=thematic.id,
            previous_value={"title": thematic.title, "status": thematic.status},
        )
        db.delete(thematic)
        db.commit()

    # ---- Sub-projects ----
    @staticmethod
    def create_project(db: Session, actor: ActorContext, **fields: Any) -> Project:
        ProjectService.get_thematic_project(db, fields["thematic_project_id"])
        if db.query(Project.id).filter(Project.code == fields["code"]).first():
            raise ResourceConflictError(f"Project code '{fields['code']}' already exists", code="code_taken")
        if fields["end_date"] <= fields["start_date"]:
            raise ValidationError("End date must be after start date", code="invalid_date_range")
        project = Project(**fields)
        db.add(project)
        db.commit()
        db.refresh(project)
        audit_service.log_action(
            db, actor,
            action="create_project",
            entity_type="project",
            entity_id=project.id,
            details={"code": project.code, "title": project.title},
        )
        return project

    @staticmethod
    def get_project(db: Session, project_id: str) -> Project:
        project = db.query(Project).filter(Project.id == project_id).first()
        if not project:
            raise ResourceNotFoundError(f"Project {project_id} not found")
        return project

    @staticmethod
    def list_projects(
        db: Session, thematic_project_id: Optional[str] = None, status: Optional[str] = None,
    ) -> list[Project]:
        query = db.query(Project)
        if thematic_project_id:
            query = query.filter(Project.thematic_project_id == thematic_project_id)
        if status:
            query = query.filter(Project.status == ProjectStatusEnum(status))
        return query.order_by(Project.code).all()

    @staticmethod
    def update_project(db: Session, actor: ActorContext, project_id: str, **changes: Any) -> Project:
        project = ProjectService.get_project(db, project_id)
        previous = {}
        for field, value in changes.items():
            if value is None:
                continue
            previous[field] = getattr(project, field)
            setattr(project, field, value)
        if project.end_date <= project.start_date:
            db.rollback()
            raise ValidationError("End date must be after start date", code="invalid_date_range")
        db.commit()
        db.refresh(project)
        audit_service.log_action(
            db, actor,
            action="update_project",
            entity_type="project",
            entity_id=project.id,
            previous_value=previous,
            new_value={k: getattr(project, k) for k in previous},
        )
        return project

    @staticmethod
    def archive_project(db: Session, actor: ActorContext, project_id: str) -> Project:
        project = ProjectService.get_project(db, project_id)
        previous = project.status.value
        project.status = ProjectStatusEnum.archived
        db.commit()
        audit_service.log_action(
            db, actor,
            action="archive_project",
            entity_type="project",
            entity_id=project.id,
            previous_value={"status": previous},
            new_value={"status": "archived"},
        )
        return project

    @staticmethod
    def dependency_counts(db: Session, project_id: str) -> Dict[str, int]:
        """Rows that reference a sub-project and would block its deletion."""
        return {
            "enrollments": db.query(func.count(Enrollment.id)).filter(
                Enrollment.project_id == project_id
            ).scalar() or 0,
            "payments": db.query(func.count(Payment.id))
            .select_from(Payment)
            .join(Enrollment, Payment.enrollment_id == Enrollment.id)
            .filter(Enrollment.project_id == project_id)
            .scalar() or 0,
        }

    @staticmethod
    def delete_project(
        db: Session, actor: ActorContext, project_id: str, confirm_code: str,
    ) -> None:
        """Permanently delete a sub-project with no dependencies.

        The operator must type the project code exactly.
        """
        project = ProjectService.get_project(db, project_id)
        if confirm_code != project.code:
            raise ValidationError("Confirmation code does not match the project code", code="confirmation_mismatch")
        counts = ProjectService.dependency_counts(db, project_id)
        if any(counts.values()):
            raise DependencyConflictError(
                "Project has linked enrollments or payments. Archive it instead.",
                details={"counts": counts},
            )

        audit_service.log_action(
            db, actor,
            action="delete_project",
            entity_type="project",
            entity_id=project.id,
            previous_value={
                "code": project.code,
                "title": project.title,
                "status": project.status.value,
            },
            details={"project_code": project.code, "project_title": project.title},
        )
        db.delete(project)
        db.commit()


project_service = ProjectService()
