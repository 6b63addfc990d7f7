"""Admin API router: users, privileged user management, audit, stats, health."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from grant_portal.db.session import get_db
from grant_portal.schemas.schemas import (
    AuditLogOut, ManageUsersRequest, MessageResponse, UserOut, UserUpdateRequest,
)
from grant_portal.services.audit_service import audit_service
from grant_portal.services.auth_service import auth_service
from grant_portal.services.user_management_service import user_management_service
from grant_portal.models.audit_log import AuditLog
from grant_portal.models.enrollment import Enrollment, EnrollmentStatusEnum, Payment, PaymentStatusEnum
from grant_portal.models.report import Report, ReportStatusEnum
from grant_portal.models.role import Role
from grant_portal.models.user import User
from grant_portal.core.exceptions import ResourceNotFoundError
from grant_portal.core.security import (
    ActorContext, get_current_actor, require_admin, require_manager,
)

logger = logging.getLogger("grant_portal.admin")

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users")
async def admin_list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None),
    role: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_manager),
):
    """List users with search and filters (manager and above)."""
    result = auth_service.list_users(db, page, page_size, search, role, is_active)
    return {
        "users": [
            UserOut(
                id=u.id, email=u.email, full_name=u.full_name,
                role=u.role.name if u.role else None,
                is_active=u.is_active, onboarding_status=u.onboarding_status,
                thematic_project_id=u.thematic_project_id, created_at=u.created_at,
            )
            for u in result["users"]
        ],
        "total": result["total"],
        "page": result["page"],
    }


@router.put("/users/{user_id}", response_model=MessageResponse)
async def admin_update_user(
    user_id: str,
    body: UserUpdateRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_admin),
):
    """Update a user's profile or role (admin only).

    Activation changes go through ``manage-users`` so enrollments follow.
    """
    user = auth_service.get_user(db, user_id)

    changes = body.model_dump(exclude_none=True)
    previous = {}
    role_name = changes.pop("role_name", None)
    if role_name:
        role = db.query(Role).filter(Role.name == role_name).first()
        if not role:
            raise ResourceNotFoundError(f"Role '{role_name}' not found")
        previous["role"] = user.role.name if user.role else None
        user.role_id = role.id
    for field, value in changes.items():
        previous[field] = getattr(user, field)
        setattr(user, field, value)
    db.commit()

    audit_service.log_action(
        db, actor,
        action="update_user",
        entity_type="user",
        entity_id=user_id,
        previous_value=previous,
        new_value={**changes, **({"role": role_name} if role_name else {})},
    )
    return MessageResponse(message="User updated")


@router.post("/manage-users")
async def manage_users(
    body: ManageUsersRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_current_actor),
):
    """Bulk delete, deactivate or reactivate users.

    Returns ``{"message", "results": {"success", "failed"}}``; whole-call
    failures come back as ``{"error", "message", "details"}``.
    """
    return user_management_service.manage(db, actor, body.action, body.user_ids)


@router.get("/audit")
async def get_audit_logs(
    action: Optional[str] = Query(None),
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[str] = Query(None),
    actor_id: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_admin),
):
    """Query audit logs (admin only)."""
    result = audit_service.query_logs(
        db, actor_id, action, entity_type, entity_id, page, page_size,
    )
    return {
        "logs": [
            AuditLogOut.model_validate(log)
            for log in result["logs"]
        ],
        "total": result["total"],
        "page": result["page"],
    }


@router.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """System health check: database connectivity."""
    db_ok = False
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError as e:
        logger.warning("Database health check failed: %s", e)

    return {
        "database": "ok" if db_ok else "error",
        "status": "healthy" if db_ok else "degraded",
    }


@router.get("/stats")
async def system_stats(
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_manager),
):
    """Get portal-level statistics."""
    return {
        "total_users": db.query(User).count(),
        "active_users": db.query(User).filter(User.is_active.is_(True)).count(),
        "active_enrollments": db.query(Enrollment).filter(
            Enrollment.status == EnrollmentStatusEnum.active
        ).count(),
        "reports_under_review": db.query(Report).filter(
            Report.status == ReportStatusEnum.under_review
        ).count(),
        "payments_eligible": db.query(Payment).filter(
            Payment.status == PaymentStatusEnum.eligible
        ).count(),
        "total_audit_events": db.query(AuditLog).count(),
    }
