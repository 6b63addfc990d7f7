"""Privileged user management: bulk delete, deactivate and reactivate.

Every call validates the whole batch first, then processes users one by one
so that a failure on one user never blocks the others. Per-user outcomes are
reported as ``{"success": [ids], "failed": [{"id", "error", "code"}]}``.
"""

import logging
from typing import Any, Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from grant_portal.core.config import settings
from grant_portal.core.exceptions import (
    AuthorizationError, DependencyConflictError, ValidationError,
)
from grant_portal.core.security import ActorContext
from grant_portal.core.validators import is_valid_uuid
from grant_portal.models.enrollment import Enrollment, EnrollmentStatusEnum, Payment
from grant_portal.models.invite_code import InviteCodeUse
from grant_portal.models.refresh_token import RefreshToken
from grant_portal.models.report import Report
from grant_portal.models.user import User

logger = logging.getLogger("grant_portal.manage_users")

ACTIONS = ("delete", "deactivate", "reactivate")

DEPENDENCY_LABELS = {
    "enrollments": Enrollment,
    "payments": Payment,
    "reports": Report,
}


def linked_record_types(db: Session, user_id: str) -> List[str]:
    """Names of the dependency tables holding at least one row for the user."""
    return [
        label
        for label, model in DEPENDENCY_LABELS.items()
        if db.query(model.id).filter(model.user_id == user_id).first() is not None
    ]


class UserManagementService:
    """Implements the ``manage-users`` privileged procedure."""

    @staticmethod
    def validate_request(actor: ActorContext, action: Any, user_ids: Any) -> List[str]:
        """Check caller rights and batch shape; returns the ids to process."""
        if not actor.is_manager:
            raise AuthorizationError("Only managers can manage users")
        if not isinstance(user_ids, list) or len(user_ids) == 0:
            raise ValidationError("User list is invalid or empty", code="invalid_request")
        if len(user_ids) > settings.MANAGE_USERS_MAX_BATCH:
            raise ValidationError(
                f"At most {settings.MANAGE_USERS_MAX_BATCH} users per request",
                code="limit_exceeded",
            )
        if any(not is_valid_uuid(uid) for uid in user_ids):
            raise ValidationError("One or more user ids have an invalid format", code="invalid_uuid")
        if actor.user_id in user_ids:
            raise ValidationError("You cannot perform this action on your own account", code="self_action")
        if action not in ACTIONS:
            raise ValidationError(
                "Invalid action. Use: deactivate, reactivate or delete.", code="invalid_action"
            )
        if action == "delete" and not actor.is_admin:
            raise AuthorizationError("Only admins can permanently delete users")
        return list(dict.fromkeys(user_ids))

    @staticmethod
    def manage(db: Session, actor: ActorContext, action: Any, user_ids: Any) -> Dict[str, Any]:
        """Run ``action`` over ``user_ids``.

        Raises:
            AuthorizationError / ValidationError: request rejected as a whole.
            DependencyConflictError: delete where nothing succeeded and every
                failure was a dependency block.
        """
        ids = UserManagementService.validate_request(actor, action, user_ids)
        logger.info("%s requested %s for %d user(s)", actor.user_id, action, len(ids))

        if action == "delete":
            results = UserManagementService._delete(db, ids)
            if not results["success"] and all(
                f["code"] == "has_dependencies" for f in results["failed"]
            ):
                raise DependencyConflictError(
                    "User(s) have linked records. Deactivate instead of deleting.",
                    details={"failed": results["failed"]},
                )
            label = "permanently deleted"
        else:
            results = UserManagementService._set_active(db, ids, action == "reactivate")
            label = "reactivated" if action == "reactivate" else "deactivated"

        return {
            "message": f"{len(results['success'])} user(s) {label}",
            "results": results,
        }

    @staticmethod
    def _set_active(db: Session, ids: List[str], is_active: bool) -> Dict[str, list]:
        results: Dict[str, list] = {"success": [], "failed": []}
        for user_id in ids:
            user = db.query(User).filter(User.id == user_id).first()
            if not user:
                results["failed"].append({"id": user_id, "error": "User not found.", "code": "not_found"})
                continue
            try:
                user.is_active = is_active
                if not is_active:
                    db.query(Enrollment).filter(
                        Enrollment.user_id == user_id,
                        Enrollment.status == EnrollmentStatusEnum.active,
                    ).update(
                        {"status": EnrollmentStatusEnum.suspended},
                        synchronize_session=False,
                    )
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                logger.error("Error updating user %s: %s", user_id, e)
                results["failed"].append({"id": user_id, "error": str(e), "code": "update_failed"})
                continue
            results["success"].append(user_id)
        return results

    @staticmethod
    def _delete(db: Session, ids: List[str]) -> Dict[str, list]:
        results: Dict[str, list] = {"success": [], "failed": []}
        for user_id in ids:
            user = db.query(User).filter(User.id == user_id).first()
            if not user:
                results["failed"].append({"id": user_id, "error": "User not found.", "code": "not_found"})
                continue

            # Re-checked here: the caller's eligibility snapshot may be stale
            linked = linked_record_types(db, user_id)
            if linked:
                logger.info("User %s has linked records: %s", user_id, ", ".join(linked))
                results["failed"].append({
                    "id": user_id,
                    "error": f"User has {', '.join(linked)} linked. Deactivate instead of deleting.",
                    "code": "has_dependencies",
                })
                continue

            try:
                db.query(RefreshToken).filter(RefreshToken.user_id == user_id).delete(
                    synchronize_session=False
                )
                db.query(InviteCodeUse).filter(InviteCodeUse.used_by == user_id).delete(
                    synchronize_session=False
                )
                db.delete(user)
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                logger.error("Error deleting user %s: %s", user_id, e)
                results["failed"].append({
                    "id": user_id, "error": "Internal failure deleting user.", "code": "server_error",
                })
                continue
            logger.info("Deleted user %s", user_id)
            results["success"].append(user_id)
        return results


user_management_service = UserManagementService()
