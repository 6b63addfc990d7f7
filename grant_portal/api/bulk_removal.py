"""Bulk removal API router: eligibility preview and confirmed execution."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from grant_portal.db.session import get_db
from grant_portal.schemas.schemas import BulkEligibilityRequest, BulkExecuteRequest
from grant_portal.services.bulk_removal import (
    BulkRemovalSession,
    EligibilityChecker,
    LocalAuditSink,
    LocalUserAdminGateway,
)
from grant_portal.core.exceptions import ValidationError
from grant_portal.core.security import ActorContext, require_manager

router = APIRouter(prefix="/admin/bulk-removal", tags=["bulk-removal"])


@router.post("/eligibility")
async def check_eligibility(
    body: BulkEligibilityRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_manager),
):
    """Classify the selected users as deletable or deactivation-only."""
    report = EligibilityChecker(db).check(body.user_ids)
    return report.to_dict()


@router.post("/execute")
async def execute(
    body: BulkExecuteRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_manager),
):
    """Run the whole workflow in one request.

    Eligibility is re-computed server side; the typed confirmation word must
    match before anything is dispatched.
    """
    if not body.user_ids:
        raise ValidationError("Select at least one user", code="empty_selection")

    session = BulkRemovalSession(
        actor,
        checker=EligibilityChecker(db),
        gateway=LocalUserAdminGateway(db, actor),
        audit_sink=LocalAuditSink(db, actor),
    )
    report = session.open(body.user_ids)
    if report is None:
        return {
            "eligibility": None,
            "result": None,
            "notices": [n.to_dict() for n in session.notices],
            "refresh": False,
        }

    session.set_deactivate_ineligible(body.deactivate_ineligible)
    session.set_confirmation_text(body.confirmation)
    if not session.word_confirmed:
        raise ValidationError(
            f"Type {session.gate.word} to confirm", code="confirmation_mismatch"
        )

    result = session.confirm()
    notices = [n.to_dict() for n in session.notices]
    return {
        "eligibility": report.to_dict(),
        "result": result.to_dict() if result else None,
        "notices": notices,
        "refresh": session.close(),
    }
