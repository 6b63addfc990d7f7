"""Audit API router: the audit-log entry point used by remote workflow clients."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from grant_portal.db.session import get_db
from grant_portal.schemas.schemas import AuditEntryCreate, AuditLogOut
from grant_portal.services.audit_service import audit_service
from grant_portal.core.security import ActorContext, require_manager

router = APIRouter(prefix="/audit", tags=["audit"])


@router.post("/entries", response_model=AuditLogOut, status_code=201)
async def create_entry(
    body: AuditEntryCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_manager),
):
    """Append an entry attributed to the caller."""
    entry = audit_service.log_action(
        db, actor,
        action=body.action,
        entity_type=body.entity_type,
        entity_id=body.entity_id,
        details=body.details,
        previous_value=body.previous_value,
        new_value=body.new_value,
    )
    db.refresh(entry)
    return AuditLogOut.model_validate(entry)
