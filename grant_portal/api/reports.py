"""Monthly reports API router."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from grant_portal.db.session import get_db
from grant_portal.schemas.schemas import ReportOut, ReportReview, ReportSubmit
from grant_portal.services.report_service import report_service
from grant_portal.core.security import (
    ActorContext, get_current_actor, require_manager, require_scholar,
)

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("/", response_model=ReportOut, status_code=201)
async def submit_report(
    body: ReportSubmit,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_scholar),
):
    report = report_service.submit(
        db, actor, body.reference_month, body.file_name, body.file_url, body.observations,
    )
    return ReportOut.model_validate(report)


@router.get("/")
async def list_reports(
    status: Optional[str] = Query(None),
    reference_month: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_current_actor),
):
    """Managers list everything; scholars only their own reports."""
    if not actor.is_manager:
        user_id = actor.user_id
    items = report_service.list_reports(db, user_id, status, reference_month)
    return {"reports": [ReportOut.model_validate(r) for r in items]}


@router.post("/{report_id}/approve", response_model=ReportOut)
async def approve_report(
    report_id: str,
    body: ReportReview,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_manager),
):
    return ReportOut.model_validate(report_service.approve(db, actor, report_id, body.feedback))


@router.post("/{report_id}/reject", response_model=ReportOut)
async def reject_report(
    report_id: str,
    body: ReportReview,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_manager),
):
    return ReportOut.model_validate(report_service.reject(db, actor, report_id, body.feedback or ""))
