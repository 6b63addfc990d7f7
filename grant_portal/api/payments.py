"""Payments API router."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from grant_portal.db.session import get_db
from grant_portal.schemas.schemas import MarkPaidRequest, PaymentOut
from grant_portal.services.payment_service import payment_service
from grant_portal.core.security import ActorContext, get_current_actor, require_manager

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/")
async def list_payments(
    status: Optional[str] = Query(None),
    reference_month: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    enrollment_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_current_actor),
):
    if not actor.is_manager:
        user_id = actor.user_id
    items = payment_service.list_payments(db, user_id, status, reference_month, enrollment_id)
    return {"payments": [PaymentOut.model_validate(p) for p in items]}


@router.post("/{payment_id}/mark-paid", response_model=PaymentOut)
async def mark_paid(
    payment_id: str,
    body: MarkPaidRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_manager),
):
    return PaymentOut.model_validate(payment_service.mark_paid(db, actor, payment_id, body.receipt_url))
