"""Payment service: installment listing and settlement."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from grant_portal.core.exceptions import ResourceConflictError, ResourceNotFoundError
from grant_portal.core.security import ActorContext
from grant_portal.models.enrollment import Payment, PaymentStatusEnum
from grant_portal.services.audit_service import audit_service


class PaymentService:
    """Installments move pending → eligible (report approved) → paid."""

    @staticmethod
    def list_payments(
        db: Session,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        reference_month: Optional[str] = None,
        enrollment_id: Optional[str] = None,
    ) -> list[Payment]:
        query = db.query(Payment)
        if user_id:
            query = query.filter(Payment.user_id == user_id)
        if status:
            query = query.filter(Payment.status == PaymentStatusEnum(status))
        if reference_month:
            query = query.filter(Payment.reference_month == reference_month)
        if enrollment_id:
            query = query.filter(Payment.enrollment_id == enrollment_id)
        return query.order_by(Payment.reference_month, Payment.installment_number).all()

    @staticmethod
    def mark_paid(
        db: Session,
        actor: ActorContext,
        payment_id: str,
        receipt_url: Optional[str] = None,
    ) -> Payment:
        """Settle an eligible installment."""
        payment = db.query(Payment).filter(Payment.id == payment_id).first()
        if not payment:
            raise ResourceNotFoundError(f"Payment {payment_id} not found")
        if payment.status != PaymentStatusEnum.eligible:
            raise ResourceConflictError(
                f"Only eligible payments can be paid (current: {payment.status.value})",
                code="payment_not_eligible",
            )
        now = datetime.now(timezone.utc)
        payment.status = PaymentStatusEnum.paid
        payment.paid_at = now
        if receipt_url:
            payment.receipt_url = receipt_url
        db.commit()
        db.refresh(payment)

        audit_service.log_action(
            db, actor,
            action="mark_payment_paid",
            entity_type="payment",
            entity_id=payment.id,
            previous_value={"status": "eligible"},
            new_value={"status": "paid", "paid_at": now},
            details={
                "scholar_id": payment.user_id,
                "reference_month": payment.reference_month,
                "amount": payment.amount,
                "receipt_url": payment.receipt_url,
            },
        )
        return payment


payment_service = PaymentService()
