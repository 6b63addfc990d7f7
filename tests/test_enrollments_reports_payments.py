"""Scholar assignment, monthly reports and installment payments."""
from datetime import date
from decimal import Decimal

import pytest

from grant_portal.core.exceptions import (
    AuthorizationError, ResourceConflictError, ValidationError,
)
from grant_portal.models.audit_log import AuditLog
from grant_portal.models.enrollment import Payment, PaymentStatusEnum
from grant_portal.models.organization import Project
from grant_portal.models.user import User
from grant_portal.services.enrollment_service import enrollment_service
from helpers import actor_for, auth_headers


def _assign(client, caller, scholar, project, start="2025-01-10", end="2025-12-20"):
    return client.post("/api/enrollments/assign", json={
        "scholar_id": scholar.id,
        "project_id": project.id,
        "start_date": start,
        "end_date": end,
    }, headers=auth_headers(caller))


def test_assign_creates_every_installment(client, db, make_user, project):
    manager = make_user("manager")
    scholar = make_user(full_name="Maria Scholar")

    resp = _assign(client, manager, scholar, project)

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["total_installments"] == 12
    assert body["scholar_name"] == "Maria Scholar"

    payments = db.query(Payment).filter(Payment.user_id == scholar.id).order_by(Payment.installment_number).all()
    assert [p.reference_month for p in payments][:2] == ["2025-01", "2025-02"]
    assert payments[-1].reference_month == "2025-12"
    assert all(p.status == PaymentStatusEnum.pending for p in payments)
    assert all(p.amount == Decimal("700.00") for p in payments)
    db.expire_all()
    assert db.get(User, scholar.id).onboarding_status == "active"
    assert db.query(AuditLog).filter(AuditLog.action == "assign_scholar_to_project").count() == 1


def test_scholar_holds_one_active_enrollment(client, db, make_user, project):
    manager = make_user("manager")
    scholar = make_user()
    other = Project(
        code="TP-002", title="Other", advisor="Dr. Other", monthly_value=Decimal("400.00"),
        start_date=date(2025, 1, 1), end_date=date(2025, 12, 31),
        thematic_project_id=project.thematic_project_id,
    )
    db.add(other)
    db.commit()

    assert _assign(client, manager, scholar, project).status_code == 201
    same = _assign(client, manager, scholar, project)
    assert same.status_code == 409
    assert same.json()["error"] == "duplicate_enrollment"
    second = _assign(client, manager, scholar, other)
    assert second.status_code == 409
    assert second.json()["error"] == "scholar_has_active_enrollment"


@pytest.mark.parametrize("start,end,code", [
    ("2025-06-01", "2025-05-01", "invalid_date_range"),
    ("2024-12-01", "2025-05-01", "date_out_of_project_range"),
])
def test_assign_validates_dates(client, make_user, project, start, end, code):
    resp = _assign(client, make_user("manager"), make_user(), project, start, end)
    assert resp.status_code == 400
    assert resp.json()["error"] == code


def test_assign_requires_manager(db, make_user, project):
    scholar = make_user()
    with pytest.raises(AuthorizationError) as exc:
        enrollment_service.assign_scholar(
            db, actor_for(scholar), scholar.id, project.id, date(2025, 1, 1), date(2025, 3, 1),
        )
    assert exc.value.code == "permission_denied"


def test_reactivating_enrollment_respects_exclusivity(db, make_user, project):
    manager = actor_for(make_user("manager"))
    scholar = make_user()
    first = enrollment_service.assign_scholar(
        db, manager, scholar.id, project.id, date(2025, 1, 1), date(2025, 3, 31),
    )
    enrollment_service.update_status(db, manager, first["enrollment_id"], "completed")
    other = Project(
        code="TP-003", title="Next", advisor="Dr. Next", monthly_value=Decimal("500.00"),
        start_date=date(2025, 1, 1), end_date=date(2025, 12, 31),
        thematic_project_id=project.thematic_project_id,
    )
    db.add(other)
    db.commit()
    enrollment_service.assign_scholar(db, manager, scholar.id, other.id, date(2025, 4, 1), date(2025, 6, 30))

    with pytest.raises(ResourceConflictError):
        enrollment_service.update_status(db, manager, first["enrollment_id"], "active")


def test_report_approval_releases_payment_then_pay(client, db, make_user, project):
    manager = make_user("manager")
    scholar = make_user()
    assert _assign(client, manager, scholar, project).status_code == 201

    submitted = client.post("/api/reports/", json={
        "reference_month": "2025-03",
        "file_name": "march.pdf",
        "file_url": "https://files.example.org/march.pdf",
    }, headers=auth_headers(scholar))
    assert submitted.status_code == 201
    report = submitted.json()
    assert report["installment_number"] == 3
    assert report["status"] == "under_review"

    duplicate = client.post("/api/reports/", json={
        "reference_month": "2025-03", "file_name": "again.pdf", "file_url": "https://x/again.pdf",
    }, headers=auth_headers(scholar))
    assert duplicate.status_code == 409

    payment = db.query(Payment).filter(
        Payment.user_id == scholar.id, Payment.reference_month == "2025-03"
    ).one()
    early = client.post(f"/api/payments/{payment.id}/mark-paid", json={}, headers=auth_headers(manager))
    assert early.status_code == 409
    assert early.json()["error"] == "payment_not_eligible"

    approved = client.post(f"/api/reports/{report['id']}/approve", json={}, headers=auth_headers(manager))
    assert approved.status_code == 200
    db.expire_all()
    payment = db.get(Payment, payment.id)
    assert payment.status == PaymentStatusEnum.eligible
    assert payment.report_id == report["id"]

    paid = client.post(
        f"/api/payments/{payment.id}/mark-paid",
        json={"receipt_url": "https://files.example.org/receipt.pdf"},
        headers=auth_headers(manager),
    )
    assert paid.status_code == 200
    assert paid.json()["status"] == "paid"
    assert paid.json()["paid_at"] is not None


def test_reject_requires_feedback_and_allows_resubmission(client, make_user, project):
    manager = make_user("manager")
    scholar = make_user()
    _assign(client, manager, scholar, project)
    report = client.post("/api/reports/", json={
        "reference_month": "2025-02", "file_name": "feb.pdf", "file_url": "https://x/feb.pdf",
    }, headers=auth_headers(scholar)).json()

    missing = client.post(f"/api/reports/{report['id']}/reject", json={}, headers=auth_headers(manager))
    assert missing.status_code == 400
    assert missing.json()["error"] == "feedback_required"

    rejected = client.post(
        f"/api/reports/{report['id']}/reject",
        json={"feedback": "Missing signatures"},
        headers=auth_headers(manager),
    )
    assert rejected.status_code == 200
    assert rejected.json()["status"] == "rejected"
    assert rejected.json()["resubmission_deadline"] is not None

    again = client.post("/api/reports/", json={
        "reference_month": "2025-02", "file_name": "feb-v2.pdf", "file_url": "https://x/feb-v2.pdf",
    }, headers=auth_headers(scholar))
    assert again.status_code == 201


def test_report_outside_enrollment(db, make_user, project):
    from grant_portal.services.report_service import report_service

    manager = actor_for(make_user("manager"))
    scholar = make_user()
    enrollment_service.assign_scholar(db, manager, scholar.id, project.id, date(2025, 1, 1), date(2025, 3, 31))
    with pytest.raises(ValidationError) as exc:
        report_service.submit(db, actor_for(scholar), "2025-09", "sep.pdf", "https://x/sep.pdf")
    assert exc.value.code == "month_out_of_range"


def test_scholar_sees_only_own_payments(client, make_user, project):
    manager = make_user("manager")
    first, second = make_user(), make_user()
    _assign(client, manager, first, project)
    _assign(client, manager, second, project)

    resp = client.get("/api/payments/", headers=auth_headers(first))
    assert resp.status_code == 200
    assert {p["user_id"] for p in resp.json()["payments"]} == {first.id}
