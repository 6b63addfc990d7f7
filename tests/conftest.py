"""
Test configuration for the grant portal.

Every test gets a fresh in-memory SQLite schema with the default roles
seeded. Environment overrides must be set before grant_portal is imported
because settings and the engine are built at import time.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "test-secret"

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

import grant_portal.models  # noqa: F401
from grant_portal.core.security import hash_password
from grant_portal.db.base import Base
from grant_portal.db.seeds.seed_roles import seed_roles
from grant_portal.db.session import SessionLocal, engine
from grant_portal.models.enrollment import (
    Enrollment, EnrollmentStatusEnum, Payment, PaymentStatusEnum,
)
from grant_portal.models.organization import (
    GrantModalityEnum, Organization, Project, ThematicProject,
)
from grant_portal.models.report import Report
from grant_portal.models.role import Role
from grant_portal.models.user import User


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    seed_roles(session)
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    from grant_portal.main import app

    with TestClient(app) as test_client:
        yield test_client


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role="scholar", full_name=None, email=None, is_active=True, password="secret123"):
        counter["n"] += 1
        n = counter["n"]
        role_row = db.query(Role).filter(Role.name == role).one()
        user = User(
            email=email or f"{role}{n}@example.org",
            hashed_password=hash_password(password),
            full_name=full_name if full_name is not None else f"{role.title()} {n}",
            role_id=role_row.id,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def project(db):
    org = Organization(name="Test Foundation", slug="test-foundation")
    db.add(org)
    db.flush()
    thematic = ThematicProject(
        title="Thematic A", sponsor_name="Sponsor", organization_id=org.id,
    )
    db.add(thematic)
    db.flush()
    sub = Project(
        code="TP-001",
        title="Sub-project one",
        advisor="Dr. Advisor",
        modality=GrantModalityEnum.ict,
        monthly_value=Decimal("700.00"),
        start_date=date(2025, 1, 1),
        end_date=date(2025, 12, 31),
        thematic_project_id=thematic.id,
    )
    db.add(sub)
    db.commit()
    db.refresh(sub)
    return sub


@pytest.fixture
def link_history(db):
    """Give a user the linked records that block hard deletion."""

    def _link(user, project, enrollment=True, payment=False, report=False):
        enr = None
        if enrollment or payment:
            enr = Enrollment(
                user_id=user.id,
                project_id=project.id,
                modality=GrantModalityEnum.ict,
                grant_value=project.monthly_value,
                start_date=project.start_date,
                end_date=project.end_date,
                total_installments=12,
                status=EnrollmentStatusEnum.active,
            )
            db.add(enr)
            db.flush()
        if payment:
            db.add(Payment(
                user_id=user.id, enrollment_id=enr.id, installment_number=1,
                reference_month="2025-01", amount=project.monthly_value,
                status=PaymentStatusEnum.pending,
            ))
        if report:
            db.add(Report(
                user_id=user.id, reference_month="2025-01", installment_number=1,
                file_name="report.pdf", file_url="https://files.example.org/report.pdf",
            ))
        db.commit()
        return enr

    return _link
