"""Seed a demo funding hierarchy."""

from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session
from grant_portal.models.organization import (
    GrantModalityEnum, Organization, Project, ThematicProject,
)


def seed_sample_data(db: Session) -> None:
    """Insert one organization, thematic project and sub-project."""
    org = db.query(Organization).filter(Organization.slug == "demo-foundation").first()
    if not org:
        org = Organization(name="Demo Foundation", slug="demo-foundation")
        db.add(org)
        db.flush()

    thematic = db.query(ThematicProject).filter(
        ThematicProject.title == "Applied Research Programme"
    ).first()
    if not thematic:
        thematic = ThematicProject(
            title="Applied Research Programme",
            sponsor_name="Demo Foundation",
            organization_id=org.id,
            start_date=date(2025, 1, 1),
            end_date=date(2027, 12, 31),
        )
        db.add(thematic)
        db.flush()

    if not db.query(Project.id).filter(Project.code == "ARP-001").first():
        db.add(Project(
            code="ARP-001",
            title="Sensor Data Pipelines",
            advisor="Dr. Demo Advisor",
            modality=GrantModalityEnum.ict,
            monthly_value=Decimal("700.00"),
            start_date=date(2025, 3, 1),
            end_date=date(2026, 2, 28),
            thematic_project_id=thematic.id,
        ))

    db.commit()
    print("✅ Sample organization, thematic project and sub-project ready")
