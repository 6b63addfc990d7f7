"""Seed default roles into the database."""

import json
from sqlalchemy.orm import Session
from grant_portal.models.role import Role


def seed_roles(db: Session) -> None:
    """Insert default roles if they don't already exist."""
    roles_data = [
        {
            "name": "admin",
            "level": 80,
            "description": "Full portal access, including permanent user deletion",
            "permissions_json": json.dumps([
                "users.manage", "users.delete", "audit.view_all", "organizations.manage",
                "projects.manage", "projects.delete", "invites.manage",
                "enrollments.manage", "reports.review", "payments.manage",
            ]),
        },
        {
            "name": "manager",
            "level": 60,
            "description": "Manage scholars, projects, reports and payments",
            "permissions_json": json.dumps([
                "users.deactivate", "projects.manage", "invites.manage",
                "enrollments.manage", "reports.review", "payments.manage",
            ]),
        },
        {
            "name": "scholar",
            "level": 20,
            "description": "Grant holder submitting monthly reports",
            "permissions_json": json.dumps([
                "reports.submit", "payments.view_own", "enrollments.view_own",
            ]),
        },
    ]

    for role_data in roles_data:
        existing = db.query(Role).filter(Role.name == role_data["name"]).first()
        if not existing:
            db.add(Role(**role_data))

    db.commit()
    print(f"✅ Seeded {len(roles_data)} roles")
