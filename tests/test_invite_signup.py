"""Invite codes and scholar self-registration."""
import re
from datetime import date, timedelta

import pytest

from grant_portal.core.exceptions import ValidationError
from grant_portal.models.invite_code import InviteCode, InviteCodeUse
from grant_portal.models.user import User
from grant_portal.services.invite_code_service import invite_code_service
from helpers import actor_for, auth_headers

CODE_RE = re.compile(r"^ICCA-[ABCDEFGHJKLMNPQRSTUVWXYZ23456789]{8}$")


def _signup(client, code, email, cpf):
    return client.post("/api/auth/signup", json={
        "email": email,
        "password": "secret123",
        "full_name": "New Scholar",
        "cpf": cpf,
        "invite_code": code,
    })


def test_generated_codes_use_unambiguous_alphabet():
    for _ in range(50):
        assert CODE_RE.match(invite_code_service.generate_code())


def test_signup_redeems_code_until_exhausted(client, db, make_user, project):
    manager = make_user("manager")
    created = client.post(
        "/api/invite-codes/",
        json={"thematic_project_id": project.thematic_project_id, "max_uses": 1},
        headers=auth_headers(manager),
    )
    assert created.status_code == 201
    code = created.json()["code"]
    assert CODE_RE.match(code)

    first = _signup(client, code, "first@example.org", "529.982.247-25")
    assert first.status_code == 201
    body = first.json()
    assert body["onboarding_status"] == "awaiting_assignment"
    assert body["thematic_project_id"] == project.thematic_project_id

    db.expire_all()
    invite = db.query(InviteCode).filter(InviteCode.code == code).one()
    assert invite.used_count == 1
    assert invite.status == "exhausted"
    assert db.query(InviteCodeUse).filter(InviteCodeUse.invite_code_id == invite.id).count() == 1
    user = db.query(User).filter(User.email == "first@example.org").one()
    assert user.cpf == "52998224725"
    assert user.invite_code_used == code

    second = _signup(client, code, "second@example.org", "111.444.777-35")
    assert second.status_code == 400
    assert second.json()["error"] == "invite_code_inactive"


def test_signup_rejects_invalid_cpf(client, db, make_user, project):
    invite = invite_code_service.create(db, actor_for(make_user("manager")), project.thematic_project_id)
    resp = _signup(client, invite.code, "bad@example.org", "111.111.111-11")
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_cpf"
    db.expire_all()
    assert db.get(InviteCode, invite.id).used_count == 0


def test_signup_rejects_duplicate_cpf(client, db, make_user, project):
    invite = invite_code_service.create(db, actor_for(make_user("manager")), project.thematic_project_id)
    assert _signup(client, invite.code, "one@example.org", "390.533.447-05").status_code == 201
    resp = _signup(client, invite.code, "two@example.org", "39053344705")
    assert resp.status_code == 409
    assert resp.json()["error"] == "cpf_taken"


def test_unknown_code(client):
    resp = _signup(client, "ICCA-NOPE2345", "x@example.org", "529.982.247-25")
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_invite_code"


def test_validate_rules(db, make_user, project):
    actor = actor_for(make_user("manager"))
    expired = invite_code_service.create(
        db, actor, project.thematic_project_id, expires_at=date.today() - timedelta(days=1),
    )
    with pytest.raises(ValidationError) as exc:
        invite_code_service.validate(db, expired.code)
    assert exc.value.code == "invite_code_expired"

    paused = invite_code_service.create(db, actor, project.thematic_project_id)
    invite_code_service.update(db, actor, paused.id, status="inactive")
    with pytest.raises(ValidationError) as exc:
        invite_code_service.validate(db, paused.code)
    assert exc.value.code == "invite_code_inactive"

    full = invite_code_service.create(db, actor, project.thematic_project_id, max_uses=2)
    full.used_count = 2
    db.commit()
    with pytest.raises(ValidationError) as exc:
        invite_code_service.validate(db, full.code)
    assert exc.value.code == "invite_code_exhausted"


def test_max_uses_cannot_drop_below_usage(db, make_user, project):
    actor = actor_for(make_user("manager"))
    invite = invite_code_service.create(db, actor, project.thematic_project_id, max_uses=5)
    invite.used_count = 3
    db.commit()
    with pytest.raises(ValidationError):
        invite_code_service.update(db, actor, invite.id, max_uses=2)
