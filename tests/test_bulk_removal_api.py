"""Bulk removal endpoints driven through the API."""
import json

from grant_portal.models.audit_log import AuditLog
from grant_portal.models.user import User
from helpers import auth_headers


def test_eligibility_endpoint(client, make_user, project, link_history):
    admin = make_user("admin")
    clean = make_user(full_name="Clean Scholar")
    linked = make_user(full_name="Linked Scholar")
    link_history(linked, project, report=True)

    resp = client.post(
        "/api/admin/bulk-removal/eligibility",
        json={"user_ids": [clean.id, linked.id]},
        headers=auth_headers(admin),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["eligible_count"] == 1
    assert body["ineligible_count"] == 1
    users = {u["user_id"]: u for u in body["users"]}
    assert users[clean.id]["can_delete"] is True
    assert users[linked.id]["dependencies"] == ["enrollments", "reports"]


def test_eligibility_requires_manager(client, make_user):
    scholar = make_user()
    resp = client.post(
        "/api/admin/bulk-removal/eligibility",
        json={"user_ids": [scholar.id]},
        headers=auth_headers(scholar),
    )
    assert resp.status_code == 403


def test_execute_rejects_wrong_confirmation(client, db, make_user):
    admin = make_user("admin")
    target = make_user()

    resp = client.post(
        "/api/admin/bulk-removal/execute",
        json={"user_ids": [target.id], "confirmation": "DELETE"},
        headers=auth_headers(admin),
    )

    assert resp.status_code == 400
    assert resp.json()["error"] == "confirmation_mismatch"
    db.expire_all()
    assert db.query(User).filter(User.id == target.id).first() is not None


def test_execute_deletes_and_deactivates(client, db, make_user, project, link_history):
    admin = make_user("admin")
    clean = make_user(full_name="Clean Scholar")
    linked = make_user(full_name="Linked Scholar")
    link_history(linked, project)

    resp = client.post(
        "/api/admin/bulk-removal/execute",
        json={
            "user_ids": [clean.id, linked.id],
            "deactivate_ineligible": True,
            "confirmation": "remover",
        },
        headers=auth_headers(admin),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["result"]["deleted"] == 1
    assert body["result"]["deactivated"] == 1
    assert body["result"]["deleted_names"] == ["Clean Scholar"]
    assert body["refresh"] is True
    assert [n["level"] for n in body["notices"]] == ["success"]

    db.expire_all()
    assert db.query(User).filter(User.id == clean.id).first() is None
    assert db.get(User, linked.id).is_active is False

    entries = {e.action: e for e in db.query(AuditLog).filter(AuditLog.entity_type == "user").all()}
    assert set(entries) == {"bulk_delete", "bulk_deactivate"}
    assert entries["bulk_delete"].actor_id == admin.id
    assert json.loads(entries["bulk_delete"].details_json) == {
        "total_selected": 2, "deleted_count": 1, "deleted_names": ["Clean Scholar"],
    }
    assert json.loads(entries["bulk_deactivate"].new_value_json) == {"status": "inactive"}


def test_execute_as_manager_surfaces_delete_denial(client, db, make_user):
    manager = make_user("manager")
    target = make_user()

    resp = client.post(
        "/api/admin/bulk-removal/execute",
        json={"user_ids": [target.id], "confirmation": "REMOVER"},
        headers=auth_headers(manager),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["result"]["failed"] == 1
    assert body["refresh"] is True
    error = body["notices"][0]
    assert error["level"] == "error"
    assert error["title"] == "Error deleting users"
    assert error["reference_code"].startswith("ERR-")


def test_execute_keeps_ineligible_without_opt_in(client, make_user, project, link_history):
    admin = make_user("admin")
    linked = make_user()
    link_history(linked, project)

    resp = client.post(
        "/api/admin/bulk-removal/execute",
        json={"user_ids": [linked.id], "confirmation": "REMOVER"},
        headers=auth_headers(admin),
    )

    assert resp.status_code == 200
    body = resp.json()
    result = body["result"]
    assert (result["deleted"], result["deactivated"], result["ignored"], result["failed"]) == (0, 0, 1, 0)
    assert result["ignored_names"] == [linked.full_name]
    assert body["notices"] == []
    assert body["refresh"] is True
