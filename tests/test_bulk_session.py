"""End-to-end behaviour of one bulk removal run, with in-memory adapters."""
import re

import pytest

from grant_portal.core.exceptions import EligibilityCheckError
from grant_portal.core.security import ActorContext
from grant_portal.services.bulk_removal import BulkRemovalSession, classify
from grant_portal.services.bulk_removal.gateway import (
    ManageUsersResults, RemoteError, RemoteFailure, RemoteResult,
)

REFERENCE_RE = re.compile(r"ERR-[A-Z0-9]+-[A-Z0-9]{4}")

ACTOR = ActorContext(user_id="admin-1", email="admin@x.org", role="admin")
NAMES = {"u1": ("Ana", "ana@x.org"), "u2": ("Bruno", "b@x.org"), "u3": ("Carla", "c@x.org")}


class FakeChecker:
    def __init__(self, enrolled=(), fail=False):
        self.enrolled = set(enrolled)
        self.fail = fail
        self.calls = 0

    def check(self, user_ids):
        self.calls += 1
        if self.fail:
            raise EligibilityCheckError("Failed to verify user eligibility")
        return classify(list(user_ids), NAMES, self.enrolled, set(), set())


class FakeGateway:
    """Succeeds for every user unless a scripted reply is set for the action."""

    def __init__(self, replies=None):
        self.replies = replies or {}
        self.calls = []

    def manage_users(self, action, user_ids):
        self.calls.append((action, list(user_ids)))
        reply = self.replies.get(action)
        if isinstance(reply, Exception):
            raise reply
        if reply is not None:
            return reply
        return RemoteResult(results=ManageUsersResults(success=tuple(user_ids)))


class FakeSink:
    def __init__(self, fail=False):
        self.fail = fail
        self.entries = []

    def record(self, action, entity_type, details, previous_value, new_value):
        if self.fail:
            raise RuntimeError("audit table unavailable")
        self.entries.append({
            "action": action, "entity_type": entity_type, "details": details,
            "previous_value": previous_value, "new_value": new_value,
        })


def make_session(checker=None, gateway=None, sink=None):
    return BulkRemovalSession(
        ACTOR,
        checker=checker or FakeChecker(),
        gateway=gateway or FakeGateway(),
        audit_sink=sink or FakeSink(),
        confirmation_word="REMOVER",
        error_duration_ms=10000,
    )


def test_scenario_a_enrolled_user_without_opt_in_is_only_ignored():
    gateway, sink = FakeGateway(), FakeSink()
    session = make_session(FakeChecker(enrolled={"u1"}), gateway, sink)
    session.open(["u1"])
    session.set_confirmation_text("REMOVER")

    result = session.confirm()

    assert gateway.calls == []
    assert (result.deleted, result.deactivated, result.ignored, result.failed) == (0, 0, 1, 0)
    assert result.ignored_names == ["Ana"]
    assert sink.entries == []
    assert session.notices == []
    assert session.close() is True


def test_deletes_eligible_and_ignores_the_rest():
    gateway, sink = FakeGateway(), FakeSink()
    session = make_session(FakeChecker(enrolled={"u3"}), gateway, sink)
    session.open(["u1", "u2", "u3"])
    session.set_confirmation_text("REMOVER")

    result = session.confirm()

    assert gateway.calls == [("delete", ["u1", "u2"])]
    assert (result.deleted, result.deactivated, result.ignored, result.failed) == (2, 0, 1, 0)
    assert result.ignored_names == ["Carla"]
    assert [e["action"] for e in sink.entries] == ["bulk_delete"]
    entry = sink.entries[0]
    assert entry["details"] == {
        "total_selected": 3, "deleted_count": 2, "deleted_names": ["Ana", "Bruno"],
    }
    assert entry["previous_value"] == {"user_ids": ["u1", "u2"]}
    assert entry["new_value"] is None


def test_scenario_b_deactivates_ineligible_when_opted_in():
    gateway, sink = FakeGateway(), FakeSink()
    session = make_session(FakeChecker(enrolled={"u2"}), gateway, sink)
    session.open(["u1", "u2"])
    session.set_deactivate_ineligible(True)
    session.set_confirmation_text("remover")

    result = session.confirm()

    assert gateway.calls == [("delete", ["u1"]), ("deactivate", ["u2"])]
    assert (result.deleted, result.deactivated, result.ignored) == (1, 1, 0)
    assert [e["action"] for e in sink.entries] == ["bulk_delete", "bulk_deactivate"]
    deactivate = sink.entries[1]
    assert deactivate["previous_value"] == {"status": "active", "user_ids": ["u2"]}
    assert deactivate["new_value"] == {"status": "inactive"}
    assert session.close() is True


def test_scenario_c_constraint_failure_is_surfaced():
    failure = RemoteResult(results=ManageUsersResults(
        success=(), failed=(RemoteFailure(id="u1", error="still referenced", code="has_dependencies"),),
    ))
    sink = FakeSink()
    session = make_session(gateway=FakeGateway({"delete": failure}), sink=sink)
    session.open(["u1"])
    session.set_confirmation_text("REMOVER")

    result = session.confirm()

    assert result.deleted == 0
    assert result.failed == 1
    assert result.total == 1
    errors = [n for n in session.notices if n.level == "error"]
    assert len(errors) == 1
    assert "still referenced" in errors[0].description
    assert "0 processed, 1 failed" in errors[0].description
    assert REFERENCE_RE.fullmatch(errors[0].reference_code)
    assert errors[0].duration_ms == 10000
    assert sink.entries == []


def test_scenario_d_lowercase_word_opens_the_gate():
    session = make_session()
    session.open(["u1"])
    assert not session.can_confirm
    session.set_confirmation_text("remover")
    assert session.can_confirm


def test_mismatched_word_blocks_dispatch():
    gateway = FakeGateway()
    session = make_session(gateway=gateway)
    session.open(["u1"])
    session.set_confirmation_text("REMOVE")
    assert not session.can_confirm
    assert session.confirm() is None
    assert gateway.calls == []


def test_nothing_to_do_without_opt_in():
    session = make_session(FakeChecker(enrolled={"u1"}))
    session.open(["u1"])
    session.set_confirmation_text("REMOVER")
    assert not session.has_action
    assert not session.can_confirm
    session.set_deactivate_ineligible(True)
    assert session.can_confirm


def test_eligibility_failure_posts_generic_notice():
    session = make_session(FakeChecker(fail=True))
    assert session.open(["u1"]) is None
    assert session.report is None
    assert not session.loading
    assert [n.description for n in session.notices] == ["Failed to verify user eligibility"]
    session.set_confirmation_text("REMOVER")
    assert not session.can_confirm


def test_empty_selection_stays_idle():
    checker = FakeChecker()
    session = make_session(checker)
    assert session.open([]) is None
    assert checker.calls == 0
    assert session.notices == []


def test_call_error_uses_backend_message_and_does_not_block_other_action():
    denied = RemoteResult(error=RemoteError(
        code="forbidden", message="Only admins can permanently delete users", status=403,
    ))
    gateway = FakeGateway({"delete": denied})
    session = make_session(FakeChecker(enrolled={"u2"}), gateway)
    session.open(["u1", "u2"])
    session.set_deactivate_ineligible(True)
    session.set_confirmation_text("REMOVER")

    result = session.confirm()

    assert [c[0] for c in gateway.calls] == ["delete", "deactivate"]
    assert (result.deleted, result.deactivated, result.failed) == (0, 1, 1)
    error = next(n for n in session.notices if n.level == "error")
    assert error.title == "Error deleting users"
    assert error.description.startswith("Only admins can permanently delete users")
    assert f"Code: {error.reference_code}" in error.description


def test_transport_error_falls_back_to_communication_failure():
    broken = RemoteResult(error=RemoteError(code="transport_error"))
    session = make_session(gateway=FakeGateway({"delete": broken}))
    session.open(["u1"])
    session.set_confirmation_text("REMOVER")
    session.confirm()
    assert session.notices[0].description.startswith("Communication failure")


def test_whole_call_dependency_error_lists_reasons():
    conflict = RemoteResult(error=RemoteError(
        code="has_dependencies",
        message="User(s) have linked records. Deactivate instead of deleting.",
        details={"failed": [{"id": "u1", "error": "User has enrollments linked.", "code": "has_dependencies"}]},
        status=409,
    ))
    session = make_session(gateway=FakeGateway({"delete": conflict}))
    session.open(["u1"])
    session.set_confirmation_text("REMOVER")
    result = session.confirm()
    assert result.failed == 1
    assert "User has enrollments linked." in session.notices[0].description


def test_unexpected_exception_becomes_generic_notice():
    session = make_session(gateway=FakeGateway({"delete": RuntimeError("boom")}))
    session.open(["u1"])
    session.set_confirmation_text("REMOVER")

    assert session.confirm() is None
    assert not session.processing
    notice = session.notices[-1]
    assert notice.title == "Unexpected error"
    assert REFERENCE_RE.fullmatch(notice.reference_code)
    assert session.close() is False


def test_audit_failure_does_not_change_outcome():
    session = make_session(sink=FakeSink(fail=True))
    session.open(["u1", "u2"])
    session.set_confirmation_text("REMOVER")
    result = session.confirm()
    assert result.deleted == 2
    assert all(n.level != "error" for n in session.notices)


def test_second_confirm_while_processing_is_ignored():
    gateway = FakeGateway()
    session = make_session(gateway=gateway)
    session.open(["u1"])
    session.set_confirmation_text("REMOVER")
    session.processing = True
    assert session.confirm() is None
    assert gateway.calls == []


def test_completed_run_cannot_be_confirmed_again():
    gateway = FakeGateway()
    session = make_session(gateway=gateway)
    session.open(["u1"])
    session.set_confirmation_text("REMOVER")

    first = session.confirm()

    assert session.confirm() is None
    assert gateway.calls == [("delete", ["u1"])]
    assert session.result is first
    assert first.deleted == 1
    assert all(n.level != "error" for n in session.notices)


def test_open_dedupes_selection_keeping_row_order():
    checker = FakeChecker()
    session = make_session(checker)
    session.open(["u2", "u1", "u2"])
    assert session.selected == ["u2", "u1"]
    assert [u.user_id for u in session.report.users] == ["u2", "u1"]


@pytest.mark.parametrize("opt_in", [True, False])
def test_every_selected_user_lands_in_one_bucket(opt_in):
    session = make_session(FakeChecker(enrolled={"u2", "u3"}))
    session.open(["u1", "u2", "u3"])
    session.set_deactivate_ineligible(opt_in)
    session.set_confirmation_text("REMOVER")
    result = session.confirm()
    assert result.total == 3
    assert result.deleted == 1
    assert (result.deactivated, result.ignored) == ((2, 0) if opt_in else (0, 2))


def test_reset_clears_state():
    session = make_session()
    session.open(["u1"])
    session.set_deactivate_ineligible(True)
    session.set_confirmation_text("REMOVER")
    session.reset()
    assert session.report is None
    assert session.selected == []
    assert not session.deactivate_ineligible
    assert session.gate.text == ""
