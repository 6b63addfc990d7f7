"""HTTP gateway to manage-users, exercised through httpx's mock transport."""
import httpx

from grant_portal.services.bulk_removal import BulkRemovalSession, HttpUserAdminGateway, classify
from grant_portal.services.bulk_removal.gateway import RemoteResult


def make_client(handler):
    return httpx.Client(base_url="http://portal.test/api", transport=httpx.MockTransport(handler))


def test_success_partition_is_parsed():
    def handler(request):
        assert request.url.path == "/api/admin/manage-users"
        return httpx.Response(200, json={
            "message": "1 user(s) deleted",
            "results": {"success": ["u1"], "failed": [{"id": "u2", "error": "User not found", "code": "not_found"}]},
        })

    with make_client(handler) as client:
        outcome = HttpUserAdminGateway(client).manage_users("delete", ["u1", "u2"])

    assert outcome.ok
    assert outcome.succeeded == ("u1",)
    assert outcome.results.failed[0].code == "not_found"


def test_auth_denial_keeps_its_reason():
    def handler(request):
        return httpx.Response(403, json={"detail": "Role 'manager' insufficient. Requires level 80+."})

    with make_client(handler) as client:
        outcome = HttpUserAdminGateway(client).manage_users("delete", ["u1"])

    assert outcome.error.code == "forbidden"
    assert outcome.error.status == 403
    assert outcome.error.message == "Role 'manager' insufficient. Requires level 80+."


def test_missing_token_maps_to_unauthorized():
    outcome = RemoteResult.from_payload({"detail": "Not authenticated"}, status=401)
    assert outcome.error.code == "unauthorized"
    assert outcome.error.message == "Not authenticated"


def test_unreadable_body_is_invalid_response():
    def handler(request):
        return httpx.Response(502, text="bad gateway")

    with make_client(handler) as client:
        outcome = HttpUserAdminGateway(client).manage_users("deactivate", ["u1"])

    assert outcome.error.code == "invalid_response"
    assert outcome.error.message is None


def test_transport_failure_is_reported_not_raised():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with make_client(handler) as client:
        outcome = HttpUserAdminGateway(client).manage_users("delete", ["u1"])

    assert outcome.error.code == "transport_error"


class StaticChecker:
    def check(self, user_ids):
        return classify(list(user_ids), {"u1": ("Ana", "ana@x.org")}, set(), set(), set())


class NullSink:
    def record(self, action, entity_type, details, previous_value, new_value):
        pass


def test_denial_reason_reaches_the_operator_notice():
    def handler(request):
        return httpx.Response(403, json={"detail": "Role 'manager' insufficient. Requires level 80+."})

    with make_client(handler) as client:
        session = BulkRemovalSession(
            None,
            checker=StaticChecker(),
            gateway=HttpUserAdminGateway(client),
            audit_sink=NullSink(),
            confirmation_word="REMOVER",
        )
        session.open(["u1"])
        session.set_confirmation_text("REMOVER")
        result = session.confirm()

    assert result.failed == 1
    notice = session.notices[0]
    assert notice.title == "Error deleting users"
    assert notice.description.startswith("Role 'manager' insufficient.")
