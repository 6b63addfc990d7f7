from grant_portal.services.bulk_removal.aggregator import ActionResult, aggregate
from grant_portal.services.bulk_removal.audit import AuditEmitter, HttpAuditSink, LocalAuditSink
from grant_portal.services.bulk_removal.dispatcher import ActionDispatcher, DispatchOutcome
from grant_portal.services.bulk_removal.eligibility import (
    EligibilityChecker,
    EligibilityReport,
    HttpEligibilityChecker,
    UserEligibility,
    classify,
)
from grant_portal.services.bulk_removal.gate import ConfirmationGate, GateState
from grant_portal.services.bulk_removal.gateway import (
    HttpUserAdminGateway,
    LocalUserAdminGateway,
    RemoteError,
    RemoteResult,
)
from grant_portal.services.bulk_removal.notices import Notice, NoticeBoard, generate_reference_code
from grant_portal.services.bulk_removal.session import BulkRemovalSession

__all__ = [
    "ActionDispatcher",
    "ActionResult",
    "AuditEmitter",
    "BulkRemovalSession",
    "ConfirmationGate",
    "DispatchOutcome",
    "EligibilityChecker",
    "EligibilityReport",
    "GateState",
    "HttpAuditSink",
    "HttpEligibilityChecker",
    "HttpUserAdminGateway",
    "LocalAuditSink",
    "LocalUserAdminGateway",
    "Notice",
    "NoticeBoard",
    "RemoteError",
    "RemoteResult",
    "UserEligibility",
    "aggregate",
    "classify",
    "generate_reference_code",
]
