"""Merges dispatch outcomes into the per-bucket tally shown to the operator."""

from dataclasses import dataclass, field, asdict
from typing import List, Optional

from grant_portal.services.bulk_removal.dispatcher import DispatchOutcome
from grant_portal.services.bulk_removal.eligibility import EligibilityReport, UserEligibility
from grant_portal.services.bulk_removal.gateway import RemoteResult


@dataclass
class ActionResult:
    deleted: int = 0
    deactivated: int = 0
    ignored: int = 0
    failed: int = 0
    deleted_names: List[str] = field(default_factory=list)
    deactivated_names: List[str] = field(default_factory=list)
    ignored_names: List[str] = field(default_factory=list)
    failed_names: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.deleted + self.deactivated + self.ignored + self.failed

    def to_dict(self) -> dict:
        return asdict(self)


def _split(users: List[UserEligibility], outcome: Optional[RemoteResult]):
    succeeded = set(outcome.succeeded) if outcome is not None else set()
    done = [u for u in users if u.user_id in succeeded]
    missed = [u for u in users if u.user_id not in succeeded]
    return done, missed


def aggregate(
    report: EligibilityReport,
    outcome: DispatchOutcome,
    deactivate_ineligible: bool,
) -> ActionResult:
    """Every selected user lands in exactly one bucket.

    Users sent to a call that did not report them as successful count as
    failed; ineligible users are ignored when deactivation was not opted in.
    """
    result = ActionResult()

    deleted, delete_missed = _split(report.eligible_for_deletion, outcome.delete)
    result.deleted = len(deleted)
    result.deleted_names = [u.display_name for u in deleted]

    ineligible = report.ineligible_for_deletion
    if deactivate_ineligible:
        deactivated, deactivate_missed = _split(ineligible, outcome.deactivate)
        result.deactivated = len(deactivated)
        result.deactivated_names = [u.display_name for u in deactivated]
    else:
        deactivate_missed = []
        result.ignored = len(ineligible)
        result.ignored_names = [u.display_name for u in ineligible]

    missed = delete_missed + deactivate_missed
    result.failed = len(missed)
    result.failed_names = [u.display_name for u in missed]
    return result
