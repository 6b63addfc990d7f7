"""Issues the delete and deactivate calls for a classified selection."""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from grant_portal.services.bulk_removal.eligibility import EligibilityReport
from grant_portal.services.bulk_removal.gateway import RemoteResult, UserAdminGateway

logger = logging.getLogger("grant_portal.bulk_removal")


@dataclass(frozen=True)
class DispatchOutcome:
    """Result of each call; ``None`` means the call was not made."""

    delete: Optional[RemoteResult] = None
    deactivate: Optional[RemoteResult] = None


class ActionDispatcher:
    """At most one delete call and one deactivate call per confirmation.

    The calls run one after the other and are independent: an error in the
    first does not prevent the second. Nothing is retried.
    """

    def __init__(self, gateway: UserAdminGateway):
        self.gateway = gateway

    def delete(self, user_ids: Sequence[str]) -> RemoteResult:
        logger.info("Dispatching delete for %d user(s)", len(user_ids))
        return self.gateway.manage_users("delete", user_ids)

    def deactivate(self, user_ids: Sequence[str]) -> RemoteResult:
        logger.info("Dispatching deactivate for %d user(s)", len(user_ids))
        return self.gateway.manage_users("deactivate", user_ids)

    def dispatch(self, report: EligibilityReport, deactivate_ineligible: bool) -> DispatchOutcome:
        eligible = [u.user_id for u in report.eligible_for_deletion]
        ineligible = [u.user_id for u in report.ineligible_for_deletion]

        delete_result = self.delete(eligible) if eligible else None
        deactivate_result = (
            self.deactivate(ineligible) if deactivate_ineligible and ineligible else None
        )
        return DispatchOutcome(delete=delete_result, deactivate=deactivate_result)
