"""One operator run of the bulk removal workflow.

The session owns the selection, the eligibility report, the confirmation
gate and the notices raised along the way. It is transport agnostic: the
API wires it to local adapters, ``grantctl`` to HTTP ones.
"""

import logging
from typing import Iterable, List, Optional, Protocol

from grant_portal.core.config import settings
from grant_portal.core.exceptions import EligibilityCheckError, PortalError
from grant_portal.core.security import ActorContext
from grant_portal.services.bulk_removal.aggregator import ActionResult, aggregate
from grant_portal.services.bulk_removal.audit import AuditEmitter, AuditSink
from grant_portal.services.bulk_removal.dispatcher import ActionDispatcher, DispatchOutcome
from grant_portal.services.bulk_removal.eligibility import EligibilityReport
from grant_portal.services.bulk_removal.gate import ConfirmationGate, GateState
from grant_portal.services.bulk_removal.gateway import RemoteResult, UserAdminGateway
from grant_portal.services.bulk_removal.notices import NoticeBoard, generate_reference_code
from grant_portal.services.bulk_removal.presentation import result_lines
from grant_portal.services.bulk_removal.selection import (
    clear_selection, normalize_ids, ordered, select_all,
)

logger = logging.getLogger("grant_portal.bulk_removal")

ACTION_VERBS = {"delete": "deleting", "deactivate": "deactivating"}


class EligibilitySource(Protocol):
    def check(self, user_ids: Iterable[str]) -> EligibilityReport:
        ...


class BulkRemovalSession:
    def __init__(
        self,
        actor: Optional[ActorContext],
        checker: EligibilitySource,
        gateway: UserAdminGateway,
        audit_sink: AuditSink,
        confirmation_word: str = settings.BULK_REMOVAL_CONFIRMATION_WORD,
        error_duration_ms: int = settings.ERROR_NOTICE_DURATION_MS,
    ):
        self.actor = actor
        self.checker = checker
        self.dispatcher = ActionDispatcher(gateway)
        self.emitter = AuditEmitter(audit_sink)
        self.gate = ConfirmationGate(confirmation_word)
        self.board = NoticeBoard(error_duration_ms)

        self.selected: List[str] = []
        self.report: Optional[EligibilityReport] = None
        self.deactivate_ineligible = False
        self.loading = False
        self.processing = False
        self.result: Optional[ActionResult] = None

    @property
    def notices(self):
        return self.board.notices

    def open(self, user_ids: Iterable[str]) -> Optional[EligibilityReport]:
        """Start a run for ``user_ids``; an empty selection leaves the session idle."""
        self.reset()
        rows = list(user_ids)
        ids = ordered(select_all(clear_selection(), rows), rows)
        if not ids:
            return None
        self.selected = ids
        return self.check_eligibility()

    def check_eligibility(self) -> Optional[EligibilityReport]:
        self.loading = True
        self.report = None
        try:
            self.report = self.checker.check(normalize_ids(self.selected))
        except (EligibilityCheckError, PortalError) as e:
            logger.error("Eligibility check failed for %d user(s): %s", len(self.selected), e)
            self.board.error("Error", "Failed to verify user eligibility")
            return None
        finally:
            self.loading = False
        self.gate.arm()
        return self.report

    def set_deactivate_ineligible(self, flag: bool) -> None:
        self.deactivate_ineligible = bool(flag)

    def set_confirmation_text(self, text: str) -> GateState:
        return self.gate.enter(text)

    @property
    def has_action(self) -> bool:
        if self.report is None:
            return False
        if self.report.eligible_for_deletion:
            return True
        return self.deactivate_ineligible and bool(self.report.ineligible_for_deletion)

    @property
    def can_confirm(self) -> bool:
        if self.report is None or self.loading:
            return False
        return self.gate.can_confirm(self.has_action, self.processing)

    @property
    def word_confirmed(self) -> bool:
        return (
            self.report is not None
            and not self.loading
            and self.gate.state == GateState.confirmed
        )

    def confirm(self) -> Optional[ActionResult]:
        """Run the chosen actions once; returns the tally or ``None``.

        With nothing to dispatch (every user ineligible, no opt-in) the tally
        records them all as ignored and no remote call is made.
        """
        if self.processing:
            logger.warning("Confirmation ignored, a bulk action is already running")
            return None
        if self.result is not None:
            logger.warning("Confirmation ignored, this run already completed")
            return None
        if not self.word_confirmed:
            return None

        self.processing = True
        try:
            if self.has_action:
                outcome = self.dispatcher.dispatch(self.report, self.deactivate_ineligible)
            else:
                outcome = DispatchOutcome()
            self._report_outcome("delete", outcome.delete)
            self._report_outcome("deactivate", outcome.deactivate)

            result = aggregate(self.report, outcome, self.deactivate_ineligible)
            self.emitter.emit(self.report, result, len(self.selected))
            self.result = result
            if result.deleted or result.deactivated:
                self.board.success("Action completed", "; ".join(result_lines(result)))
            return result
        except Exception:
            reference = generate_reference_code()
            logger.exception("BULK_ACTION_ERROR ref=%s actor=%s", reference, self._actor_id)
            self.board.error("Unexpected error", "An unexpected error occurred", reference)
            return None
        finally:
            self.processing = False

    def _report_outcome(self, action: str, outcome: Optional[RemoteResult]) -> None:
        if outcome is None:
            return
        verb = ACTION_VERBS[action]

        if outcome.error is not None:
            reference = generate_reference_code()
            description = outcome.error.message or "Communication failure"
            reasons = "; ".join(f.error for f in outcome.error.failures if f.error)
            if reasons:
                description = f"{description}: {reasons}"
            logger.error(
                "BULK_%s_ERROR ref=%s actor=%s code=%s status=%s",
                action.upper(), reference, self._actor_id, outcome.error.code, outcome.error.status,
            )
            self.board.error(f"Error {verb} users", description, reference)
            return

        failed = outcome.results.failed if outcome.results else ()
        if failed:
            reference = generate_reference_code()
            reasons = "; ".join(f.error for f in failed)
            logger.warning(
                "BULK_%s_PARTIAL ref=%s processed=%d failed=%d",
                action.upper(), reference, len(outcome.succeeded), len(failed),
            )
            self.board.error(
                f"Partial failure {verb} users",
                f"{len(outcome.succeeded)} processed, {len(failed)} failed: {reasons}",
                reference,
            )

    @property
    def _actor_id(self) -> Optional[str]:
        return self.actor.user_id if self.actor else None

    def close(self) -> bool:
        """End the run; ``True`` when the caller should refresh its user list."""
        needs_refresh = self.result is not None
        self.reset()
        return needs_refresh

    def reset(self) -> None:
        self.selected = []
        self.report = None
        self.deactivate_ineligible = False
        self.loading = False
        self.processing = False
        self.result = None
        self.gate.reset()
        self.board.clear()
