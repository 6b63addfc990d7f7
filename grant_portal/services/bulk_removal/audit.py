"""Audit trail for bulk removal; writes never affect the workflow outcome."""

import logging
from typing import Any, Optional, Protocol

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from grant_portal.core.security import ActorContext
from grant_portal.services.audit_service import audit_service
from grant_portal.services.bulk_removal.aggregator import ActionResult
from grant_portal.services.bulk_removal.eligibility import EligibilityReport

logger = logging.getLogger("grant_portal.bulk_removal")


class AuditSink(Protocol):
    def record(
        self,
        action: str,
        entity_type: str,
        details: Any,
        previous_value: Optional[Any],
        new_value: Optional[Any],
    ) -> None:
        ...


class LocalAuditSink:
    def __init__(self, db: Session, actor: ActorContext):
        self.db = db
        self.actor = actor

    def record(self, action, entity_type, details, previous_value, new_value) -> None:
        try:
            audit_service.log_action(
                self.db, self.actor,
                action=action,
                entity_type=entity_type,
                details=details,
                previous_value=previous_value,
                new_value=new_value,
            )
        except SQLAlchemyError:
            self.db.rollback()
            raise


class HttpAuditSink:
    """Posts entries to ``/audit/entries`` on a running portal."""

    def __init__(self, client: httpx.Client):
        self.client = client

    def record(self, action, entity_type, details, previous_value, new_value) -> None:
        response = self.client.post("/audit/entries", json={
            "action": action,
            "entity_type": entity_type,
            "details": details,
            "previous_value": previous_value,
            "new_value": new_value,
        })
        response.raise_for_status()


class AuditEmitter:
    """One entry per bucket that changed state; ignored users change nothing."""

    def __init__(self, sink: AuditSink):
        self.sink = sink

    def _record(self, action: str, **kwargs: Any) -> bool:
        try:
            self.sink.record(action=action, entity_type="user", **kwargs)
        except Exception as e:
            # mutation already happened; a lost audit entry is only logged
            logger.warning("Audit entry %s could not be written: %s", action, e)
            return False
        return True

    def emit(self, report: EligibilityReport, result: ActionResult, total_selected: int) -> int:
        """Write the bucket entries; returns how many were written."""
        written = 0
        if result.deleted > 0:
            written += self._record(
                "bulk_delete",
                details={
                    "total_selected": total_selected,
                    "deleted_count": result.deleted,
                    "deleted_names": result.deleted_names,
                },
                previous_value={"user_ids": [u.user_id for u in report.eligible_for_deletion]},
                new_value=None,
            )
        if result.deactivated > 0:
            written += self._record(
                "bulk_deactivate",
                details={
                    "total_selected": total_selected,
                    "deactivated_count": result.deactivated,
                    "deactivated_names": result.deactivated_names,
                },
                previous_value={
                    "status": "active",
                    "user_ids": [u.user_id for u in report.ineligible_for_deletion],
                },
                new_value={"status": "inactive"},
            )

        logger.info(
            "BULK_ACTION_AUDIT total_selected=%d deleted=%d deactivated=%d ignored=%d failed=%d",
            total_selected, result.deleted, result.deactivated, result.ignored, result.failed,
        )
        return written
