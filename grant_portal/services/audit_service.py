"""Audit service: append-only audit trail for administrative actions."""

import json
from typing import Optional, Any
from sqlalchemy.orm import Session
from fastapi import Request

from grant_portal.core.middleware import client_ip
from grant_portal.core.security import ActorContext
from grant_portal.models.audit_log import AuditLog


def _dump(value: Optional[Any]) -> Optional[str]:
    return json.dumps(value, default=str) if value is not None else None


class AuditService:
    """Records immutable audit log entries for portal events."""

    @staticmethod
    def log(
        db: Session,
        actor_id: Optional[str],
        actor_email: Optional[str],
        action: str,
        entity_type: str,
        entity_id: Optional[str] = None,
        details: Optional[Any] = None,
        previous_value: Optional[Any] = None,
        new_value: Optional[Any] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        """Write a single audit log record.

        Args:
            action: e.g. "bulk_delete", "assign_scholar_to_project", "approve_report"
            entity_type: user, enrollment, payment, report, project, thematic_project, invite_code

        This method commits immediately to ensure audit is never lost.
        """
        entry = AuditLog(
            actor_id=actor_id,
            actor_email=actor_email,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id else None,
            details_json=_dump(details if details is not None else {}),
            previous_value_json=_dump(previous_value),
            new_value_json=_dump(new_value),
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        )
        db.add(entry)
        db.commit()
        return entry

    @staticmethod
    def log_action(
        db: Session,
        actor: ActorContext,
        action: str,
        entity_type: str,
        entity_id: Optional[str] = None,
        details: Optional[Any] = None,
        previous_value: Optional[Any] = None,
        new_value: Optional[Any] = None,
    ) -> AuditLog:
        """Write an audit record attributed to an ActorContext."""
        return AuditService.log(
            db=db,
            actor_id=actor.user_id,
            actor_email=actor.email,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
            previous_value=previous_value,
            new_value=new_value,
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
        )

    @staticmethod
    def log_from_request(
        db: Session,
        request: Request,
        actor_id: Optional[str],
        actor_email: Optional[str],
        action: str,
        entity_type: str,
        entity_id: Optional[str] = None,
        details: Optional[Any] = None,
        previous_value: Optional[Any] = None,
        new_value: Optional[Any] = None,
    ) -> AuditLog:
        """Write audit log extracting IP and user-agent from the request."""
        ip = client_ip(request)
        ua = request.headers.get("user-agent", "")[:500]
        return AuditService.log(
            db=db,
            actor_id=actor_id,
            actor_email=actor_email,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
            previous_value=previous_value,
            new_value=new_value,
            ip_address=ip,
            user_agent=ua,
        )

    @staticmethod
    def query_logs(
        db: Session,
        actor_id: Optional[str] = None,
        action: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ):
        """Query audit logs with filters and pagination."""
        query = db.query(AuditLog)

        if actor_id:
            query = query.filter(AuditLog.actor_id == actor_id)
        if action:
            query = query.filter(AuditLog.action.ilike(f"%{action}%"))
        if entity_type:
            query = query.filter(AuditLog.entity_type == entity_type)
        if entity_id:
            query = query.filter(AuditLog.entity_id == entity_id)

        total = query.count()
        logs = (
            query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )

        return {
            "logs": logs,
            "total": total,
            "page": page,
            "page_size": page_size,
        }


audit_service = AuditService()
