"""Invite code service: generation, validation and redemption of signup codes."""

import secrets
from datetime import date, datetime, timezone
from typing import Optional, Dict, Any

from sqlalchemy.orm import Session

from grant_portal.core.config import settings
from grant_portal.core.exceptions import ResourceNotFoundError, ValidationError
from grant_portal.core.security import ActorContext
from grant_portal.models.invite_code import InviteCode, InviteCodeUse
from grant_portal.models.organization import ThematicProject
from grant_portal.models.user import User
from grant_portal.services.audit_service import audit_service

# No 0/O or 1/I/L so codes survive being read aloud
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
MAX_GENERATION_ATTEMPTS = 10


class InviteCodeService:
    """Manages invite codes that gate scholar self-registration."""

    @staticmethod
    def generate_code() -> str:
        suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(settings.INVITE_CODE_LENGTH))
        return f"{settings.INVITE_CODE_PREFIX}{suffix}"

    @staticmethod
    def create(
        db: Session,
        actor: ActorContext,
        thematic_project_id: str,
        max_uses: Optional[int] = None,
        expires_at: Optional[date] = None,
    ) -> InviteCode:
        """Create a unique invite code for a thematic project."""
        project = db.query(ThematicProject).filter(ThematicProject.id == thematic_project_id).first()
        if not project:
            raise ResourceNotFoundError(f"Thematic project {thematic_project_id} not found")
        if max_uses is not None and max_uses < 1:
            raise ValidationError("max_uses must be at least 1", code="invalid_max_uses")

        for _ in range(MAX_GENERATION_ATTEMPTS):
            code = InviteCodeService.generate_code()
            if not db.query(InviteCode.id).filter(InviteCode.code == code).first():
                break
        else:
            raise ValidationError("Could not generate a unique invite code", code="code_generation_failed")

        invite = InviteCode(
            code=code,
            thematic_project_id=project.id,
            organization_id=project.organization_id,
            created_by=actor.user_id,
            max_uses=max_uses,
            expires_at=expires_at,
            status="active",
        )
        db.add(invite)
        db.commit()
        db.refresh(invite)

        audit_service.log_action(
            db, actor,
            action="create_invite_code",
            entity_type="invite_code",
            entity_id=invite.id,
            details={
                "code": code,
                "thematic_project_id": project.id,
                "max_uses": max_uses,
                "expires_at": expires_at,
            },
        )
        return invite

    @staticmethod
    def list_codes(
        db: Session,
        thematic_project_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> list[InviteCode]:
        query = db.query(InviteCode)
        if thematic_project_id:
            query = query.filter(InviteCode.thematic_project_id == thematic_project_id)
        if status:
            query = query.filter(InviteCode.status == status)
        return query.order_by(InviteCode.created_at.desc()).all()

    @staticmethod
    def get(db: Session, invite_id: str) -> InviteCode:
        invite = db.query(InviteCode).filter(InviteCode.id == invite_id).first()
        if not invite:
            raise ResourceNotFoundError(f"Invite code {invite_id} not found")
        return invite

    @staticmethod
    def update(db: Session, actor: ActorContext, invite_id: str, **changes: Any) -> InviteCode:
        """Update status, max_uses or expires_at of an invite code."""
        invite = InviteCodeService.get(db, invite_id)
        previous = {
            "status": invite.status,
            "max_uses": invite.max_uses,
            "expires_at": invite.expires_at,
        }
        if "status" in changes and changes["status"] is not None:
            if changes["status"] not in ("active", "inactive"):
                raise ValidationError("status must be 'active' or 'inactive'", code="invalid_status")
            invite.status = changes["status"]
        if "max_uses" in changes:
            max_uses = changes["max_uses"]
            if max_uses is not None and max_uses < invite.used_count:
                raise ValidationError(
                    f"max_uses cannot be lower than current uses ({invite.used_count})",
                    code="invalid_max_uses",
                )
            invite.max_uses = max_uses
        if "expires_at" in changes:
            invite.expires_at = changes["expires_at"]
        db.commit()
        db.refresh(invite)

        audit_service.log_action(
            db, actor,
            action="update_invite_code",
            entity_type="invite_code",
            entity_id=invite.id,
            details={"code": invite.code},
            previous_value=previous,
            new_value={
                "status": invite.status,
                "max_uses": invite.max_uses,
                "expires_at": invite.expires_at,
            },
        )
        return invite

    @staticmethod
    def validate(db: Session, code: str, today: Optional[date] = None) -> InviteCode:
        """Return the invite code if it can still be redeemed.

        Raises:
            ValidationError: unknown, inactive, expired or exhausted code.
        """
        normalized = (code or "").strip().upper()
        invite = db.query(InviteCode).filter(InviteCode.code == normalized).first()
        if not invite:
            raise ValidationError("Invalid invite code", code="invalid_invite_code")
        if invite.status != "active":
            raise ValidationError("Invite code is not active", code="invite_code_inactive")
        today = today or date.today()
        if invite.expires_at is not None and invite.expires_at < today:
            raise ValidationError("Invite code has expired", code="invite_code_expired")
        if invite.max_uses is not None and invite.used_count >= invite.max_uses:
            raise ValidationError("Invite code has no uses left", code="invite_code_exhausted")
        return invite

    @staticmethod
    def redeem(db: Session, invite: InviteCode, user: User) -> Dict[str, Any]:
        """Record a redemption and bind the user to the code's project.

        Does not commit; the caller commits together with the new user.
        """
        now = datetime.now(timezone.utc)
        invite.used_count += 1
        if invite.max_uses is not None and invite.used_count >= invite.max_uses:
            invite.status = "exhausted"
        db.add(InviteCodeUse(
            invite_code_id=invite.id,
            used_by=user.id,
            used_by_email=user.email,
            used_at=now,
        ))
        user.invite_code_used = invite.code
        user.invite_used_at = now
        user.thematic_project_id = invite.thematic_project_id
        user.organization_id = invite.organization_id
        return {"code": invite.code, "used_count": invite.used_count, "status": invite.status}


invite_code_service = InviteCodeService()
