"""Invite codes API router."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from grant_portal.db.session import get_db
from grant_portal.schemas.schemas import InviteCodeCreate, InviteCodeOut, InviteCodeUpdate
from grant_portal.services.invite_code_service import invite_code_service
from grant_portal.core.security import ActorContext, require_manager

router = APIRouter(prefix="/invite-codes", tags=["invite-codes"])


@router.post("/", response_model=InviteCodeOut, status_code=201)
async def create_invite_code(
    body: InviteCodeCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_manager),
):
    invite = invite_code_service.create(
        db, actor, body.thematic_project_id, body.max_uses, body.expires_at,
    )
    return InviteCodeOut.model_validate(invite)


@router.get("/")
async def list_invite_codes(
    thematic_project_id: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_manager),
):
    codes = invite_code_service.list_codes(db, thematic_project_id, status)
    return {"invite_codes": [InviteCodeOut.model_validate(c) for c in codes]}


@router.patch("/{invite_id}", response_model=InviteCodeOut)
async def update_invite_code(
    invite_id: str,
    body: InviteCodeUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_manager),
):
    """Change status, max uses or expiry; omitted fields are left alone."""
    invite = invite_code_service.update(db, actor, invite_id, **body.model_dump(exclude_unset=True))
    return InviteCodeOut.model_validate(invite)


@router.get("/validate/{code}")
async def validate_invite_code(code: str, db: Session = Depends(get_db)):
    """Public check used by the signup form before submitting."""
    invite = invite_code_service.validate(db, code)
    return {"valid": True, "thematic_project_id": invite.thematic_project_id}
