"""Auth API router: login, invite signup, register, refresh, logout, me."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from grant_portal.db.session import get_db
from grant_portal.schemas.schemas import (
    LoginRequest, RegisterRequest, RefreshRequest, SignupRequest,
    TokenResponse, UserOut, MessageResponse,
)
from grant_portal.services.auth_service import auth_service
from grant_portal.services.audit_service import audit_service
from grant_portal.core.config import settings
from grant_portal.core.rate_limiter import limiter
from grant_portal.core.security import ActorContext, get_current_user_id, require_admin

router = APIRouter(prefix="/auth", tags=["auth"])


def _user_out(user) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.role.name if user.role else "scholar",
        is_active=user.is_active,
        onboarding_status=user.onboarding_status,
        thematic_project_id=user.thematic_project_id,
        avatar_url=user.avatar_url,
        created_at=user.created_at,
    )


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.RATE_LIMIT_LOGIN)
async def login(body: LoginRequest, request: Request, db: Session = Depends(get_db)):
    """Authenticate and return JWT tokens."""
    result = auth_service.authenticate(db, body.email, body.password)
    audit_service.log_from_request(
        db, request,
        actor_id=result["user"]["id"],
        actor_email=result["user"]["email"],
        action="user_login",
        entity_type="user",
        entity_id=result["user"]["id"],
    )
    return result


@router.post("/signup", response_model=UserOut, status_code=201)
@limiter.limit(settings.RATE_LIMIT_SIGNUP)
async def signup(body: SignupRequest, request: Request, db: Session = Depends(get_db)):
    """Scholar self-registration gated by an invite code."""
    user = auth_service.signup_with_invite(
        db, body.email, body.password, body.full_name, body.cpf, body.invite_code,
    )
    audit_service.log_from_request(
        db, request,
        actor_id=user.id,
        actor_email=user.email,
        action="signup_with_invite",
        entity_type="user",
        entity_id=user.id,
        details={"invite_code": user.invite_code_used, "thematic_project_id": user.thematic_project_id},
    )
    return _user_out(user)


@router.post("/register", response_model=UserOut, status_code=201)
async def register(
    body: RegisterRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_admin),
):
    """Create a staff or scholar account directly (admin only)."""
    user = auth_service.create_user(
        db, body.email, body.password, body.full_name, body.role_name, cpf=body.cpf,
    )
    audit_service.log_action(
        db, actor,
        action="create_user",
        entity_type="user",
        entity_id=user.id,
        details={"email": user.email, "role": body.role_name},
    )
    return _user_out(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest, db: Session = Depends(get_db)):
    """Refresh access token."""
    return auth_service.refresh_access_token(db, body.refresh_token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Revoke all refresh tokens."""
    auth_service.logout(db, user_id)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserOut)
async def get_me(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Get current user profile."""
    return _user_out(auth_service.get_user(db, user_id))
