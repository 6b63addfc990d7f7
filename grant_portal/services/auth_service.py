"""Auth service: JWT login, refresh, invite-code signup, user management."""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
import hashlib
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from grant_portal.models.user import User
from grant_portal.models.role import Role
from grant_portal.models.refresh_token import RefreshToken
from grant_portal.core.security import (
    hash_password, verify_password,
    create_access_token, create_refresh_token, decode_token,
)
from grant_portal.core.exceptions import (
    AuthenticationError, ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from grant_portal.core.validators import unformat_cpf, validate_cpf
from grant_portal.services.invite_code_service import invite_code_service

logger = logging.getLogger("grant_portal.auth")


def _token_data(user: User) -> Dict[str, Any]:
    role_name = user.role.name if user.role else "scholar"
    return {
        "sub": str(user.id),
        "email": user.email,
        "role": role_name,
        "role_level": user.role.level if user.role else 20,
    }


class AuthService:
    """Handles authentication and user management."""

    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> Dict[str, Any]:
        """Authenticate user and return JWT tokens.

        Raises:
            AuthenticationError: If credentials are invalid.
        """
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user or not verify_password(password, user.hashed_password):
            raise AuthenticationError("Invalid email or password", code="invalid_credentials")

        if not user.is_active:
            raise AuthenticationError("Account is deactivated", code="account_inactive")

        # Create tokens
        token_data = _token_data(user)
        access_token = create_access_token(token_data)
        refresh_token_str = create_refresh_token(token_data)

        # Store refresh token hash
        token_hash = hashlib.sha256(refresh_token_str.encode()).hexdigest()
        rt = RefreshToken(
            user_id=user.id,
            token_hash=token_hash,
            expires_at=datetime.fromtimestamp(decode_token(refresh_token_str)["exp"], tz=timezone.utc),
        )
        db.add(rt)

        # Update last login
        user.last_login_at = datetime.now(timezone.utc)
        db.commit()

        return {
            "access_token": access_token,
            "refresh_token": refresh_token_str,
            "token_type": "bearer",
            "user": {
                "id": user.id,
                "email": user.email,
                "full_name": user.full_name,
                "role": token_data["role"],
                "avatar_url": user.avatar_url,
            },
        }

    @staticmethod
    def refresh_access_token(db: Session, refresh_token: str) -> Dict[str, Any]:
        """Refresh access token using a valid refresh token."""
        payload = decode_token(refresh_token)
        if payload.get("type") != "refresh":
            raise AuthenticationError("Invalid refresh token", code="invalid_token")
        token_hash = hashlib.sha256(refresh_token.encode()).hexdigest()

        stored = db.query(RefreshToken).filter(
            RefreshToken.token_hash == token_hash,
            RefreshToken.revoked_at.is_(None),
        ).first()

        if not stored:
            raise AuthenticationError("Invalid refresh token", code="invalid_token")

        user = db.query(User).filter(User.id == str(payload["sub"])).first()
        if not user or not user.is_active:
            raise AuthenticationError("User not found or deactivated", code="account_inactive")

        return {
            "access_token": create_access_token(_token_data(user)),
            "token_type": "bearer",
        }

    @staticmethod
    def logout(db: Session, user_id: str) -> None:
        """Revoke all refresh tokens for a user."""
        db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id,
            RefreshToken.revoked_at.is_(None),
        ).update({"revoked_at": datetime.now(timezone.utc)})
        db.commit()

    @staticmethod
    def create_user(
        db: Session,
        email: str,
        password: str,
        full_name: str,
        role_name: str = "scholar",
        cpf: Optional[str] = None,
        commit: bool = True,
    ) -> User:
        """Create a new user."""
        email = email.strip().lower()
        existing = db.query(User).filter(User.email == email).first()
        if existing:
            raise ResourceConflictError(f"User with email {email} already exists", code="email_taken")

        clean_cpf = None
        if cpf:
            if not validate_cpf(cpf):
                raise ValidationError("Invalid CPF", code="invalid_cpf")
            clean_cpf = unformat_cpf(cpf)
            if db.query(User.id).filter(User.cpf == clean_cpf).first():
                raise ResourceConflictError("CPF already registered", code="cpf_taken")

        role = db.query(Role).filter(Role.name == role_name).first()
        if not role:
            raise ResourceNotFoundError(f"Role '{role_name}' not found")

        user = User(
            email=email,
            hashed_password=hash_password(password),
            full_name=full_name,
            cpf=clean_cpf,
            role_id=role.id,
            is_active=True,
        )
        db.add(user)
        if commit:
            db.commit()
            db.refresh(user)
        else:
            db.flush()
        return user

    @staticmethod
    def signup_with_invite(
        db: Session,
        email: str,
        password: str,
        full_name: str,
        cpf: str,
        invite_code: str,
    ) -> User:
        """Register a scholar gated by an invite code.

        The code is validated before the user is created; the user row and the
        redemption are committed together.
        """
        invite = invite_code_service.validate(db, invite_code)
        user = AuthService.create_user(
            db, email, password, full_name, "scholar", cpf=cpf, commit=False,
        )
        redemption = invite_code_service.redeem(db, invite, user)
        user.onboarding_status = "awaiting_assignment"
        db.commit()
        db.refresh(user)
        logger.info("Scholar %s signed up with invite %s", user.id, redemption["code"])
        return user

    @staticmethod
    def get_user(db: Session, user_id: str) -> User:
        """Get a user by id."""
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise ResourceNotFoundError(f"User {user_id} not found")
        return user

    @staticmethod
    def list_users(
        db: Session,
        page: int = 1,
        page_size: int = 20,
        search: Optional[str] = None,
        role_name: Optional[str] = None,
        is_active: Optional[bool] = None,
    ):
        """List users with filters and pagination."""
        query = db.query(User)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(User.full_name.ilike(pattern), User.email.ilike(pattern)))
        if role_name:
            query = query.join(Role, User.role_id == Role.id).filter(Role.name == role_name)
        if is_active is not None:
            query = query.filter(User.is_active == is_active)

        total = query.count()
        users = (
            query.order_by(User.created_at.desc(), User.email)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {"users": users, "total": total, "page": page}


auth_service = AuthService()
