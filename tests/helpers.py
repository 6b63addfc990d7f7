"""Shared helpers for building callers in tests."""

from grant_portal.core.security import ActorContext, create_access_token


def actor_for(user) -> ActorContext:
    return ActorContext(user_id=user.id, email=user.email, role=user.role.name)


def auth_headers(user) -> dict:
    token = create_access_token({
        "sub": user.id,
        "email": user.email,
        "role": user.role.name,
        "role_level": user.role.level,
    })
    return {"Authorization": f"Bearer {token}"}
