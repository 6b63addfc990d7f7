"""Calls to the privileged ``manage-users`` procedure behind one result contract.

Whatever the transport, a call yields a ``RemoteResult`` carrying either the
per-user ``results`` partition or a single ``RemoteError``; callers never
inspect exceptions or raw payloads.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol, Sequence, Tuple

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from grant_portal.core.exceptions import PortalError
from grant_portal.core.security import ActorContext
from grant_portal.services.user_management_service import user_management_service

logger = logging.getLogger("grant_portal.bulk_removal")

HTTP_DENIAL_CODES = {401: "unauthorized", 403: "forbidden"}


@dataclass(frozen=True)
class RemoteFailure:
    id: str
    error: str
    code: Optional[str] = None


@dataclass(frozen=True)
class ManageUsersResults:
    success: Tuple[str, ...] = field(default_factory=tuple)
    failed: Tuple[RemoteFailure, ...] = field(default_factory=tuple)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ManageUsersResults":
        return cls(
            success=tuple(payload.get("success") or ()),
            failed=tuple(
                RemoteFailure(id=f.get("id"), error=f.get("error", ""), code=f.get("code"))
                for f in payload.get("failed") or ()
            ),
        )


@dataclass(frozen=True)
class RemoteError:
    code: str
    message: Optional[str] = None
    details: Optional[dict] = None
    status: Optional[int] = None

    @property
    def failures(self) -> list[RemoteFailure]:
        """Per-user failures attached to a whole-call error, if any."""
        raw = (self.details or {}).get("failed") or []
        return [RemoteFailure(id=f.get("id"), error=f.get("error", ""), code=f.get("code")) for f in raw]


@dataclass(frozen=True)
class RemoteResult:
    results: Optional[ManageUsersResults] = None
    error: Optional[RemoteError] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def succeeded(self) -> Tuple[str, ...]:
        return self.results.success if self.results else ()

    @classmethod
    def from_payload(cls, payload: Any, status: Optional[int] = None) -> "RemoteResult":
        """Interpret a ``manage-users`` response body."""
        if isinstance(payload, Mapping) and isinstance(payload.get("results"), Mapping):
            return cls(
                results=ManageUsersResults.from_payload(payload["results"]),
                message=payload.get("message"),
            )
        if isinstance(payload, Mapping) and payload.get("error"):
            return cls(error=RemoteError(
                code=str(payload["error"]),
                message=payload.get("message"),
                details=payload.get("details"),
                status=status,
            ))
        if isinstance(payload, Mapping) and payload.get("detail"):
            # Denials raised by the auth dependencies
            detail = payload["detail"]
            return cls(error=RemoteError(
                code=HTTP_DENIAL_CODES.get(status, "http_error"),
                message=detail if isinstance(detail, str) else str(detail),
                status=status,
            ))
        return cls(error=RemoteError(code="invalid_response", message=None, status=status))


class UserAdminGateway(Protocol):
    def manage_users(self, action: str, user_ids: Sequence[str]) -> RemoteResult:
        ...


class LocalUserAdminGateway:
    """In-process gateway used by the API's own workflow endpoint."""

    def __init__(self, db: Session, actor: ActorContext):
        self.db = db
        self.actor = actor

    def manage_users(self, action: str, user_ids: Sequence[str]) -> RemoteResult:
        try:
            payload = user_management_service.manage(self.db, self.actor, action, list(user_ids))
        except PortalError as e:
            return RemoteResult(error=RemoteError(
                code=e.code, message=e.message, details=e.details, status=e.status_code,
            ))
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("manage-users %s failed: %s", action, e)
            return RemoteResult(error=RemoteError(code="server_error", message=None, status=500))
        return RemoteResult.from_payload(payload)


class HttpUserAdminGateway:
    """Gateway calling ``POST /admin/manage-users`` on a running portal."""

    def __init__(self, client: httpx.Client):
        self.client = client

    def manage_users(self, action: str, user_ids: Sequence[str]) -> RemoteResult:
        try:
            response = self.client.post(
                "/admin/manage-users",
                json={"action": action, "user_ids": list(user_ids)},
            )
        except httpx.HTTPError as e:
            logger.error("manage-users %s transport failure: %s", action, e)
            return RemoteResult(error=RemoteError(code="transport_error", message=None))
        try:
            payload = response.json()
        except ValueError:
            payload = None
        return RemoteResult.from_payload(payload, status=response.status_code)
