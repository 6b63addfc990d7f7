"""Deletion eligibility: a user may be hard-deleted only with no linked history."""

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence, Tuple

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from grant_portal.core.exceptions import EligibilityCheckError
from grant_portal.models.enrollment import Enrollment, Payment
from grant_portal.models.report import Report
from grant_portal.models.user import User
from grant_portal.services.bulk_removal.selection import normalize_ids


@dataclass(frozen=True)
class UserEligibility:
    user_id: str
    full_name: Optional[str]
    email: Optional[str]
    can_delete: bool
    has_enrollments: bool
    has_payments: bool
    has_reports: bool

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or "User"

    @property
    def dependencies(self) -> list[str]:
        deps = []
        if self.has_enrollments:
            deps.append("enrollments")
        if self.has_payments:
            deps.append("payments")
        if self.has_reports:
            deps.append("reports")
        return deps

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "full_name": self.full_name,
            "email": self.email,
            "display_name": self.display_name,
            "can_delete": self.can_delete,
            "has_enrollments": self.has_enrollments,
            "has_payments": self.has_payments,
            "has_reports": self.has_reports,
            "dependencies": self.dependencies,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "UserEligibility":
        return cls(
            user_id=data["user_id"],
            full_name=data.get("full_name"),
            email=data.get("email"),
            can_delete=bool(data["can_delete"]),
            has_enrollments=bool(data.get("has_enrollments")),
            has_payments=bool(data.get("has_payments")),
            has_reports=bool(data.get("has_reports")),
        )


@dataclass(frozen=True)
class EligibilityReport:
    users: Tuple[UserEligibility, ...] = field(default_factory=tuple)

    @property
    def eligible_for_deletion(self) -> list[UserEligibility]:
        return [u for u in self.users if u.can_delete]

    @property
    def ineligible_for_deletion(self) -> list[UserEligibility]:
        return [u for u in self.users if not u.can_delete]

    @property
    def user_ids(self) -> list[str]:
        return [u.user_id for u in self.users]

    def to_dict(self) -> dict:
        return {
            "users": [u.to_dict() for u in self.users],
            "eligible_count": len(self.eligible_for_deletion),
            "ineligible_count": len(self.ineligible_for_deletion),
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "EligibilityReport":
        return cls(users=tuple(UserEligibility.from_dict(u) for u in data.get("users", [])))


def classify(
    user_ids: Sequence[str],
    profiles: Mapping[str, Tuple[Optional[str], Optional[str]]],
    with_enrollments: set,
    with_payments: set,
    with_reports: set,
) -> EligibilityReport:
    """Build per-user eligibility in selection order.

    ``profiles`` maps user id to ``(full_name, email)``; ids missing from it
    are still classified, with no display data.
    """
    users = []
    for user_id in user_ids:
        full_name, email = profiles.get(user_id, (None, None))
        has_enrollments = user_id in with_enrollments
        has_payments = user_id in with_payments
        has_reports = user_id in with_reports
        users.append(UserEligibility(
            user_id=user_id,
            full_name=full_name,
            email=email,
            can_delete=not has_enrollments and not has_payments and not has_reports,
            has_enrollments=has_enrollments,
            has_payments=has_payments,
            has_reports=has_reports,
        ))
    return EligibilityReport(users=tuple(users))


class EligibilityChecker:
    """Runs the dependency queries against the database."""

    def __init__(self, db: Session):
        self.db = db

    def _users_with(self, model, user_ids: list[str]) -> set:
        rows = self.db.query(model.user_id).filter(model.user_id.in_(user_ids)).distinct().all()
        return {row[0] for row in rows}

    def check(self, user_ids: Iterable[str]) -> EligibilityReport:
        """Classify every selected user.

        Raises:
            ValidationError: empty selection.
            EligibilityCheckError: any query failed; no partial report is returned.
        """
        ids = normalize_ids(user_ids)
        try:
            profiles = {
                row.id: (row.full_name, row.email)
                for row in self.db.query(User.id, User.full_name, User.email)
                .filter(User.id.in_(ids))
                .all()
            }
            with_enrollments = self._users_with(Enrollment, ids)
            with_payments = self._users_with(Payment, ids)
            with_reports = self._users_with(Report, ids)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise EligibilityCheckError("Failed to verify user eligibility") from e
        return classify(ids, profiles, with_enrollments, with_payments, with_reports)


class HttpEligibilityChecker:
    """Asks a running portal to classify the selection."""

    def __init__(self, client: httpx.Client):
        self.client = client

    def check(self, user_ids: Iterable[str]) -> EligibilityReport:
        ids = normalize_ids(user_ids)
        try:
            response = self.client.post("/admin/bulk-removal/eligibility", json={"user_ids": ids})
            response.raise_for_status()
            return EligibilityReport.from_dict(response.json())
        except (httpx.HTTPError, ValueError, KeyError) as e:
            raise EligibilityCheckError("Failed to verify user eligibility") from e
