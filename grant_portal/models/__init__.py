"""Models package: import all models so metadata.create_all can discover them."""

from grant_portal.models.role import Role
from grant_portal.models.organization import (
    Organization, ThematicProject, Project, ProjectStatusEnum, GrantModalityEnum,
)
from grant_portal.models.user import User
from grant_portal.models.report import Report, ReportStatusEnum
from grant_portal.models.enrollment import (
    Enrollment, Payment, EnrollmentStatusEnum, PaymentStatusEnum,
)
from grant_portal.models.invite_code import InviteCode, InviteCodeUse
from grant_portal.models.audit_log import AuditLog
from grant_portal.models.refresh_token import RefreshToken

__all__ = [
    "Role", "User",
    "Organization", "ThematicProject", "Project", "ProjectStatusEnum", "GrantModalityEnum",
    "Enrollment", "Payment", "EnrollmentStatusEnum", "PaymentStatusEnum",
    "Report", "ReportStatusEnum",
    "InviteCode", "InviteCodeUse", "AuditLog", "RefreshToken",
]
