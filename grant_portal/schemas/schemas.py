"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import date, datetime
from decimal import Decimal

from grant_portal.models.enrollment import EnrollmentStatusEnum, PaymentStatusEnum
from grant_portal.models.organization import GrantModalityEnum, ProjectStatusEnum
from grant_portal.models.report import ReportStatusEnum


# ---- Auth ----
class LoginRequest(BaseModel):
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=4)

class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    user: Optional[Dict[str, Any]] = None

class RefreshRequest(BaseModel):
    refresh_token: str

class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=1)
    role_name: str = "scholar"
    cpf: Optional[str] = None

class SignupRequest(BaseModel):
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=1)
    cpf: str = Field(..., min_length=11)
    invite_code: str = Field(..., min_length=1)


# ---- User ----
class UserOut(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    role: Optional[str] = None
    is_active: bool = True
    onboarding_status: Optional[str] = None
    thematic_project_id: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class UserUpdateRequest(BaseModel):
    full_name: Optional[str] = None
    role_name: Optional[str] = None
    phone: Optional[str] = None
    institution: Optional[str] = None
    academic_level: Optional[str] = None


# ---- User management ----
class ManageUsersRequest(BaseModel):
    # Loosely typed: shape errors are reported with the procedure's own codes
    action: Any = None
    user_ids: Any = None


# ---- Bulk removal ----
class BulkEligibilityRequest(BaseModel):
    user_ids: List[str]

class BulkExecuteRequest(BaseModel):
    user_ids: List[str]
    deactivate_ineligible: bool = False
    confirmation: str = ""


# ---- Audit ----
class AuditEntryCreate(BaseModel):
    action: str = Field(..., min_length=1)
    entity_type: str = Field(..., min_length=1)
    entity_id: Optional[str] = None
    details: Optional[Any] = None
    previous_value: Optional[Any] = None
    new_value: Optional[Any] = None

class AuditLogOut(BaseModel):
    id: int
    actor_id: Optional[str] = None
    actor_email: Optional[str] = None
    action: str
    entity_type: str
    entity_id: Optional[str] = None
    details_json: Optional[str] = None
    previous_value_json: Optional[str] = None
    new_value_json: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Invite codes ----
class InviteCodeCreate(BaseModel):
    thematic_project_id: str
    max_uses: Optional[int] = Field(None, ge=1)
    expires_at: Optional[date] = None

class InviteCodeUpdate(BaseModel):
    status: Optional[str] = None
    max_uses: Optional[int] = Field(None, ge=1)
    expires_at: Optional[date] = None

class InviteCodeOut(BaseModel):
    id: str
    code: str
    thematic_project_id: str
    organization_id: Optional[str] = None
    max_uses: Optional[int] = None
    used_count: int = 0
    expires_at: Optional[date] = None
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Organizations / projects ----
class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None

class OrganizationUpdate(BaseModel):
    name: Optional[str] = None
    is_active: Optional[bool] = None
    email_notifications_enabled: Optional[bool] = None

class OrganizationOut(BaseModel):
    id: str
    name: str
    slug: str
    is_active: bool
    email_notifications_enabled: bool = True

    class Config:
        from_attributes = True

class ThematicProjectCreate(BaseModel):
    title: str = Field(..., min_length=1)
    sponsor_name: str = Field(..., min_length=1)
    organization_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    observations: Optional[str] = None

class ThematicProjectOut(BaseModel):
    id: str
    title: str
    sponsor_name: str
    status: str
    organization_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    observations: Optional[str] = None

    class Config:
        from_attributes = True

class ProjectCreate(BaseModel):
    code: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    advisor: str = Field(..., min_length=1)
    thematic_project_id: str
    modality: Optional[GrantModalityEnum] = None
    monthly_value: Decimal = Field(..., gt=0)
    start_date: date
    end_date: date
    observations: Optional[str] = None

class ProjectUpdate(BaseModel):
    title: Optional[str] = None
    advisor: Optional[str] = None
    monthly_value: Optional[Decimal] = Field(None, gt=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    observations: Optional[str] = None

class ProjectOut(BaseModel):
    id: str
    code: str
    title: str
    advisor: str
    thematic_project_id: str
    modality: Optional[GrantModalityEnum] = None
    monthly_value: Decimal
    start_date: date
    end_date: date
    status: ProjectStatusEnum
    observations: Optional[str] = None

    class Config:
        from_attributes = True

class ProjectDeleteRequest(BaseModel):
    confirm_code: str


# ---- Enrollments ----
class AssignScholarRequest(BaseModel):
    scholar_id: str
    project_id: str
    start_date: date
    end_date: date

class EnrollmentStatusUpdate(BaseModel):
    status: str
    observations: Optional[str] = None

class EnrollmentOut(BaseModel):
    id: str
    user_id: str
    project_id: str
    modality: GrantModalityEnum
    grant_value: Decimal
    start_date: date
    end_date: date
    total_installments: int
    status: EnrollmentStatusEnum
    observations: Optional[str] = None

    class Config:
        from_attributes = True


# ---- Reports ----
class ReportSubmit(BaseModel):
    reference_month: str = Field(..., min_length=7, max_length=7)
    file_name: str = Field(..., min_length=1)
    file_url: str = Field(..., min_length=1)
    observations: Optional[str] = None

class ReportReview(BaseModel):
    feedback: Optional[str] = None

class ReportOut(BaseModel):
    id: str
    user_id: str
    reference_month: str
    installment_number: int
    file_name: str
    file_url: str
    observations: Optional[str] = None
    status: ReportStatusEnum
    feedback: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    resubmission_deadline: Optional[datetime] = None
    submitted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Payments ----
class MarkPaidRequest(BaseModel):
    receipt_url: Optional[str] = None

class PaymentOut(BaseModel):
    id: str
    user_id: str
    enrollment_id: str
    installment_number: int
    reference_month: str
    amount: Decimal
    status: PaymentStatusEnum
    paid_at: Optional[datetime] = None
    receipt_url: Optional[str] = None
    report_id: Optional[str] = None

    class Config:
        from_attributes = True


# ---- Common ----
class MessageResponse(BaseModel):
    message: str
    success: bool = True
