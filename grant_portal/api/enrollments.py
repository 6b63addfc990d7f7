"""Enrollments API router: scholar assignment and status changes."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from grant_portal.db.session import get_db
from grant_portal.schemas.schemas import (
    AssignScholarRequest, EnrollmentOut, EnrollmentStatusUpdate,
)
from grant_portal.services.enrollment_service import enrollment_service
from grant_portal.core.security import (
    ActorContext, get_current_actor, require_manager,
)
from grant_portal.core.exceptions import AuthorizationError

router = APIRouter(prefix="/enrollments", tags=["enrollments"])


@router.post("/assign", status_code=201)
async def assign_scholar(
    body: AssignScholarRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_current_actor),
):
    """Enroll a scholar in a sub-project and generate the installments."""
    return enrollment_service.assign_scholar(
        db, actor, body.scholar_id, body.project_id, body.start_date, body.end_date,
    )


@router.get("/user/{user_id}")
async def list_user_enrollments(
    user_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_current_actor),
):
    """Scholars see their own enrollments; managers see anyone's."""
    if user_id != actor.user_id and not actor.is_manager:
        raise AuthorizationError("You can only view your own enrollments")
    items = enrollment_service.list_for_user(db, user_id)
    return {"enrollments": [EnrollmentOut.model_validate(e) for e in items]}


@router.put("/{enrollment_id}/status", response_model=EnrollmentOut)
async def update_enrollment_status(
    enrollment_id: str,
    body: EnrollmentStatusUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_manager),
):
    enrollment = enrollment_service.update_status(
        db, actor, enrollment_id, body.status, body.observations,
    )
    return EnrollmentOut.model_validate(enrollment)
