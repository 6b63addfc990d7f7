"""Funding hierarchy API router: organizations, thematic projects, sub-projects."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from grant_portal.db.session import get_db
from grant_portal.schemas.schemas import (
    MessageResponse,
    OrganizationCreate, OrganizationOut, OrganizationUpdate,
    ProjectCreate, ProjectDeleteRequest, ProjectOut, ProjectUpdate,
    ThematicProjectCreate, ThematicProjectOut,
)
from grant_portal.services.project_service import project_service
from grant_portal.core.security import ActorContext, require_admin, require_manager

router = APIRouter(tags=["projects"])


# ---- Organizations ----
@router.post("/organizations", response_model=OrganizationOut, status_code=201)
async def create_organization(
    body: OrganizationCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_admin),
):
    return OrganizationOut.model_validate(project_service.create_organization(db, body.name, body.slug))


@router.get("/organizations")
async def list_organizations(
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_manager),
):
    orgs = project_service.list_organizations(db, include_inactive)
    return {"organizations": [OrganizationOut.model_validate(o) for o in orgs]}


@router.put("/organizations/{org_id}", response_model=OrganizationOut)
async def update_organization(
    org_id: str,
    body: OrganizationUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_admin),
):
    org = project_service.update_organization(db, org_id, **body.model_dump(exclude_none=True))
    return OrganizationOut.model_validate(org)


# ---- Thematic projects ----
@router.post("/thematic-projects", response_model=ThematicProjectOut, status_code=201)
async def create_thematic_project(
    body: ThematicProjectCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_manager),
):
    thematic = project_service.create_thematic_project(db, actor, **body.model_dump())
    return ThematicProjectOut.model_validate(thematic)


@router.get("/thematic-projects")
async def list_thematic_projects(
    organization_id: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_manager),
):
    items = project_service.list_thematic_projects(db, organization_id, status)
    return {"thematic_projects": [ThematicProjectOut.model_validate(t) for t in items]}


@router.post("/thematic-projects/{thematic_id}/archive", response_model=ThematicProjectOut)
async def archive_thematic_project(
    thematic_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_manager),
):
    thematic = project_service.archive_thematic_project(db, actor, thematic_id)
    return ThematicProjectOut.model_validate(thematic)


@router.delete("/thematic-projects/{thematic_id}", response_model=MessageResponse)
async def delete_thematic_project(
    thematic_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_admin),
):
    project_service.delete_thematic_project(db, actor, thematic_id)
    return MessageResponse(message="Thematic project deleted")


# ---- Sub-projects ----
@router.post("/projects", response_model=ProjectOut, status_code=201)
async def create_project(
    body: ProjectCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_manager),
):
    return ProjectOut.model_validate(project_service.create_project(db, actor, **body.model_dump()))


@router.get("/projects")
async def list_projects(
    thematic_project_id: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_manager),
):
    items = project_service.list_projects(db, thematic_project_id, status)
    return {"projects": [ProjectOut.model_validate(p) for p in items]}


@router.get("/projects/{project_id}")
async def get_project(
    project_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_manager),
):
    """Project with the counts that decide whether it can be deleted."""
    project = project_service.get_project(db, project_id)
    return {
        "project": ProjectOut.model_validate(project),
        "dependencies": project_service.dependency_counts(db, project_id),
    }


@router.put("/projects/{project_id}", response_model=ProjectOut)
async def update_project(
    project_id: str,
    body: ProjectUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_manager),
):
    project = project_service.update_project(db, actor, project_id, **body.model_dump(exclude_none=True))
    return ProjectOut.model_validate(project)


@router.post("/projects/{project_id}/archive", response_model=ProjectOut)
async def archive_project(
    project_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_manager),
):
    return ProjectOut.model_validate(project_service.archive_project(db, actor, project_id))


@router.post("/projects/{project_id}/delete", response_model=MessageResponse)
async def delete_project(
    project_id: str,
    body: ProjectDeleteRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_admin),
):
    """Permanently delete a sub-project; the body repeats its code."""
    project_service.delete_project(db, actor, project_id, body.confirm_code)
    return MessageResponse(message="Project deleted")
