# agency/api/routers/admin_projects.py
from typing import List

from fastapi import APIRouter, Depends, Query, Response

from agency.api.deps import get_admin_project_service, require_admin
from agency.api.errors import SERVICE_ERRORS, http_error
from agency.domain.schemas import (
    MilestoneIn,
    MilestoneOut,
    ProjectDatesUpdate,
    ProjectOut,
    ProjectStatusUpdate,
    ProjectUpdateIn,
    ProjectUpdateOut,
)
from agency.domain.types import CartOwner
from agency.services.admin_project_service import AdminProjectService

router = APIRouter(prefix="/admin/projects", tags=["admin"])


@router.get("", response_model=List[ProjectOut])
def list_projects(
    user_id: str | None = Query(None),
    _admin: CartOwner = Depends(require_admin),
    svc: AdminProjectService = Depends(get_admin_project_service),
):
    try:
        return svc.list_projects(user_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.patch("/{project_id}/status", response_model=ProjectOut)
def update_status(
    project_id: str,
    payload: ProjectStatusUpdate,
    admin: CartOwner = Depends(require_admin),
    svc: AdminProjectService = Depends(get_admin_project_service),
):
    try:
        return svc.update_project_status(project_id, payload.status, admin.user_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.patch("/{project_id}/dates", response_model=ProjectOut)
def update_dates(
    project_id: str,
    payload: ProjectDatesUpdate,
    _admin: CartOwner = Depends(require_admin),
    svc: AdminProjectService = Depends(get_admin_project_service),
):
    try:
        return svc.update_project_dates(project_id, payload.start_date, payload.expected_end_date)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.put("/{project_id}/milestones", response_model=MilestoneOut)
def save_milestone(
    project_id: str,
    payload: MilestoneIn,
    _admin: CartOwner = Depends(require_admin),
    svc: AdminProjectService = Depends(get_admin_project_service),
):
    """Bez id -> nowy hito, z id -> aktualizacja."""
    try:
        return svc.create_or_update_milestone(project_id, payload.model_dump())
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.delete("/{project_id}/milestones/{milestone_id}", status_code=204)
def delete_milestone(
    project_id: str,
    milestone_id: str,
    _admin: CartOwner = Depends(require_admin),
    svc: AdminProjectService = Depends(get_admin_project_service),
):
    try:
        svc.delete_milestone(project_id, milestone_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return Response(status_code=204)


@router.post("/{project_id}/updates", response_model=ProjectUpdateOut, status_code=201)
def create_update(
    project_id: str,
    payload: ProjectUpdateIn,
    admin: CartOwner = Depends(require_admin),
    svc: AdminProjectService = Depends(get_admin_project_service),
):
    try:
        return svc.create_project_update(project_id, admin.user_id, payload.title, payload.content)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.delete("/{project_id}", status_code=204)
def delete_project(
    project_id: str,
    _admin: CartOwner = Depends(require_admin),
    svc: AdminProjectService = Depends(get_admin_project_service),
):
    try:
        svc.delete_project(project_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return Response(status_code=204)
