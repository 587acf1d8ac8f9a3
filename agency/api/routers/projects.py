# agency/api/routers/projects.py
from typing import List

from fastapi import APIRouter, Depends, Query

from agency.api.deps import get_project_service, require_user
from agency.api.errors import SERVICE_ERRORS, http_error
from agency.domain.schemas import (
    ProjectCreate,
    ProjectOut,
    ProjectUpdateOut,
    QuestionnaireField,
    QuestionnaireFormOut,
    QuestionnaireResponsesIn,
    UnreadCountOut,
)
from agency.domain.types import CartOwner
from agency.services.project_service import ProjectService

router = APIRouter(prefix="/projects", tags=["projects"])


@router.post("", response_model=ProjectOut, status_code=201)
def create_project(
    payload: ProjectCreate,
    owner: CartOwner = Depends(require_user),
    svc: ProjectService = Depends(get_project_service),
):
    """
    Projekt z oplaconego zamowienia (jeden na zamowienie).
    Kamienie milowe i powiadomienie powitalne ida przez funkcje uprzywilejowane.
    """
    try:
        project_id = svc.create_project_from_order(owner, payload.order_id, payload.name)
        return svc.get_project_details(owner, project_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.get("", response_model=List[ProjectOut])
def list_projects(owner: CartOwner = Depends(require_user), svc: ProjectService = Depends(get_project_service)):
    try:
        return svc.get_user_projects(owner)
    except SERVICE_ERRORS as e:
        raise http_error(e)


# przed /{project_id}, inaczej "questionnaire" wpadnie jako id
@router.get("/questionnaire/template", response_model=List[QuestionnaireField])
def questionnaire_template(
    _owner: CartOwner = Depends(require_user),
    svc: ProjectService = Depends(get_project_service),
):
    try:
        return svc.get_questionnaire_template()
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.put("/questionnaire/{form_id}", response_model=QuestionnaireFormOut)
def save_questionnaire(
    form_id: str,
    payload: QuestionnaireResponsesIn,
    owner: CartOwner = Depends(require_user),
    svc: ProjectService = Depends(get_project_service),
):
    try:
        return svc.save_questionnaire_responses(owner, form_id, payload.responses, payload.mark_as_completed)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.post("/updates/{update_id}/read")
def mark_update_read(
    update_id: str,
    owner: CartOwner = Depends(require_user),
    svc: ProjectService = Depends(get_project_service),
):
    try:
        return {"updated": svc.mark_project_update_as_read(owner, update_id)}
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.get("/{project_id}", response_model=ProjectOut)
def get_project(
    project_id: str,
    owner: CartOwner = Depends(require_user),
    svc: ProjectService = Depends(get_project_service),
):
    try:
        return svc.get_project_details(owner, project_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.get("/{project_id}/updates", response_model=List[ProjectUpdateOut])
def list_updates(
    project_id: str,
    owner: CartOwner = Depends(require_user),
    svc: ProjectService = Depends(get_project_service),
):
    try:
        return svc.get_project_updates(owner, project_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.get("/{project_id}/updates/unread-count", response_model=UnreadCountOut)
def unread_count(
    project_id: str,
    owner: CartOwner = Depends(require_user),
    svc: ProjectService = Depends(get_project_service),
):
    try:
        return UnreadCountOut(project_id=project_id, unread=svc.get_unread_updates_count(owner, project_id))
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.get("/{project_id}/questionnaire", response_model=QuestionnaireFormOut)
def get_questionnaire(
    project_id: str,
    owner: CartOwner = Depends(require_user),
    svc: ProjectService = Depends(get_project_service),
):
    try:
        return svc.get_project_questionnaire(owner, project_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.get("/{project_id}/changes/{table}")
def wait_for_change(
    project_id: str,
    table: str,
    timeout: float = Query(25.0, ge=0, le=30),
    owner: CartOwner = Depends(require_user),
    svc: ProjectService = Depends(get_project_service),
):
    """
    Long-poll dla panelu projektu: {"changed": true} -> przeladuj kamienie milowe / aktualizacje.
    """
    try:
        return {"changed": svc.wait_for_change(owner, project_id, table, timeout)}
    except SERVICE_ERRORS as e:
        raise http_error(e)
