# agency/api/routers/functions.py
"""
Funkcje uprzywilejowane: zapisy do tabel projektu, do ktorych klient
nie ma zwyklych uprawnien. Odpowiedzi bledow w formacie {error, details}.
"""
from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agency.api.deps import get_owner, get_state
from agency.data.database import get_db
from agency.data.models.project import ProjectMilestoneModel, ProjectUpdateModel
from agency.domain.schemas import MilestonesFunctionIn, ProjectUpdateFunctionIn
from agency.domain.types import CartOwner
from agency.repos.profile_repo import ProfileRepo
from agency.repos.project_repo import ProjectRepo
from agency.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/functions", tags=["functions"])


def _error(status_code: int, error: str, details: Any = None) -> JSONResponse:
    body: Dict[str, Any] = {"error": error}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


def _parse(raw: Dict[str, Any], schema):
    try:
        return schema.model_validate(raw), None
    except ValidationError as e:
        return None, _error(400, "Missing required fields", e.errors(include_url=False, include_context=False))


def _authorize(db: Session, owner: CartOwner, project_id: str):
    """Zwraca odpowiedz bledu albo None gdy wolno pisac."""
    if not owner.is_authenticated:
        return _error(401, "Unauthorized")
    project = ProjectRepo(db).get_project(project_id)
    if project is None:
        return _error(403, "Project not found or access denied")
    if project.user_id != owner.user_id and not ProfileRepo(db).is_admin(owner.user_id):
        return _error(403, "Project not found or access denied")
    return None


def _parse_due_date(value):
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@router.post("/create-project-milestones")
def create_project_milestones(
    body: Dict[str, Any] = Body(...),
    owner: CartOwner = Depends(get_owner),
    db: Session = Depends(get_db),
    state=Depends(get_state),
):
    payload, error = _parse(body, MilestonesFunctionIn)
    if error:
        return error
    denied = _authorize(db, owner, payload.projectId)
    if denied:
        return denied

    try:
        milestones = [
            ProjectMilestoneModel(
                project_id=payload.projectId,
                title=m["title"],
                description=m.get("description"),
                due_date=_parse_due_date(m.get("due_date")),
                is_completed=bool(m.get("is_completed", False)),
                position=int(m.get("position") or 0),
            )
            for m in payload.milestones
        ]
    except (KeyError, TypeError, ValueError) as e:
        return _error(400, "Invalid milestone data", str(e))

    repo = ProjectRepo(db)
    try:
        repo.insert_milestones(milestones)
    except SQLAlchemyError as e:
        repo.rollback()
        logger.error(f"Error inserting milestones: {e}", extra={"project_id": payload.projectId})
        return _error(500, "Failed to create milestones", str(e))

    for m in milestones:
        state.change_bus.publish(payload.projectId, "project_milestones", "INSERT", m.id)

    logger.info(f"Created {len(milestones)} milestones", extra={"project_id": payload.projectId})
    return {"success": True, "count": len(milestones), "ids": [m.id for m in milestones]}


@router.post("/create-project-update")
def create_project_update(
    body: Dict[str, Any] = Body(...),
    owner: CartOwner = Depends(get_owner),
    db: Session = Depends(get_db),
    state=Depends(get_state),
):
    payload, error = _parse(body, ProjectUpdateFunctionIn)
    if error:
        return error
    denied = _authorize(db, owner, payload.projectId)
    if denied:
        return denied

    repo = ProjectRepo(db)
    try:
        created = repo.insert_update(
            ProjectUpdateModel(
                project_id=payload.projectId,
                title=payload.title,
                content=payload.content,
                admin_id=payload.adminId or owner.user_id,
                is_read=False,
            )
        )
    except SQLAlchemyError as e:
        repo.rollback()
        logger.error(f"Error inserting project update: {e}", extra={"project_id": payload.projectId})
        return _error(500, "Failed to create project update", str(e))

    state.change_bus.publish(payload.projectId, "project_updates", "INSERT", created.id)
    return {"success": True, "id": created.id}
