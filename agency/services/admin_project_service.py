# agency/services/admin_project_service.py
from datetime import datetime, timedelta
from typing import Any, Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agency.data.database import as_utc, utcnow
from agency.data.models.project import ProjectMilestoneModel, ProjectUpdateModel
from agency.domain.errors import StoreError
from agency.repos.project_repo import ProjectRepo
from agency.services.project_service import (
    PROJECT_STATUSES,
    coerce_status,
    milestone_ratio,
    milestone_to_dict,
    project_to_dict,
    update_to_dict,
)
from agency.services.realtime_service import ProjectChangeBus
from agency.utils.logging import get_logger

logger = get_logger(__name__)


def format_date(value: datetime | None) -> str:
    if not value:
        return "fecha a determinar"
    return value.strftime("%d/%m/%Y")


class AdminProjectService:
    """Operacje back-office na projektach (tylko admin, sprawdzane w routerze)."""

    def __init__(self, db: Session, change_bus: ProjectChangeBus):
        self.repo = ProjectRepo(db)
        self.change_bus = change_bus

    def _get_project(self, project_id: str):
        project = self.repo.get_project(project_id)
        if not project:
            raise LookupError("Proyecto no encontrado")
        return project

    def list_projects(self, user_id: str | None = None) -> List[Dict[str, Any]]:
        try:
            projects = (
                self.repo.list_projects_by_user(user_id) if user_id else self.repo.list_all_projects()
            )
            result = []
            for project in projects:
                milestones = self.repo.get_milestones(project.id)
                result.append(
                    project_to_dict(project, coerce_status(project.status), milestones, [], milestone_ratio(milestones))
                )
            return result
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error fetching projects: {e}")
            raise StoreError("Error al cargar los proyectos") from e

    def update_project_status(self, project_id: str, status: str, admin_id: str) -> Dict[str, Any]:
        if status not in PROJECT_STATUSES:
            raise ValueError(f"Estado de proyecto no válido: {status}")

        try:
            project = self._get_project(project_id)
            project.status = status

            if status == "completed":
                project.actual_end_date = utcnow()

            if status == "in_progress" and not project.start_date:
                project.start_date = utcnow()
                if project.estimated_completion_days:
                    project.expected_end_date = project.start_date + timedelta(days=project.estimated_completion_days)

            project = self.repo.save_project(project)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error updating project status: {e}", extra={"project_id": project_id})
            raise StoreError("Error al actualizar el estado") from e

        logger.info(f"Project {project_id} status -> {status}", extra={"project_id": project_id})

        if status == "in_progress":
            content = (
                f'Nos complace informarte que tu proyecto "{project.name}" ha sido aceptado y hemos comenzado '
                f"a trabajar en él. La fecha de inicio es {format_date(as_utc(project.start_date))} y la fecha "
                f"estimada de finalización es {format_date(as_utc(project.expected_end_date))}. Te mantendremos "
                "informado sobre el progreso a través de estas notificaciones."
            )
            try:
                self.create_project_update(project_id, admin_id, "¡Tu proyecto ha sido aceptado!", content)
            except StoreError as e:
                # status juz zapisany
                logger.error(f"Acceptance notification not created: {e}", extra={"project_id": project_id})

        milestones = self.repo.get_milestones(project_id)
        return project_to_dict(project, status, milestones, [], milestone_ratio(milestones))

    def update_project_dates(
        self,
        project_id: str,
        start_date: datetime | None,
        expected_end_date: datetime | None,
    ) -> Dict[str, Any]:
        if not start_date and not expected_end_date:
            raise ValueError("No se proporcionaron fechas para actualizar")

        try:
            project = self._get_project(project_id)
            if start_date:
                project.start_date = start_date
            if expected_end_date:
                project.expected_end_date = expected_end_date
            project = self.repo.save_project(project)
            milestones = self.repo.get_milestones(project_id)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error updating project dates: {e}", extra={"project_id": project_id})
            raise StoreError("Error al actualizar las fechas") from e

        return project_to_dict(project, coerce_status(project.status), milestones, [], milestone_ratio(milestones))

    def create_or_update_milestone(self, project_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            self._get_project(project_id)

            if data.get("id"):
                milestone = self.repo.get_milestone(data["id"])
                if not milestone or milestone.project_id != project_id:
                    raise LookupError("Hito no encontrado")
                event = "UPDATE"
            else:
                milestone = ProjectMilestoneModel(project_id=project_id)
                event = "INSERT"

            milestone.title = data["title"]
            milestone.description = data.get("description")
            milestone.due_date = data.get("due_date")
            milestone.is_completed = bool(data.get("is_completed", False))
            milestone.position = data.get("position") or 0
            milestone.updated_at = utcnow()

            milestone = self.repo.save_milestone(milestone)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error saving milestone: {e}", extra={"project_id": project_id})
            raise StoreError("Error al guardar el hito") from e

        self.change_bus.publish(project_id, "project_milestones", event, milestone.id)
        return milestone_to_dict(milestone)

    def delete_milestone(self, project_id: str, milestone_id: str) -> None:
        try:
            milestone = self.repo.get_milestone(milestone_id)
            if not milestone or milestone.project_id != project_id:
                raise LookupError("Hito no encontrado")
            self.repo.delete_milestone(milestone_id)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error deleting milestone: {e}", extra={"project_id": project_id})
            raise StoreError("Error al eliminar el hito") from e

        self.change_bus.publish(project_id, "project_milestones", "DELETE", milestone_id)

    def create_project_update(self, project_id: str, admin_id: str, title: str, content: str) -> Dict[str, Any]:
        try:
            self._get_project(project_id)
            created = self.repo.insert_update(
                ProjectUpdateModel(
                    project_id=project_id,
                    admin_id=admin_id,
                    title=title,
                    content=content,
                    is_read=False,
                )
            )
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error creating project update: {e}", extra={"project_id": project_id})
            raise StoreError("Error al crear la actualización") from e

        self.change_bus.publish(project_id, "project_updates", "INSERT", created.id)
        return update_to_dict(created)

    def delete_project(self, project_id: str) -> None:
        try:
            self._get_project(project_id)
            self.repo.delete_project(project_id)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error deleting project: {e}", extra={"project_id": project_id})
            raise StoreError("Error al eliminar el proyecto") from e

        logger.info(f"Project {project_id} deleted", extra={"project_id": project_id})
