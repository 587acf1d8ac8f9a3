# agency/repos/project_repo.py
from typing import List

from sqlalchemy import delete, select, func, update
from sqlalchemy.orm import Session

from agency.data.database import utcnow
from agency.data.models.project import (
    ProjectModel,
    ProjectMilestoneModel,
    ProjectUpdateModel,
    ProjectFormModel,
)
from agency.data.models.system_constant import SystemConstantModel


class ProjectRepo:
    def __init__(self, db: Session):
        self.db = db

    # ----- projekty -----
    def create_project(self, project: ProjectModel) -> ProjectModel:
        self.db.add(project)
        self.db.commit()
        self.db.refresh(project)
        return project

    def get_project(self, project_id: str) -> ProjectModel | None:
        return self.db.get(ProjectModel, project_id)

    def get_project_by_order(self, order_id: str) -> ProjectModel | None:
        return self.db.execute(
            select(ProjectModel).where(ProjectModel.order_id == order_id)
        ).scalars().first()

    def list_projects_by_user(self, user_id: str) -> List[ProjectModel]:
        return list(
            self.db.execute(
                select(ProjectModel)
                .where(ProjectModel.user_id == user_id)
                .order_by(ProjectModel.created_at.desc())
            ).scalars()
        )

    def list_all_projects(self) -> List[ProjectModel]:
        return list(
            self.db.execute(select(ProjectModel).order_by(ProjectModel.created_at.desc())).scalars()
        )

    def save_project(self, project: ProjectModel) -> ProjectModel:
        self.db.add(project)
        self.db.commit()
        self.db.refresh(project)
        return project

    def delete_project(self, project_id: str) -> int:
        self.db.execute(delete(ProjectMilestoneModel).where(ProjectMilestoneModel.project_id == project_id))
        self.db.execute(delete(ProjectUpdateModel).where(ProjectUpdateModel.project_id == project_id))
        self.db.execute(delete(ProjectFormModel).where(ProjectFormModel.project_id == project_id))
        result = self.db.execute(delete(ProjectModel).where(ProjectModel.id == project_id))
        self.db.commit()
        return result.rowcount

    # ----- kamienie milowe -----
    def get_milestones(self, project_id: str) -> List[ProjectMilestoneModel]:
        return list(
            self.db.execute(
                select(ProjectMilestoneModel)
                .where(ProjectMilestoneModel.project_id == project_id)
                .order_by(ProjectMilestoneModel.position)
            ).scalars()
        )

    def get_milestone(self, milestone_id: str) -> ProjectMilestoneModel | None:
        return self.db.get(ProjectMilestoneModel, milestone_id)

    def insert_milestones(self, milestones: List[ProjectMilestoneModel]) -> List[ProjectMilestoneModel]:
        self.db.add_all(milestones)
        self.db.commit()
        return milestones

    def save_milestone(self, milestone: ProjectMilestoneModel) -> ProjectMilestoneModel:
        self.db.add(milestone)
        self.db.commit()
        self.db.refresh(milestone)
        return milestone

    def delete_milestone(self, milestone_id: str) -> int:
        result = self.db.execute(delete(ProjectMilestoneModel).where(ProjectMilestoneModel.id == milestone_id))
        self.db.commit()
        return result.rowcount

    # ----- aktualizacje -----
    def get_updates(self, project_id: str) -> List[ProjectUpdateModel]:
        # najnowsze pierwsze
        return list(
            self.db.execute(
                select(ProjectUpdateModel)
                .where(ProjectUpdateModel.project_id == project_id)
                .order_by(ProjectUpdateModel.created_at.desc())
            ).scalars()
        )

    def get_update(self, update_id: str) -> ProjectUpdateModel | None:
        return self.db.get(ProjectUpdateModel, update_id)

    def insert_update(self, project_update: ProjectUpdateModel) -> ProjectUpdateModel:
        self.db.add(project_update)
        self.db.commit()
        self.db.refresh(project_update)
        return project_update

    def mark_update_read(self, update_id: str) -> int:
        result = self.db.execute(
            update(ProjectUpdateModel)
            .where(ProjectUpdateModel.id == update_id)
            .values(is_read=True, updated_at=utcnow())
        )
        self.db.commit()
        return result.rowcount

    def count_unread_updates(self, project_id: str) -> int:
        return self.db.execute(
            select(func.count(ProjectUpdateModel.id)).where(
                ProjectUpdateModel.project_id == project_id,
                ProjectUpdateModel.is_read.is_(False),
            )
        ).scalar_one()

    # ----- formularze -----
    def get_form(self, project_id: str, form_type: str) -> ProjectFormModel | None:
        return self.db.execute(
            select(ProjectFormModel).where(
                ProjectFormModel.project_id == project_id,
                ProjectFormModel.form_type == form_type,
            )
        ).scalars().first()

    def get_form_by_id(self, form_id: str) -> ProjectFormModel | None:
        return self.db.get(ProjectFormModel, form_id)

    def save_form(self, form: ProjectFormModel) -> ProjectFormModel:
        self.db.add(form)
        self.db.commit()
        self.db.refresh(form)
        return form

    def get_constant(self, key: str):
        row = self.db.get(SystemConstantModel, key)
        return row.value if row else None

    def rollback(self):
        self.db.rollback()
