# agency/repos/catalog_repo.py
from typing import Dict, Iterable, List, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from agency.data.models.catalog import PackModel, PackServiceModel, ServiceModuleModel


class CatalogRepo:
    def __init__(self, db: Session):
        self.db = db

    def list_active_packs(self) -> List[PackModel]:
        return list(
            self.db.execute(
                select(PackModel)
                .where(PackModel.is_active.is_(True))
                .order_by(PackModel.position, PackModel.name)
            ).scalars()
        )

    def list_active_services(self) -> List[ServiceModuleModel]:
        return list(
            self.db.execute(
                select(ServiceModuleModel)
                .where(ServiceModuleModel.is_active.is_(True))
                .order_by(ServiceModuleModel.category, ServiceModuleModel.name)
            ).scalars()
        )

    def get_pack(self, pack_id: str) -> PackModel | None:
        return self.db.get(PackModel, pack_id)

    def get_packs(self, ids: Iterable[str]) -> Dict[str, PackModel]:
        ids = list(set(ids))
        # pusty IN nie jest wysylany do bazy
        if not ids:
            return {}
        rows = self.db.execute(select(PackModel).where(PackModel.id.in_(ids))).scalars()
        return {p.id: p for p in rows}

    def get_services(self, ids: Iterable[str]) -> Dict[str, ServiceModuleModel]:
        ids = list(set(ids))
        if not ids:
            return {}
        rows = self.db.execute(select(ServiceModuleModel).where(ServiceModuleModel.id.in_(ids))).scalars()
        return {s.id: s for s in rows}

    # ---------- admin ----------

    def list_all_packs(self) -> List[PackModel]:
        return list(self.db.execute(select(PackModel).order_by(PackModel.position, PackModel.name)).scalars())

    def list_all_services(self) -> List[ServiceModuleModel]:
        return list(
            self.db.execute(
                select(ServiceModuleModel).order_by(ServiceModuleModel.category, ServiceModuleModel.name)
            ).scalars()
        )

    def get_service(self, service_id: str) -> ServiceModuleModel | None:
        return self.db.get(ServiceModuleModel, service_id)

    def max_pack_position(self) -> int | None:
        return self.db.execute(select(func.max(PackModel.position))).scalar()

    def save(self, row):
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def delete_pack(self, pack_id: str) -> None:
        self.db.execute(delete(PackServiceModel).where(PackServiceModel.pack_id == pack_id))
        self.db.execute(delete(PackModel).where(PackModel.id == pack_id))
        self.db.commit()

    def delete_service(self, service_id: str) -> None:
        self.db.execute(delete(PackServiceModel).where(PackServiceModel.service_id == service_id))
        self.db.execute(delete(ServiceModuleModel).where(ServiceModuleModel.id == service_id))
        self.db.commit()

    def find_pack_service(self, pack_id: str, service_id: str) -> PackServiceModel | None:
        return self.db.execute(
            select(PackServiceModel).where(
                PackServiceModel.pack_id == pack_id, PackServiceModel.service_id == service_id
            )
        ).scalars().first()

    def get_pack_service(self, pack_service_id: str) -> PackServiceModel | None:
        return self.db.get(PackServiceModel, pack_service_id)

    def delete_pack_service(self, pack_service_id: str) -> None:
        self.db.execute(delete(PackServiceModel).where(PackServiceModel.id == pack_service_id))
        self.db.commit()

    def list_pack_services(self, pack_id: str) -> List[Tuple[PackServiceModel, ServiceModuleModel]]:
        rows = self.db.execute(
            select(PackServiceModel, ServiceModuleModel)
            .join(ServiceModuleModel, ServiceModuleModel.id == PackServiceModel.service_id)
            .where(PackServiceModel.pack_id == pack_id)
            .order_by(PackServiceModel.created_at)
        ).all()
        return [(link, service) for link, service in rows]

    def rollback(self):
        self.db.rollback()
