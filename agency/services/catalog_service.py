# agency/services/catalog_service.py
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agency.data.models.catalog import PackModel, ServiceModuleModel
from agency.domain.errors import StoreError
from agency.repos.catalog_repo import CatalogRepo
from agency.utils.logging import get_logger

logger = get_logger(__name__)


class CatalogService:
    def __init__(self, db: Session):
        self.repo = CatalogRepo(db)

    def list_packs(self) -> List[PackModel]:
        try:
            return self.repo.list_active_packs()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching packs: {e}")
            raise StoreError("Error al cargar los packs") from e

    def list_services(self) -> List[ServiceModuleModel]:
        try:
            return self.repo.list_active_services()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching service modules: {e}")
            raise StoreError("Error al cargar los servicios") from e

    def get_pack(self, pack_id: str) -> PackModel:
        pack = self.repo.get_pack(pack_id)
        if not pack:
            raise LookupError("Pack no encontrado")
        return pack
