# agency/services/admin_catalog_service.py
import time
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from agency.data.models.catalog import PackModel, PackServiceModel, ServiceModuleModel
from agency.domain.errors import StoreError
from agency.repos.catalog_repo import CatalogRepo
from agency.utils.logging import get_logger

logger = get_logger(__name__)

PACK_FIELDS = (
    "name",
    "slug",
    "price",
    "target",
    "short_description",
    "description",
    "is_active",
    "position",
    "type",
    "color",
    "features",
)
SERVICE_FIELDS = ("name", "category", "price", "description", "is_active")

NEW_PACK_DEFAULTS = {
    "name": "Nuevo Pack",
    "price": Decimal("0"),
    "target": "Todo tipo de negocios",
    "short_description": "",
    "description": "",
    "is_active": True,
    "color": "blue-500",
    "features": [],
    "type": "basic",
}
NEW_SERVICE_DEFAULTS = {
    "name": "Nuevo Servicio",
    "category": "technical",
    "price": Decimal("0"),
    "description": "",
    "is_active": True,
}

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def slug_suffix(now: float | None = None) -> str:
    """Znacznik czasu (ms) w base36, doklejany do generowanych slugow."""
    n = int((time.time() if now is None else now) * 1000)
    out = ""
    while n:
        n, r = divmod(n, 36)
        out = _BASE36[r] + out
    return out or "0"


def _apply(row, data: Dict[str, Any], fields) -> None:
    for field in fields:
        if field in data and data[field] is not None:
            setattr(row, field, data[field])


def pack_service_to_dict(link: PackServiceModel, service: ServiceModuleModel) -> Dict[str, Any]:
    return {
        "id": link.id,
        "pack_id": link.pack_id,
        "service_id": link.service_id,
        "service_name": service.name,
        "category": service.category,
        "price": service.price,
    }


class AdminCatalogService:
    """CRUD katalogu (packi, serwisy, serwisy w packu). Dostep admina sprawdza router."""

    def __init__(self, db: Session):
        self.repo = CatalogRepo(db)

    def _get_pack(self, pack_id: str) -> PackModel:
        pack = self.repo.get_pack(pack_id)
        if not pack:
            raise LookupError("Pack no encontrado")
        return pack

    def _get_service(self, service_id: str) -> ServiceModuleModel:
        service = self.repo.get_service(service_id)
        if not service:
            raise LookupError("Servicio no encontrado")
        return service

    def _next_position(self) -> int:
        current = self.repo.max_pack_position()
        return (current or 0) + 1

    # ---------- packi ----------

    def list_packs(self) -> List[PackModel]:
        try:
            return self.repo.list_all_packs()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching packs: {e}")
            raise StoreError("Error al cargar los packs") from e

    def create_pack(self, data: Dict[str, Any]) -> PackModel:
        values = dict(NEW_PACK_DEFAULTS)
        values.update({k: v for k, v in data.items() if v is not None})
        try:
            values.setdefault("slug", f"nuevo-pack-{slug_suffix()}")
            values.setdefault("position", self._next_position())
            pack = PackModel()
            _apply(pack, values, PACK_FIELDS)
            pack = self.repo.save(pack)
        except IntegrityError as e:
            self.repo.rollback()
            raise ValueError("Ya existe un pack con ese slug") from e
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error creating pack: {e}")
            raise StoreError("Error al crear el pack") from e

        logger.info(f"Pack {pack.id} created", extra={"pack_id": pack.id})
        return pack

    def update_pack(self, pack_id: str, data: Dict[str, Any]) -> PackModel:
        try:
            pack = self._get_pack(pack_id)
            _apply(pack, data, PACK_FIELDS)
            return self.repo.save(pack)
        except IntegrityError as e:
            self.repo.rollback()
            raise ValueError("Ya existe un pack con ese slug") from e
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error updating pack: {e}", extra={"pack_id": pack_id})
            raise StoreError("Error al actualizar el pack") from e

    def toggle_pack_active(self, pack_id: str, is_active: bool) -> PackModel:
        try:
            pack = self._get_pack(pack_id)
            pack.is_active = is_active
            return self.repo.save(pack)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error toggling pack: {e}", extra={"pack_id": pack_id})
            raise StoreError("Error al cambiar el estado del pack") from e

    def duplicate_pack(self, pack_id: str) -> PackModel:
        try:
            source = self._get_pack(pack_id)
            copy = PackModel()
            _apply(copy, {f: getattr(source, f) for f in PACK_FIELDS}, PACK_FIELDS)
            copy.name = f"{source.name} (copia)"
            copy.slug = f"{source.slug}-copia-{slug_suffix()}"
            copy.is_active = True
            copy.features = list(source.features or [])
            copy.position = self._next_position()
            copy = self.repo.save(copy)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error duplicating pack: {e}", extra={"pack_id": pack_id})
            raise StoreError("Error al duplicar el pack") from e

        logger.info(f"Pack {pack_id} duplicated as {copy.id}", extra={"pack_id": copy.id})
        return copy

    def delete_pack(self, pack_id: str) -> None:
        try:
            self._get_pack(pack_id)
            self.repo.delete_pack(pack_id)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error deleting pack: {e}", extra={"pack_id": pack_id})
            raise StoreError("Error al eliminar el pack") from e

        logger.info(f"Pack {pack_id} deleted", extra={"pack_id": pack_id})

    # ---------- serwisy w packu ----------

    def list_pack_services(self, pack_id: str) -> List[Dict[str, Any]]:
        try:
            self._get_pack(pack_id)
            return [pack_service_to_dict(link, service) for link, service in self.repo.list_pack_services(pack_id)]
        except SQLAlchemyError as e:
            logger.error(f"Error fetching pack services: {e}", extra={"pack_id": pack_id})
            raise StoreError("Error al cargar los servicios del pack") from e

    def add_service_to_pack(self, pack_id: str, service_id: str) -> Dict[str, Any]:
        try:
            self._get_pack(pack_id)
            service = self._get_service(service_id)
            if self.repo.find_pack_service(pack_id, service_id):
                raise ValueError("Este servicio ya está incluido en este pack")
            link = self.repo.save(PackServiceModel(pack_id=pack_id, service_id=service_id))
        except IntegrityError as e:
            self.repo.rollback()
            raise ValueError("Este servicio ya está incluido en este pack") from e
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error adding service to pack: {e}", extra={"pack_id": pack_id})
            raise StoreError("Error al añadir el servicio al pack") from e

        return pack_service_to_dict(link, service)

    def remove_service_from_pack(self, pack_service_id: str) -> None:
        try:
            if not self.repo.get_pack_service(pack_service_id):
                raise LookupError("Servicio del pack no encontrado")
            self.repo.delete_pack_service(pack_service_id)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error removing service from pack: {e}")
            raise StoreError("Error al eliminar el servicio del pack") from e

    # ---------- serwisy ----------

    def list_services(self) -> List[ServiceModuleModel]:
        try:
            return self.repo.list_all_services()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching services: {e}")
            raise StoreError("Error al cargar los servicios") from e

    def create_service(self, data: Dict[str, Any]) -> ServiceModuleModel:
        values = dict(NEW_SERVICE_DEFAULTS)
        values.update({k: v for k, v in data.items() if v is not None})
        try:
            service = ServiceModuleModel()
            _apply(service, values, SERVICE_FIELDS)
            service = self.repo.save(service)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error creating service: {e}")
            raise StoreError("Error al crear el servicio") from e

        logger.info(f"Service {service.id} created", extra={"service_id": service.id})
        return service

    def update_service(self, service_id: str, data: Dict[str, Any]) -> ServiceModuleModel:
        try:
            service = self._get_service(service_id)
            _apply(service, data, SERVICE_FIELDS)
            return self.repo.save(service)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error updating service: {e}", extra={"service_id": service_id})
            raise StoreError("Error al actualizar el servicio") from e

    def toggle_service_active(self, service_id: str, is_active: bool) -> ServiceModuleModel:
        try:
            service = self._get_service(service_id)
            service.is_active = is_active
            return self.repo.save(service)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error toggling service: {e}", extra={"service_id": service_id})
            raise StoreError("Error al cambiar el estado del servicio") from e

    def delete_service(self, service_id: str) -> None:
        try:
            self._get_service(service_id)
            self.repo.delete_service(service_id)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error deleting service: {e}", extra={"service_id": service_id})
            raise StoreError("Error al eliminar el servicio") from e

        logger.info(f"Service {service_id} deleted", extra={"service_id": service_id})
