import secrets
import time
from decimal import Decimal
from typing import Any, Dict, List

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agency.data.database import utcnow
from agency.data.models.cart_item import CartItemModel
from agency.domain.errors import ConfirmationRequiredError, StoreError
from agency.domain.types import CartOwner, RemovalImpact
from agency.repos.cart_repo import CartRepo
from agency.repos.catalog_repo import CatalogRepo
from agency.services.anonymous_cart_store import AnonymousCartStore
from agency.utils.logging import get_logger

logger = get_logger(__name__)

ANONYMOUS_PREFIX = "anonymous-"
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _random_token(prefix: str) -> str:
    suffix = "".join(secrets.choice(_BASE36) for _ in range(7))
    return f"{prefix}{int(time.time() * 1000)}-{suffix}"


def is_anonymous_cart(cart_id: str) -> bool:
    return cart_id.startswith(ANONYMOUS_PREFIX)


def catalog_details(record) -> Dict[str, Any]:
    return {
        "id": record.id,
        "name": record.name,
        "price": record.price,
        "description": record.description,
        "is_active": record.is_active,
    }


def removal_impact(items: List[Dict[str, Any]], item_id: str) -> RemovalImpact:
    """Usuniecie ostatniego packa przy obecnych serwisach zabiera wszystkie serwisy."""
    target = next((i for i in items if i["id"] == item_id), None)
    if target is None:
        raise LookupError("El producto no está en el carrito")

    impact = RemovalImpact(item_id=item_id, item_type=target["item_type"])
    if target["item_type"] == "pack":
        packs = [i for i in items if i["item_type"] == "pack"]
        services = [i for i in items if i["item_type"] == "service"]
        if len(packs) == 1 and services:
            impact.cascaded_item_ids = [s["id"] for s in services]
    return impact


class CartService:
    """
    Jedno zrodlo prawdy dla koszyka, anonimowego (redis per urzadzenie)
    i zalogowanego (baza).
    commands (add, update, remove, clear, migrate) modyfikuja stan
    query (get) tylko odczyt, ale moze sprzatac duplikaty
    """

    def __init__(self, db: Session, anonymous_store: AnonymousCartStore):
        self.repo = CartRepo(db)
        self.catalog = CatalogRepo(db)
        self.anonymous_store = anonymous_store

    # ------------------------------------------------------------
    # rozwiazywanie koszyka
    # ------------------------------------------------------------
    @staticmethod
    def _require_device(owner: CartOwner) -> str:
        if not owner.device_id:
            raise ValueError("Falta el identificador del dispositivo para el carrito anónimo")
        return owner.device_id

    def get_or_create_cart(self, owner: CartOwner) -> str:
        if not owner.is_authenticated:
            device_id = self._require_device(owner)
            try:
                cart_id = self.anonymous_store.get_cart_id(device_id)
                if not cart_id:
                    cart_id = _random_token(ANONYMOUS_PREFIX)
                    self.anonymous_store.set_cart_id(device_id, cart_id)
                    self.anonymous_store.set_items(device_id, [])
                    logger.info(f"Utworzono koszyk anonimowy {cart_id}", extra={"cart_id": cart_id})
                elif self.anonymous_store.get_items(device_id) is None:
                    self.anonymous_store.set_items(device_id, [])
            except RedisError as e:
                logger.error(f"Blad koszyka anonimowego dla urzadzenia {device_id}: {e}")
                raise StoreError("Error al acceder al carrito de compras") from e
            return cart_id

        try:
            existing = self.cleanup_duplicate_carts(owner.user_id)
            if existing:
                return existing

            created = self.repo.create_cart(owner.user_id)
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Nie udalo sie utworzyc koszyka dla {owner.user_id}: {e}", extra={"user_id": owner.user_id})
            raise StoreError("No se pudo crear el carrito de compras") from e

        logger.info(f"Utworzono nowy koszyk {created.id} dla uzytkownika {owner.user_id}")
        return created.id

    def cleanup_duplicate_carts(self, user_id: str) -> str | None:
        """
        Brak unique na user_id, wiec retry/wyscigi moga zrobic kilka koszykow.
        Zostaje najnowszy, starsze sa do niego scalane (sumowanie ilosci)
        i usuwane razem z pozycjami.
        """
        try:
            carts = self.repo.list_carts_by_user(user_id)
            if not carts:
                return None

            latest = carts[0]
            if len(carts) > 1:
                logger.info(
                    f"Scalanie {len(carts) - 1} starszych koszykow do {latest.id}",
                    extra={"user_id": user_id, "cart_id": latest.id},
                )

            for old in carts[1:]:
                for item in self.repo.get_cart_items(old.id):
                    existing = self.repo.find_item(latest.id, item.item_type, item.item_id)
                    if existing:
                        self.repo.set_quantity(existing, existing.quantity + item.quantity)
                    else:
                        self.repo.add_item(latest.id, item.item_type, item.item_id, item.quantity)
                self.repo.delete_cart(old.id)
                logger.info(f"Usunieto stary koszyk {old.id}", extra={"cart_id": old.id})

            self.repo.commit()
            return latest.id
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Blad przy sprzataniu duplikatow koszyka: {e}", extra={"user_id": user_id})
            raise StoreError("Error al acceder al carrito de compras") from e

    # ------------------------------------------------------------
    # query
    # ------------------------------------------------------------
    @staticmethod
    def _item_to_dict(item: CartItemModel) -> Dict[str, Any]:
        return {
            "id": item.id,
            "cart_id": item.cart_id,
            "item_type": item.item_type,
            "item_id": item.item_id,
            "quantity": item.quantity,
            "created_at": item.created_at,
            "updated_at": item.updated_at,
        }

    def _load_items(self, owner: CartOwner, cart_id: str) -> List[Dict[str, Any]]:
        if is_anonymous_cart(cart_id):
            return self.anonymous_store.get_items(self._require_device(owner)) or []
        return [self._item_to_dict(i) for i in self.repo.get_cart_items(cart_id)]

    def summarize(self, cart_id: str, items: List[Dict[str, Any]]) -> Dict[str, Any]:
        packs = self.catalog.get_packs(i["item_id"] for i in items if i["item_type"] == "pack")
        services = self.catalog.get_services(i["item_id"] for i in items if i["item_type"] == "service")

        total = Decimal("0.00")
        hydrated = []
        for item in items:
            lookup = packs if item["item_type"] == "pack" else services
            record = lookup.get(item["item_id"])
            # pozycja bez rekordu w katalogu zostaje, ale nie liczy sie do sumy
            if record is not None:
                total += Decimal(record.price) * item["quantity"]
            hydrated.append({**item, "item_details": catalog_details(record) if record else None})

        return {"id": cart_id, "total": total, "items": hydrated}

    def get_cart_with_items(self, owner: CartOwner) -> Dict[str, Any]:
        cart_id = self.get_or_create_cart(owner)
        try:
            items = self._load_items(owner, cart_id)
            return self.summarize(cart_id, items)
        except (SQLAlchemyError, RedisError) as e:
            self.repo.rollback()
            logger.error(f"Blad odczytu koszyka {cart_id}: {e}", extra={"cart_id": cart_id})
            raise StoreError("Error al cargar el carrito de compras") from e

    # ------------------------------------------------------------
    # commands
    # ------------------------------------------------------------
    def _upsert_store_item(self, cart_id: str, item_type: str, item_id: str, increment: int = 1) -> None:
        existing = self.repo.find_item(cart_id, item_type, item_id)
        if existing:
            logger.info(
                f"{item_type} {item_id} juz jest w koszyku, zwiekszam ilosc "
                f"z {existing.quantity} do {existing.quantity + increment}",
                extra={"cart_id": cart_id},
            )
            self.repo.set_quantity(existing, existing.quantity + increment)
        else:
            logger.info(f"Dodaje {item_type} {item_id} do koszyka {cart_id}", extra={"cart_id": cart_id})
            self.repo.add_item(cart_id, item_type, item_id, increment)

    @staticmethod
    def _upsert_anonymous_item(items: List[Dict[str, Any]], cart_id: str, item_type: str, item_id: str) -> None:
        now = utcnow().isoformat()
        for item in items:
            if item["item_type"] == item_type and item["item_id"] == item_id:
                item["quantity"] += 1
                item["updated_at"] = now
                return
        items.append(
            {
                "id": _random_token("anon-item-"),
                "cart_id": cart_id,
                "item_type": item_type,
                "item_id": item_id,
                "quantity": 1,
                "created_at": now,
                "updated_at": now,
            }
        )

    def _add_item(self, owner: CartOwner, item_type: str, item_id: str) -> Dict[str, Any]:
        cart_id = self.get_or_create_cart(owner)

        try:
            if is_anonymous_cart(cart_id):
                device_id = self._require_device(owner)
                items = self.anonymous_store.get_items(device_id) or []
                if item_type == "service" and not any(i["item_type"] == "pack" for i in items):
                    raise ValueError("Primero debes añadir un pack al carrito")
                self._upsert_anonymous_item(items, cart_id, item_type, item_id)
                self.anonymous_store.set_items(device_id, items)
            else:
                if item_type == "service" and not any(
                    i.item_type == "pack" for i in self.repo.get_cart_items(cart_id)
                ):
                    raise ValueError("Primero debes añadir un pack al carrito")
                self._upsert_store_item(cart_id, item_type, item_id)
                self.repo.commit()
        except (SQLAlchemyError, RedisError) as e:
            self.repo.rollback()
            logger.error(f"Blad podczas dodawania {item_type} {item_id}: {e}", extra={"cart_id": cart_id})
            if item_type == "pack":
                raise StoreError("No se pudo añadir el pack al carrito") from e
            raise StoreError("No se pudo añadir el servicio al carrito") from e

        return self.get_cart_with_items(owner)

    def add_pack_to_cart(self, owner: CartOwner, pack_id: str) -> Dict[str, Any]:
        return self._add_item(owner, "pack", pack_id)

    def add_service_to_cart(self, owner: CartOwner, service_id: str) -> Dict[str, Any]:
        """Serwis to dodatek do packa, nigdy samodzielnie."""
        return self._add_item(owner, "service", service_id)

    def update_cart_item_quantity(
        self,
        owner: CartOwner,
        item_id: str,
        quantity: int,
        confirmed: bool = False,
    ) -> Dict[str, Any]:
        if quantity < 1:
            return self.remove_cart_item(owner, item_id, confirmed=confirmed)

        cart_id = self.get_or_create_cart(owner)
        try:
            if is_anonymous_cart(cart_id):
                device_id = self._require_device(owner)
                items = self.anonymous_store.get_items(device_id) or []
                target = next((i for i in items if i["id"] == item_id), None)
                if target is None:
                    raise LookupError("El producto no está en el carrito")
                target["quantity"] = quantity
                target["updated_at"] = utcnow().isoformat()
                self.anonymous_store.set_items(device_id, items)
            else:
                item = self.repo.get_item(item_id)
                if item is None or item.cart_id != cart_id:
                    raise LookupError("El producto no está en el carrito")
                self.repo.set_quantity(item, quantity)
                self.repo.commit()
        except (SQLAlchemyError, RedisError) as e:
            self.repo.rollback()
            logger.error(f"Blad aktualizacji ilosci pozycji {item_id}: {e}", extra={"cart_id": cart_id})
            raise StoreError("No se pudo actualizar la cantidad") from e

        logger.info(f"Ilosc pozycji {item_id} ustawiona na {quantity}", extra={"cart_id": cart_id})
        return self.get_cart_with_items(owner)

    def preview_cart_item_removal(self, owner: CartOwner, item_id: str) -> RemovalImpact:
        """Faza 1: co zostanie usuniete, bez zadnej mutacji."""
        cart_id = self.get_or_create_cart(owner)
        try:
            items = self._load_items(owner, cart_id)
        except (SQLAlchemyError, RedisError) as e:
            self.repo.rollback()
            logger.error(f"Blad odczytu koszyka {cart_id}: {e}", extra={"cart_id": cart_id})
            raise StoreError("Error al cargar el carrito de compras") from e
        return removal_impact(items, item_id)

    def remove_cart_item(self, owner: CartOwner, item_id: str, confirmed: bool = False) -> Dict[str, Any]:
        """
        Faza 2: usuwa pozycje. Jesli podglad wymaga potwierdzenia a go nie ma,
        nic nie jest ruszane i leci ConfirmationRequiredError.
        """
        cart_id = self.get_or_create_cart(owner)
        impact = self.preview_cart_item_removal(owner, item_id)

        if impact.requires_confirmation and not confirmed:
            raise ConfirmationRequiredError(impact)

        try:
            if is_anonymous_cart(cart_id):
                device_id = self._require_device(owner)
                doomed = {item_id, *impact.cascaded_item_ids}
                items = self.anonymous_store.get_items(device_id) or []
                self.anonymous_store.set_items(device_id, [i for i in items if i["id"] not in doomed])
            else:
                if impact.cascaded_item_ids:
                    logger.info("Usuwam wszystkie serwisy razem z ostatnim packiem", extra={"cart_id": cart_id})
                    self.repo.delete_items_by_type(cart_id, "service")
                self.repo.delete_item(item_id)
                # jeden commit, brak stanu posredniego
                self.repo.commit()
        except (SQLAlchemyError, RedisError) as e:
            self.repo.rollback()
            logger.error(f"Blad usuwania pozycji {item_id}: {e}", extra={"cart_id": cart_id})
            raise StoreError("No se pudo eliminar el ítem del carrito") from e

        logger.info(
            f"Pozycja {item_id} usunieta z koszyka {cart_id} (kaskada: {len(impact.cascaded_item_ids)})",
            extra={"cart_id": cart_id},
        )
        return self.get_cart_with_items(owner)

    def clear_cart(self, owner: CartOwner) -> Dict[str, Any]:
        cart_id = self.get_or_create_cart(owner)
        try:
            if is_anonymous_cart(cart_id):
                self.anonymous_store.set_items(self._require_device(owner), [])
            else:
                self.repo.delete_cart_items(cart_id)
                self.repo.commit()
        except (SQLAlchemyError, RedisError) as e:
            self.repo.rollback()
            logger.error(f"Blad czyszczenia koszyka {cart_id}: {e}", extra={"cart_id": cart_id})
            raise StoreError("No se pudo vaciar el carrito") from e

        logger.info(f"Koszyk {cart_id} wyczyszczony", extra={"cart_id": cart_id})
        return {"id": cart_id, "total": Decimal("0.00"), "items": []}

    def migrate_anonymous_cart_to_user(self, owner: CartOwner) -> bool:
        """
        Wywolywane raz przy przejsciu niezalogowany -> zalogowany.
        Pusty koszyk anonimowy: False i zadnej mutacji.
        """
        if not owner.is_authenticated or not owner.device_id:
            return False

        try:
            anonymous_id = self.anonymous_store.get_cart_id(owner.device_id)
            items = self.anonymous_store.get_items(owner.device_id) or []
        except RedisError as e:
            logger.error(f"Blad odczytu koszyka anonimowego: {e}", extra={"user_id": owner.user_id})
            raise StoreError("Error al sincronizar el carrito") from e

        if not anonymous_id or not items:
            logger.info("Brak koszyka anonimowego do migracji", extra={"user_id": owner.user_id})
            return False

        cart_id = self.get_or_create_cart(owner)

        # najpierw packi, serwisy wymagaja packa w koszyku
        ordered = sorted(items, key=lambda i: 0 if i.get("item_type") == "pack" else 1)
        migrated = 0
        try:
            for item in ordered:
                item_type = item.get("item_type")
                if item_type not in ("pack", "service"):
                    continue
                if item_type == "service" and not any(
                    i.item_type == "pack" for i in self.repo.get_cart_items(cart_id)
                ):
                    logger.warning(f"Pomijam serwis {item['item_id']} bez packa", extra={"cart_id": cart_id})
                    continue
                self._upsert_store_item(cart_id, item_type, item["item_id"], max(int(item.get("quantity", 1)), 1))
                migrated += 1
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Migracja koszyka anonimowego nieudana: {e}", extra={"cart_id": cart_id})
            raise StoreError("Error al sincronizar el carrito") from e

        try:
            self.anonymous_store.clear(owner.device_id)
        except RedisError as e:
            # pozycje juz sa w bazie, nastepna migracja zsumowalaby je drugi raz
            logger.error(f"Nie udalo sie usunac koszyka anonimowego: {e}", extra={"cart_id": cart_id})

        logger.info(f"Koszyk zsynchronizowany, {migrated} pozycji", extra={"cart_id": cart_id, "user_id": owner.user_id})
        return migrated > 0
