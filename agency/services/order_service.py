# agency/services/order_service.py
from decimal import Decimal
from typing import Any, Callable, Dict, List, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agency.data.models.order import OrderModel
from agency.data.models.order_item import OrderItemModel
from agency.domain.errors import StoreError
from agency.domain.types import CartOwner
from agency.repos.catalog_repo import CatalogRepo
from agency.repos.order_repo import OrderRepo
from agency.repos.profile_repo import ProfileRepo
from agency.services.cart_service import CartService, catalog_details
from agency.services.notification_service import NotificationService
from agency.utils.logging import get_logger

logger = get_logger(__name__)

ORDER_STATUSES = ("pending", "paid", "processing", "completed", "cancelled")


def _order_to_dict(order: OrderModel) -> Dict[str, Any]:
    return {
        "id": order.id,
        "user_id": order.user_id,
        "status": order.status,
        "payment_method": order.payment_method,
        "payment_id": order.payment_id,
        "total_amount": order.total_amount,
        "installment_plan": order.installment_plan,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }


class OrderService:
    """
    Serwis odpowiedzialny za domene zamowien.
    Koszyk -> niezmienny zapis zakupu (order + order_items).
    """

    def __init__(self, db: Session, cart_service: CartService, notification_service: NotificationService | None = None):
        self.repo = OrderRepo(db)
        self.catalog = CatalogRepo(db)
        self.profiles = ProfileRepo(db)
        self.cart_service = cart_service
        self.notification_service = notification_service or NotificationService()

    def create_order_from_cart(
        self,
        owner: CartOwner,
        payment_method: str | None = None,
        installment_plan: str | None = None,
    ) -> str | None:
        """
        Use Case: zamowienie z koszyka, saga bez transakcji.

        1. insert order (status paid, platnosc uznana od razu)
        2. insert order_items z cena z katalogu
        3. blad w 2 -> kompensacja: usun order
        4. wyczysc koszyk
        5. zwroc id

        Po kroku 1 nic nie rzuca: blad jest logowany i wynik to None.
        """
        if not owner.is_authenticated:
            raise PermissionError("Debes iniciar sesión para realizar una compra")

        cart = self.cart_service.get_cart_with_items(owner)
        if not cart["items"]:
            raise ValueError("El carrito está vacío")
        if not any(i["item_type"] == "pack" for i in cart["items"]):
            raise ValueError("Debes incluir al menos un pack en tu orden")

        compensations: List[Tuple[str, Callable[[], None]]] = []

        try:
            order = self.repo.create_order(
                OrderModel(
                    user_id=owner.user_id,
                    total_amount=cart["total"],
                    payment_method=payment_method or None,
                    installment_plan=installment_plan or None,
                    status="paid",
                )
            )
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error creating order: {e}", extra={"user_id": owner.user_id})
            raise StoreError("No se pudo crear la orden") from e

        order_id = order.id
        compensations.append(("delete_order", lambda: self._delete_order(order_id)))
        logger.info(f"Order {order_id} created from cart {cart['id']}", extra={"order_id": order_id})

        order_items = [
            OrderItemModel(
                order_id=order_id,
                item_type=item["item_type"],
                item_id=item["item_id"],
                quantity=item["quantity"],
                price_at_purchase=(item["item_details"] or {}).get("price") or Decimal("0.00"),
            )
            for item in cart["items"]
        ]

        try:
            self.repo.create_order_items(order_items)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error creating order items: {e}", extra={"order_id": order_id})
            self._compensate(compensations, order_id)
            return None

        try:
            self.cart_service.clear_cart(owner)
        except StoreError as e:
            # zamowienie jest kompletne, zostaje; koszyk do recznego wyczyszczenia
            logger.error(f"Order {order_id} created but cart was not cleared: {e}", extra={"order_id": order_id})

        try:
            self.notification_service.send_order_confirmation(owner.user_id, order_id)
        except Exception as e:
            logger.warning(f"Order confirmation for {order_id} not queued: {e}", extra={"order_id": order_id})

        return order_id

    def _delete_order(self, order_id: str) -> None:
        self.repo.delete_order(order_id)
        if self.repo.get_order(order_id) is not None:
            raise RuntimeError(f"Order {order_id} still present after delete")

    def _compensate(self, compensations: List[Tuple[str, Callable[[], None]]], order_id: str) -> None:
        for name, action in reversed(compensations):
            try:
                action()
                logger.info(f"Compensation {name} done", extra={"order_id": order_id})
            except (SQLAlchemyError, RuntimeError) as e:
                self.repo.rollback()
                logger.critical(
                    f"Compensation {name} failed, paid order without items may remain: {e}",
                    extra={"order_id": order_id},
                )

    # ------------------------------------------------------------
    # query
    # ------------------------------------------------------------
    def _check_access(self, order: OrderModel, owner: CartOwner) -> None:
        if order.user_id != owner.user_id and not self.profiles.is_admin(owner.user_id):
            raise PermissionError("Brak dostepu do zamowienia")

    def get_order_with_items(self, owner: CartOwner, order_id: str) -> Dict[str, Any]:
        try:
            order = self.repo.get_order(order_id)
            if not order:
                raise LookupError("Orden no encontrada")
            self._check_access(order, owner)

            items = self.repo.get_order_items(order_id)
            packs = self.catalog.get_packs(i.item_id for i in items if i.item_type == "pack")
            services = self.catalog.get_services(i.item_id for i in items if i.item_type == "service")
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error fetching order: {e}", extra={"order_id": order_id})
            raise StoreError("Error al cargar la información de la orden") from e

        hydrated = []
        for item in items:
            record = (packs if item.item_type == "pack" else services).get(item.item_id)
            hydrated.append(
                {
                    "id": item.id,
                    "order_id": item.order_id,
                    "item_type": item.item_type,
                    "item_id": item.item_id,
                    "quantity": item.quantity,
                    "price_at_purchase": item.price_at_purchase,
                    "created_at": item.created_at,
                    "item_details": catalog_details(record) if record else None,
                }
            )

        return {**_order_to_dict(order), "items": hydrated}

    def get_user_orders(self, owner: CartOwner) -> List[Dict[str, Any]]:
        if not owner.is_authenticated:
            return []
        try:
            return [_order_to_dict(o) for o in self.repo.list_orders_by_user(owner.user_id)]
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error fetching user orders: {e}", extra={"user_id": owner.user_id})
            raise StoreError("Error al cargar las órdenes") from e

    def update_order_status(self, order_id: str, status: str, payment_id: str | None = None) -> Dict[str, Any]:
        # bez maszyny stanow, dowolny status moze nadpisac dowolny
        if status not in ORDER_STATUSES:
            raise ValueError(f"Estado de orden no válido: {status}")
        try:
            order = self.repo.update_order_status(order_id, status, payment_id)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error updating order status: {e}", extra={"order_id": order_id})
            raise StoreError("Error al actualizar el estado de la orden") from e

        if not order:
            raise LookupError("Orden no encontrada")

        logger.info(f"Order {order_id} status -> {status}", extra={"order_id": order_id})
        return _order_to_dict(order)
