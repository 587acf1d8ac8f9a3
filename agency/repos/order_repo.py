# agency/repos/order_repo.py
from typing import List

from sqlalchemy import delete, select, func
from sqlalchemy.orm import Session

from agency.data.models.order import OrderModel
from agency.data.models.order_item import OrderItemModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)
        return order

    def create_order_items(self, items: List[OrderItemModel]) -> List[OrderItemModel]:
        self.db.add_all(items)
        self.db.commit()
        return items

    def delete_order(self, order_id: str) -> int:
        result = self.db.execute(delete(OrderModel).where(OrderModel.id == order_id))
        self.db.commit()
        return result.rowcount

    def get_order(self, order_id: str) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_order_items(self, order_id: str) -> List[OrderItemModel]:
        return list(
            self.db.execute(
                select(OrderItemModel)
                .where(OrderItemModel.order_id == order_id)
                .order_by(OrderItemModel.created_at, OrderItemModel.id)
            ).scalars()
        )

    def list_orders_by_user(self, user_id: str) -> List[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(OrderModel.user_id == user_id)
                .order_by(OrderModel.created_at.desc())
            ).scalars()
        )

    def update_order_status(self, order_id: str, status: str, payment_id: str | None = None) -> OrderModel | None:
        order = self.get_order(order_id)
        if order:
            order.status = status
            if payment_id:
                order.payment_id = payment_id
            self.db.commit()
            self.db.refresh(order)
        return order

    def list_orphaned_paid_orders(self) -> List[OrderModel]:
        """Oplacone zamowienia bez zadnej pozycji (crash miedzy insertami)."""
        has_items = (
            select(func.count(OrderItemModel.id))
            .where(OrderItemModel.order_id == OrderModel.id)
            .scalar_subquery()
        )
        return list(
            self.db.execute(
                select(OrderModel).where(OrderModel.status == "paid", has_items == 0)
            ).scalars()
        )

    def rollback(self):
        self.db.rollback()
