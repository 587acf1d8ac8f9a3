# agency/repos/cart_repo.py
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from agency.data.database import utcnow
from agency.data.models.cart import CartModel
from agency.data.models.cart_item import CartItemModel


class CartRepo:
    """Dostep do shopping_cart / shopping_cart_items. Commit robi serwis."""

    def __init__(self, db: Session):
        self.db = db

    def get_cart(self, cart_id: str) -> CartModel | None:
        return self.db.get(CartModel, cart_id)

    def list_carts_by_user(self, user_id: str) -> List[CartModel]:
        # najnowszy pierwszy
        return list(
            self.db.execute(
                select(CartModel)
                .where(CartModel.user_id == user_id)
                .order_by(CartModel.created_at.desc(), CartModel.id.desc())
            ).scalars()
        )

    def create_cart(self, user_id: str) -> CartModel:
        cart = CartModel(user_id=user_id)
        self.db.add(cart)
        self.db.flush()
        return cart

    def delete_cart(self, cart_id: str) -> None:
        self.db.execute(delete(CartItemModel).where(CartItemModel.cart_id == cart_id))
        self.db.execute(delete(CartModel).where(CartModel.id == cart_id))

    def get_cart_items(self, cart_id: str) -> List[CartItemModel]:
        return list(
            self.db.execute(
                select(CartItemModel)
                .where(CartItemModel.cart_id == cart_id)
                .order_by(CartItemModel.created_at, CartItemModel.id)
            ).scalars()
        )

    def get_item(self, item_id: str) -> CartItemModel | None:
        return self.db.get(CartItemModel, item_id)

    def find_item(self, cart_id: str, item_type: str, item_id: str) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.item_type == item_type,
                CartItemModel.item_id == item_id,
            )
        ).scalars().first()

    def add_item(self, cart_id: str, item_type: str, item_id: str, quantity: int = 1) -> CartItemModel:
        item = CartItemModel(
            cart_id=cart_id,
            item_type=item_type,
            item_id=item_id,
            quantity=quantity,
        )
        self.db.add(item)
        self.db.flush()
        return item

    def set_quantity(self, item: CartItemModel, quantity: int) -> CartItemModel:
        item.quantity = quantity
        item.updated_at = utcnow()
        self.db.add(item)
        self.db.flush()
        return item

    def delete_item(self, item_id: str) -> int:
        result = self.db.execute(delete(CartItemModel).where(CartItemModel.id == item_id))
        return result.rowcount

    def delete_items_by_type(self, cart_id: str, item_type: str) -> int:
        result = self.db.execute(
            delete(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.item_type == item_type,
            )
        )
        return result.rowcount

    def delete_cart_items(self, cart_id: str) -> int:
        result = self.db.execute(delete(CartItemModel).where(CartItemModel.cart_id == cart_id))
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
