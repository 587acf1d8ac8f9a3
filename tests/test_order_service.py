"""Tests for the order manager."""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from agency.data.models import OrderItemModel, OrderModel
from agency.domain.errors import StoreError
from agency.domain.types import CartOwner
from agency.tasks.maintenance import find_orphaned_orders

from conftest import USER_ID


def _db_error(*args, **kwargs):
    raise OperationalError("INSERT", {}, Exception("disk I/O error"))


class TestCreateOrderFromCart:
    def test_single_pack_order(self, order_service, cart_service, user, catalog, db, notifications):
        cart_service.add_pack_to_cart(user, "pack-mini")

        order_id = order_service.create_order_from_cart(user, payment_method="card")

        order = db.get(OrderModel, order_id)
        assert order.status == "paid"
        assert order.total_amount == Decimal("150.00")
        items = db.query(OrderItemModel).filter_by(order_id=order_id).all()
        assert len(items) == 1
        assert items[0].price_at_purchase == Decimal("150.00")
        assert cart_service.get_cart_with_items(user)["items"] == []
        assert notifications.sent == [(USER_ID, order_id)]

    def test_total_matches_cart(self, order_service, cart_service, user, catalog, db):
        cart_service.add_pack_to_cart(user, "pack-base")
        cart_service.add_pack_to_cart(user, "pack-base")
        cart_service.add_service_to_cart(user, "svc-seo")

        order_id = order_service.create_order_from_cart(user)

        order = db.get(OrderModel, order_id)
        assert order.total_amount == Decimal("1980.00")
        items = {i.item_id: (i.quantity, i.price_at_purchase) for i in db.query(OrderItemModel).all()}
        assert items == {"pack-base": (2, Decimal("890.00")), "svc-seo": (1, Decimal("200.00"))}

    def test_unknown_catalog_item_priced_zero(self, order_service, cart_service, user, catalog, db):
        cart_service.add_pack_to_cart(user, "pack-mini")
        cart_service.add_pack_to_cart(user, "pack-gone")
        order_id = order_service.create_order_from_cart(user)
        gone = db.query(OrderItemModel).filter_by(order_id=order_id, item_id="pack-gone").one()
        assert gone.price_at_purchase == Decimal("0.00")

    def test_requires_login(self, order_service, anonymous):
        with pytest.raises(PermissionError):
            order_service.create_order_from_cart(anonymous)

    def test_empty_cart(self, order_service, user, catalog):
        with pytest.raises(ValueError, match="vacío"):
            order_service.create_order_from_cart(user)

    def test_order_row_failure_raises(self, order_service, cart_service, user, catalog, monkeypatch):
        cart_service.add_pack_to_cart(user, "pack-mini")
        monkeypatch.setattr(order_service.repo, "create_order", _db_error)
        with pytest.raises(StoreError):
            order_service.create_order_from_cart(user)


class TestOrderCompensation:
    def test_item_failure_deletes_order(self, order_service, cart_service, user, catalog, db, monkeypatch):
        cart_service.add_pack_to_cart(user, "pack-mini")
        monkeypatch.setattr(order_service.repo, "create_order_items", _db_error)

        assert order_service.create_order_from_cart(user) is None

        assert db.query(OrderModel).count() == 0
        # koszyk nietkniety, mozna sprobowac ponownie
        assert len(cart_service.get_cart_with_items(user)["items"]) == 1

    def test_failed_compensation_leaves_orphan(self, order_service, cart_service, user, catalog, db, monkeypatch):
        cart_service.add_pack_to_cart(user, "pack-mini")
        monkeypatch.setattr(order_service.repo, "create_order_items", _db_error)
        monkeypatch.setattr(order_service.repo, "delete_order", _db_error)

        assert order_service.create_order_from_cart(user) is None
        assert len(find_orphaned_orders(db)) == 1

    def test_cart_clear_failure_keeps_order(self, order_service, cart_service, user, catalog, db, monkeypatch):
        cart_service.add_pack_to_cart(user, "pack-mini")

        def broken_clear(owner):
            raise StoreError("No se pudo vaciar el carrito")

        monkeypatch.setattr(cart_service, "clear_cart", broken_clear)

        order_id = order_service.create_order_from_cart(user)
        assert order_id is not None
        assert db.query(OrderItemModel).filter_by(order_id=order_id).count() == 1

    def test_notification_failure_is_ignored(self, order_service, cart_service, user, catalog, notifications):
        cart_service.add_pack_to_cart(user, "pack-mini")

        def broken_send(user_id, order_id):
            raise ConnectionError("broker down")

        notifications.send_order_confirmation = broken_send
        assert order_service.create_order_from_cart(user) is not None


class TestOrderQueries:
    @pytest.fixture
    def order_id(self, order_service, cart_service, user, catalog):
        cart_service.add_pack_to_cart(user, "pack-base")
        return order_service.create_order_from_cart(user)

    def test_get_with_items(self, order_service, user, order_id):
        order = order_service.get_order_with_items(user, order_id)
        assert order["items"][0]["item_details"]["name"] == "Pack Base"

    def test_other_user_forbidden(self, order_service, other_user, order_id):
        with pytest.raises(PermissionError):
            order_service.get_order_with_items(other_user, order_id)

    def test_admin_allowed(self, order_service, admin, order_id):
        assert order_service.get_order_with_items(admin, order_id)["id"] == order_id

    def test_missing_order(self, order_service, user, catalog):
        with pytest.raises(LookupError):
            order_service.get_order_with_items(user, "missing")

    def test_user_orders(self, order_service, user, order_id):
        assert [o["id"] for o in order_service.get_user_orders(user)] == [order_id]
        assert order_service.get_user_orders(CartOwner()) == []


class TestUpdateOrderStatus:
    def test_any_status_may_follow_any(self, order_service, user, cart_service, catalog):
        cart_service.add_pack_to_cart(user, "pack-base")
        order_id = order_service.create_order_from_cart(user)
        assert order_service.update_order_status(order_id, "cancelled")["status"] == "cancelled"
        updated = order_service.update_order_status(order_id, "paid", payment_id="pi_123")
        assert updated["status"] == "paid"
        assert updated["payment_id"] == "pi_123"

    def test_invalid_status(self, order_service):
        with pytest.raises(ValueError):
            order_service.update_order_status("x", "shipped")

    def test_missing(self, order_service):
        with pytest.raises(LookupError):
            order_service.update_order_status("missing", "paid")
