# agency/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from agency.api.deps import get_order_service, require_admin, require_user
from agency.api.errors import SERVICE_ERRORS, http_error
from agency.domain.schemas import OrderCreate, OrderOut, OrderStatusUpdate, OrderWithItemsOut
from agency.domain.types import CartOwner
from agency.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderWithItemsOut, status_code=201)
def create_order(
    payload: OrderCreate,
    owner: CartOwner = Depends(require_user),
    svc: OrderService = Depends(get_order_service),
):
    """
    Tworzy zamówienie z koszyka zalogowanego usera.
    Wysyła powiadomienie asynchronicznie.
    """
    try:
        order_id = svc.create_order_from_cart(owner, payload.payment_method, payload.installment_plan)
        if order_id is None:
            # saga nie doszla do konca, szczegoly w logach
            raise HTTPException(status_code=500, detail="No se pudo crear la orden")
        return svc.get_order_with_items(owner, order_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.get("", response_model=List[OrderOut])
def list_orders(owner: CartOwner = Depends(require_user), svc: OrderService = Depends(get_order_service)):
    try:
        return svc.get_user_orders(owner)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.get("/{order_id}", response_model=OrderWithItemsOut)
def get_order(
    order_id: str,
    owner: CartOwner = Depends(require_user),
    svc: OrderService = Depends(get_order_service),
):
    """
    Pobiera szczegóły zamówienia (właściciel albo admin).
    """
    try:
        return svc.get_order_with_items(owner, order_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.patch("/{order_id}/status", response_model=OrderOut)
def update_status(
    order_id: str,
    payload: OrderStatusUpdate,
    _admin: CartOwner = Depends(require_admin),
    svc: OrderService = Depends(get_order_service),
):
    try:
        return svc.update_order_status(order_id, payload.status, payload.payment_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)
