# agency/api/routers/cart.py
from fastapi import APIRouter, Depends, Query

from agency.api.deps import get_cart_service, get_owner, require_user
from agency.api.errors import SERVICE_ERRORS, http_error
from agency.domain.schemas import CartOut, MigrationOut, QuantityIn, RemovalImpactOut
from agency.domain.types import CartOwner
from agency.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def _impact_out(impact) -> RemovalImpactOut:
    return RemovalImpactOut(
        item_id=impact.item_id,
        item_type=impact.item_type,
        cascaded_item_ids=impact.cascaded_item_ids,
        requires_confirmation=impact.requires_confirmation,
        message=impact.message,
    )


@router.get("", response_model=CartOut)
def get_cart(owner: CartOwner = Depends(get_owner), svc: CartService = Depends(get_cart_service)):
    try:
        return svc.get_cart_with_items(owner)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.post("/packs/{pack_id}", response_model=CartOut)
def add_pack(pack_id: str, owner: CartOwner = Depends(get_owner), svc: CartService = Depends(get_cart_service)):
    try:
        return svc.add_pack_to_cart(owner, pack_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.post("/services/{service_id}", response_model=CartOut)
def add_service(
    service_id: str,
    owner: CartOwner = Depends(get_owner),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return svc.add_service_to_cart(owner, service_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.patch("/items/{item_id}", response_model=CartOut)
def update_quantity(
    item_id: str,
    payload: QuantityIn,
    confirm: bool = Query(False),
    owner: CartOwner = Depends(get_owner),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return svc.update_cart_item_quantity(owner, item_id, payload.quantity, confirmed=confirm)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.get("/items/{item_id}/removal-impact", response_model=RemovalImpactOut)
def removal_impact(item_id: str, owner: CartOwner = Depends(get_owner), svc: CartService = Depends(get_cart_service)):
    try:
        return _impact_out(svc.preview_cart_item_removal(owner, item_id))
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.delete("/items/{item_id}", response_model=CartOut)
def remove_item(
    item_id: str,
    confirm: bool = Query(False),
    owner: CartOwner = Depends(get_owner),
    svc: CartService = Depends(get_cart_service),
):
    """
    Ostatni pack przy obecnych serwisach -> 409 z podgladem, ponow z ?confirm=true.
    """
    try:
        return svc.remove_cart_item(owner, item_id, confirmed=confirm)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.delete("", response_model=CartOut)
def clear_cart(owner: CartOwner = Depends(get_owner), svc: CartService = Depends(get_cart_service)):
    try:
        return svc.clear_cart(owner)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.post("/migrate", response_model=MigrationOut)
def migrate(owner: CartOwner = Depends(require_user), svc: CartService = Depends(get_cart_service)):
    """Po zalogowaniu: X-User-Id + X-Device-Id urzadzenia z koszykiem anonimowym."""
    try:
        return MigrationOut(migrated=svc.migrate_anonymous_cart_to_user(owner))
    except SERVICE_ERRORS as e:
        raise http_error(e)
