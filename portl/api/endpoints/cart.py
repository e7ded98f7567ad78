# portl/api/endpoints/cart.py
"""
Cart actions for the signed-in buyer.

Like the checkout actions, each answers ``{"data": ...}``; domain errors are
turned into ``{"error": ...}`` by the app's exception handler.
"""
from fastapi import APIRouter, Depends

from portl.api import deps
from portl.schemas.cart import CartItemAdd, CartItemUpdate, CartLine
from portl.schemas.token import TokenPayload
from portl.services.cart_service import CartService

router = APIRouter(tags=["Cart"])


def _line(item) -> CartLine:
    return CartLine(
        id=item.id,
        event_id=item.event_id,
        ticket_type_id=item.ticket_type_id,
        ticket_type_name=item.ticket_type.name,
        price_tier_id=item.price_tier_id,
        quantity=item.quantity,
        unit_price=item.unit_price,
        line_total=item.line_total,
    )


@router.get("")
def get_cart_summary(
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: CartService = Depends(deps.get_cart_service),
):
    """All of the buyer's carts, grouped by store."""
    return {"data": service.get_cart_summary(user_id=current_user.sub)}


@router.get("/count")
def get_cart_item_count(
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: CartService = Depends(deps.get_cart_service),
):
    return {"data": {"count": service.get_item_count(user_id=current_user.sub)}}


@router.patch("/items/{item_id}")
def update_cart_item(
    item_id: str,
    item_in: CartItemUpdate,
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: CartService = Depends(deps.get_cart_service),
):
    item = service.update_item(
        user_id=current_user.sub, cart_item_id=item_id, quantity=item_in.quantity
    )
    return {"data": _line(item) if item else None}


@router.delete("/items/{item_id}")
def remove_cart_item(
    item_id: str,
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: CartService = Depends(deps.get_cart_service),
):
    service.remove_item(user_id=current_user.sub, cart_item_id=item_id)
    return {"data": {"removed": True}}


@router.get("/{tenant}")
def get_cart_for_tenant(
    tenant: str,
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: CartService = Depends(deps.get_cart_service),
):
    return {"data": service.get_cart_for_tenant(user_id=current_user.sub, tenant_subdomain=tenant)}


@router.post("/{tenant}/items")
def add_cart_item(
    tenant: str,
    item_in: CartItemAdd,
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: CartService = Depends(deps.get_cart_service),
):
    item = service.add_item(
        user_id=current_user.sub,
        tenant_subdomain=tenant,
        event_id=item_in.event_id,
        ticket_type_id=item_in.ticket_type_id,
        price_tier_id=item_in.price_tier_id,
        quantity=item_in.quantity,
    )
    return {"data": _line(item)}


@router.delete("/{tenant}")
def clear_tenant_cart(
    tenant: str,
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: CartService = Depends(deps.get_cart_service),
):
    removed = service.clear_tenant_items(user_id=current_user.sub, tenant_subdomain=tenant)
    return {"data": {"removed": removed}}
