from fastapi import APIRouter, Depends

from luxe.api.deps import get_current_user
from luxe.models.schemas import CartItemIn, CartQuantity
from luxe.services import cart

router = APIRouter()


@router.get("/")
def get_cart(user=Depends(get_current_user)):
    return cart.get_cart(user["id"])


@router.post("/add")
def add_to_cart(item: CartItemIn, user=Depends(get_current_user)):
    return cart.add_item(user["id"], item.product_id, item.quantity, item.size, item.color)


@router.patch("/{item_id}")
def update_quantity(item_id: str, payload: CartQuantity, user=Depends(get_current_user)):
    return cart.update_quantity(user["id"], item_id, payload.quantity)


@router.delete("/{item_id}")
def remove_item(item_id: str, user=Depends(get_current_user)):
    return cart.remove_item(user["id"], item_id)


@router.delete("/")
def clear_cart(user=Depends(get_current_user)):
    cart.clear_cart(user["id"])
    return {"cleared": True}
