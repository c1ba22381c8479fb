from fastapi import APIRouter, Depends

from luxe.api.deps import get_current_user
from luxe.models.schemas import WishlistIn
from luxe.services import cart

router = APIRouter()


@router.get("/")
def list_wishlist(user=Depends(get_current_user)):
    return cart.list_wishlist(user["id"])


@router.post("/")
def add(payload: WishlistIn, user=Depends(get_current_user)):
    return cart.add_to_wishlist(user["id"], payload.product_id)


@router.delete("/{product_id}")
def remove(product_id: str, user=Depends(get_current_user)):
    cart.remove_from_wishlist(user["id"], product_id)
    return {"removed": True}
