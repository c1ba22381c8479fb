from fastapi import APIRouter, Depends

from luxe.api.deps import get_current_user
from luxe.services import orders

router = APIRouter()


@router.get("/")
def my_orders(user=Depends(get_current_user)):
    return orders.my_orders(user["id"])


@router.get("/{order_id}/track")
def track(order_id: str, user=Depends(get_current_user)):
    return orders.track_order(order_id, user["id"])
