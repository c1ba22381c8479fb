from typing import Optional

from fastapi import APIRouter, Depends

from luxe.api.deps import get_admin_user, require_cron_secret
from luxe.core.errors import InvalidInput
from luxe.models.schemas import OrderStatus, OrderStatusUpdate, StaleOrdersResult
from luxe.services import orders
from luxe.services.stale_orders import cancel_stale_orders

router = APIRouter()
admin_only = [Depends(get_admin_user)]


@router.get("/orders", dependencies=admin_only)
def list_orders(status: Optional[str] = None):
    return orders.all_orders(status)


@router.get("/orders/{order_id}", dependencies=admin_only)
def get_order(order_id: str):
    return orders.get_order(order_id)


@router.patch("/orders/{order_id}/status", dependencies=admin_only)
def update_status(order_id: str, payload: OrderStatusUpdate):
    order = orders.set_status(order_id, payload.status)
    try:
        link = orders.whatsapp_link(orders.get_order(order_id), payload.status)
    except InvalidInput:
        link = None
    return {"order": order, "whatsapp_url": link}


@router.get("/orders/{order_id}/whatsapp", dependencies=admin_only)
def whatsapp(order_id: str, status: Optional[OrderStatus] = None):
    return {"url": orders.whatsapp_link(orders.get_order(order_id), status)}


@router.get("/utr", dependencies=admin_only)
def utr_orders(tab: str = "pending", search: Optional[str] = None):
    return orders.utr_orders(tab, search)


@router.post("/utr/{order_id}/verify", dependencies=admin_only)
def verify(order_id: str):
    return orders.verify_payment(order_id)


@router.post("/utr/{order_id}/reject", dependencies=admin_only)
def reject(order_id: str):
    return orders.reject_payment(order_id)


@router.post("/utr/{order_id}/pending", dependencies=admin_only)
def mark_pending(order_id: str):
    return orders.mark_pending(order_id)


@router.delete("/utr/{order_id}", dependencies=admin_only)
def delete_utr(order_id: str):
    return orders.delete_utr(order_id)


@router.post("/jobs/cancel-stale-orders", response_model=StaleOrdersResult,
             dependencies=[Depends(require_cron_secret)])
def cancel_stale():
    return cancel_stale_orders()
