from typing import Optional

from fastapi import APIRouter, Depends, Request

from luxe.api.deps import get_optional_user
from luxe.core.errors import NotFound
from luxe.models.schemas import CouponApply, OrderCreate, QuoteRequest, UtrSubmit
from luxe.services import checkout, pincodes

router = APIRouter()


def _dump(model) -> Optional[dict]:
    return model.model_dump() if model is not None else None


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@router.post("/quote")
def quote(payload: QuoteRequest, user=Depends(get_optional_user)):
    lines = [i.model_dump() for i in payload.items or []]
    return checkout.quote(user, payload.payment_method, payload.coupon_code, _dump(payload.buy_now), lines)


@router.post("/coupon")
def apply_coupon(payload: CouponApply, user=Depends(get_optional_user)):
    lines = [i.model_dump() for i in payload.items or []]
    items = checkout.checkout_items(user, _dump(payload.buy_now), lines)
    return checkout.apply_coupon(payload.code, items, payload.payment_method)


@router.get("/pincode/{pincode}")
def check_pincode(pincode: str):
    return pincodes.check_serviceability(pincode)


@router.get("/pincode/{pincode}/lookup")
async def lookup_pincode(pincode: str):
    found = await pincodes.lookup_postal(pincode)
    if not found:
        raise NotFound("Pincode not found")
    return found


@router.post("/orders", status_code=201)
def place_order(payload: OrderCreate, request: Request, user=Depends(get_optional_user)):
    return checkout.place_order(user, payload.model_dump(), _client_ip(request))


@router.post("/orders/{order_id}/utr")
def submit_utr(order_id: str, payload: UtrSubmit, user=Depends(get_optional_user)):
    return checkout.submit_utr(order_id, payload.utr, user)
