from fastapi import APIRouter

from luxe.models.schemas import RazorpayOrderIn, RazorpayVerifyIn
from luxe.services import payments

router = APIRouter()


@router.get("/options")
def options():
    return payments.public_options()


@router.post("/razorpay/order")
async def create_razorpay_order(payload: RazorpayOrderIn):
    return await payments.create_razorpay_order(payload.amount)


@router.post("/razorpay/verify")
def verify(payload: RazorpayVerifyIn):
    verified = payments.verify_razorpay_signature(
        payload.razorpay_order_id, payload.razorpay_payment_id, payload.razorpay_signature
    )
    return {"verified": verified}
