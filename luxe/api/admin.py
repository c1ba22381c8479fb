from typing import Optional

from fastapi import APIRouter, Body, Depends, File, UploadFile

from luxe.api.deps import get_admin_user
from luxe.models.schemas import (AdminGrant, CategoryIn, CouponIn, PincodeIn, ProductIn, ProductShipping,
                                 ProductUpdate, ShippingSettings)
from luxe.services import admin as admin_service
from luxe.services import orders, payments, pincodes
from luxe.services.pricing import shipping_settings

router = APIRouter(dependencies=[Depends(get_admin_user)])

REDACTED = "********"


@router.get("/dashboard")
def dashboard():
    return orders.dashboard()


# --- Products ---

@router.get("/products")
def list_products(search: Optional[str] = None):
    return admin_service.list_products(search)


@router.post("/products", status_code=201)
def create_product(payload: ProductIn):
    return admin_service.create_product(payload.model_dump())


@router.patch("/products/{product_id}")
def update_product(product_id: str, payload: ProductUpdate):
    return admin_service.update_product(product_id, payload.model_dump(exclude_unset=True))


@router.delete("/products/{product_id}")
def delete_product(product_id: str):
    admin_service.delete_product(product_id)
    return {"deleted": True}


@router.put("/products/{product_id}/shipping")
def set_product_shipping(product_id: str, payload: ProductShipping):
    return admin_service.set_product_shipping(product_id, payload.shipping_charge)


@router.post("/products/images", status_code=201)
def upload_image(file: UploadFile = File(...)):
    url = admin_service.upload_product_image(file.filename, file.file.read(), file.content_type)
    return {"url": url}


# --- Categories ---

@router.post("/categories", status_code=201)
def create_category(payload: CategoryIn):
    return admin_service.create_category(payload.model_dump())


@router.patch("/categories/{category_id}")
def update_category(category_id: str, payload: CategoryIn):
    return admin_service.update_category(category_id, payload.model_dump(exclude_unset=True))


@router.delete("/categories/{category_id}")
def delete_category(category_id: str):
    admin_service.delete_category(category_id)
    return {"deleted": True}


# --- Coupons ---

@router.get("/coupons")
def list_coupons():
    return admin_service.list_coupons()


@router.post("/coupons", status_code=201)
def create_coupon(payload: CouponIn):
    return admin_service.create_coupon(payload.model_dump())


@router.put("/coupons/{coupon_id}")
def update_coupon(coupon_id: str, payload: CouponIn):
    return admin_service.update_coupon(coupon_id, payload.model_dump())


@router.post("/coupons/{coupon_id}/toggle")
def toggle_coupon(coupon_id: str):
    return admin_service.toggle_coupon(coupon_id)


@router.delete("/coupons/{coupon_id}")
def delete_coupon(coupon_id: str):
    admin_service.delete_coupon(coupon_id)
    return {"deleted": True}


# --- Pincodes ---

@router.get("/pincodes")
def list_pincodes(search: Optional[str] = None):
    return pincodes.list_pincodes(search)


@router.post("/pincodes", status_code=201)
def create_pincode(payload: PincodeIn):
    return pincodes.create_pincode(payload.model_dump())


@router.put("/pincodes/{pincode_id}")
def update_pincode(pincode_id: str, payload: PincodeIn):
    return pincodes.update_pincode(pincode_id, payload.model_dump())


@router.post("/pincodes/{pincode_id}/toggle")
def toggle_pincode(pincode_id: str):
    return pincodes.toggle_pincode(pincode_id)


@router.delete("/pincodes/{pincode_id}")
def delete_pincode(pincode_id: str):
    pincodes.delete_pincode(pincode_id)
    return {"deleted": True}


# --- Shipping & payment settings ---

@router.get("/shipping")
def get_shipping():
    return shipping_settings(payments.get_settings())


@router.put("/shipping")
def save_shipping(payload: ShippingSettings):
    return shipping_settings(payments.save_settings(payload.model_dump()))


@router.get("/settings")
def get_settings():
    return payments.redact(payments.get_settings())


@router.put("/settings")
def save_settings(payload: dict = Body(...)):
    # the console echoes masked secrets back; keep the stored values
    data = {k: v for k, v in payload.items() if v != REDACTED and k not in ("id", "created_at")}
    return payments.redact(payments.save_settings(data))


# --- Admin users ---

@router.get("/users")
def list_admins():
    return admin_service.list_admins()


@router.post("/users", status_code=201)
def grant_admin(payload: AdminGrant):
    return admin_service.grant_admin(payload.email)


@router.delete("/users/{role_id}")
def revoke_admin(role_id: str, admin=Depends(get_admin_user)):
    admin_service.revoke_admin(role_id, admin["id"])
    return {"deleted": True}
