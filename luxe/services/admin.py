import logging
import uuid
from typing import List, Optional

from luxe.core import config
from luxe.core.errors import Conflict, InvalidInput, NotFound
from luxe.db.supabase import first, get_client, run
from luxe.services.catalog import make_slug

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp", "image/gif": "gif"}


def _with_slug(data: dict) -> dict:
    if not data.get("slug") and data.get("name"):
        data["slug"] = make_slug(data["name"])
    return data


def _single(res, what: str) -> dict:
    if not res.data:
        raise NotFound(f"{what} not found")
    return res.data[0]


# --- Products ---

NULLABLE_PRODUCT_FIELDS = ("description", "sale_price", "category_id")


def list_products(search: Optional[str] = None) -> List[dict]:
    query = get_client().table("products").select("*, categories(name)")
    if search:
        query = query.ilike("name", f"%{search}%")
    return run(query.order("created_at", desc=True)).data or []


def create_product(data: dict) -> dict:
    return run(get_client().table("products").insert(_with_slug(data))).data[0]


def update_product(product_id: str, data: dict) -> dict:
    data = {k: v for k, v in data.items() if v is not None or k in NULLABLE_PRODUCT_FIELDS}
    if data.get("name") and "slug" not in data:
        data = _with_slug(data)
    return _single(run(get_client().table("products").update(data).eq("id", product_id)), "Product")


def delete_product(product_id: str) -> None:
    run(get_client().table("products").delete().eq("id", product_id))


def set_product_shipping(product_id: str, charge: Optional[float]) -> dict:
    # None clears the override so the global shipping rule applies again
    res = run(get_client().table("products").update({"shipping_charge": charge}).eq("id", product_id))
    return _single(res, "Product")


def upload_product_image(filename: str, content: bytes, content_type: str) -> str:
    ext = ALLOWED_IMAGE_TYPES.get(content_type)
    if not ext:
        raise InvalidInput("Only JPEG, PNG, WebP and GIF images are allowed")
    if len(content) > 5 * 1024 * 1024:
        raise InvalidInput("Image must be smaller than 5MB")

    path = f"products/{uuid.uuid4().hex}.{ext}"
    bucket = get_client().storage.from_(config.PRODUCT_IMAGE_BUCKET)
    bucket.upload(path, content, {"content-type": content_type})
    logger.info("Uploaded %s as %s", filename, path)
    return bucket.get_public_url(path)


# --- Categories ---

def create_category(data: dict) -> dict:
    return run(get_client().table("categories").insert(_with_slug(data))).data[0]


def update_category(category_id: str, data: dict) -> dict:
    return _single(run(get_client().table("categories").update(_with_slug(data)).eq("id", category_id)), "Category")


def delete_category(category_id: str) -> None:
    run(get_client().table("categories").delete().eq("id", category_id))


# --- Coupons ---

def list_coupons() -> List[dict]:
    return run(get_client().table("coupons").select("*").order("created_at", desc=True)).data or []


def _coupon_row(data: dict) -> dict:
    row = dict(data)
    row["code"] = row["code"].strip().upper()
    for key in ("valid_from", "valid_until"):
        if row.get(key) is not None and not isinstance(row[key], str):
            row[key] = row[key].isoformat()
    if row.get("discount_type") == "percentage" and row.get("discount_value", 0) > 100:
        raise InvalidInput("Percentage discount cannot exceed 100")
    return row


def create_coupon(data: dict) -> dict:
    try:
        return run(get_client().table("coupons").insert(_coupon_row(data))).data[0]
    except Conflict as e:
        raise Conflict("A coupon with this code already exists") from e


def update_coupon(coupon_id: str, data: dict) -> dict:
    return _single(run(get_client().table("coupons").update(_coupon_row(data)).eq("id", coupon_id)), "Coupon")


def toggle_coupon(coupon_id: str) -> dict:
    coupon = first(get_client().table("coupons").select("id, is_active").eq("id", coupon_id))
    if not coupon:
        raise NotFound("Coupon not found")
    res = run(get_client().table("coupons").update({"is_active": not coupon.get("is_active")}).eq("id", coupon_id))
    return _single(res, "Coupon")


def delete_coupon(coupon_id: str) -> None:
    run(get_client().table("coupons").delete().eq("id", coupon_id))


# --- Admin users ---

def list_admins() -> List[dict]:
    client = get_client()
    roles = run(client.table("user_roles").select("id, user_id, role").eq("role", "admin")).data or []
    if not roles:
        return []
    profiles = run(client.table("profiles").select("id, email, full_name").in_("id", [r["user_id"] for r in roles]))
    by_id = {p["id"]: p for p in profiles.data or []}
    return [{**r, "profile": by_id.get(r["user_id"])} for r in roles]


def grant_admin(email: str) -> dict:
    client = get_client()
    profile = first(client.table("profiles").select("id, email, full_name").eq("email", email.lower()))
    if not profile:
        raise NotFound("No account exists for this email")
    try:
        row = run(client.table("user_roles").insert({"user_id": profile["id"], "role": "admin"})).data[0]
    except Conflict as e:
        raise Conflict("This user is already an admin") from e
    logger.info("Granted admin role to %s", email)
    return {**row, "profile": profile}


def revoke_admin(role_id: str, current_user_id: str) -> None:
    role = first(get_client().table("user_roles").select("*").eq("id", role_id))
    if not role:
        raise NotFound("Role not found")
    if role["user_id"] == current_user_id:
        raise InvalidInput("You cannot remove your own admin access")
    run(get_client().table("user_roles").delete().eq("id", role_id))
