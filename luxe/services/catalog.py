import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from slugify import slugify

from luxe.core.errors import InvalidInput, NotFound
from luxe.db.supabase import first, get_client, run
from luxe.services.pricing import discount_percent

logger = logging.getLogger(__name__)

SORTS = {
    "price-low": ("price", False),
    "price-high": ("price", True),
    "name": ("name", False),
    "newest": ("created_at", True),
}

MAX_RECENTLY_VIEWED = 10
MAX_COMPARE_ITEMS = 4


def make_slug(name: str) -> str:
    # "Silk Saree (Red)" -> "silk-saree-red"
    return slugify(name, lowercase=True)


def attach_ratings(products: List[dict]) -> List[dict]:
    if not products:
        return products
    ids = [p["id"] for p in products]
    reviews = run(get_client().table("reviews").select("product_id, rating").in_("product_id", ids)).data or []

    totals = {}
    for r in reviews:
        total, count = totals.get(r["product_id"], (0, 0))
        totals[r["product_id"]] = (total + r["rating"], count + 1)

    for p in products:
        total, count = totals.get(p["id"], (0, 0))
        p["avg_rating"] = total / count if count else 0
        p["review_count"] = count
        p["discount_percent"] = discount_percent(p)
    return products


def list_products(search: Optional[str] = None, category: Optional[str] = None,
                  featured: bool = False, on_sale: bool = False,
                  min_price: Optional[float] = None, max_price: Optional[float] = None,
                  in_stock: bool = False, min_discount: int = 0,
                  sort: str = "newest", limit: Optional[int] = None) -> List[dict]:
    client = get_client()
    query = client.table("products").select("*").eq("active", True)

    if search:
        query = query.ilike("name", f"%{search}%")
    if category:
        cat = first(client.table("categories").select("id").eq("slug", category))
        if not cat:
            return []
        query = query.eq("category_id", cat["id"])
    if featured:
        query = query.eq("featured", True)
    if min_price is not None:
        query = query.gte("price", min_price)
    if max_price is not None:
        query = query.lte("price", max_price)
    if in_stock:
        query = query.gt("stock", 0)

    column, desc = SORTS.get(sort, SORTS["newest"])
    products = attach_ratings(run(query.order(column, desc=desc)).data or [])

    if on_sale:
        products = [p for p in products if p.get("sale_price")]
    if min_discount > 0:
        products = [p for p in products if p.get("sale_price") and p["discount_percent"] >= min_discount]
    if sort == "rating":
        products.sort(key=lambda p: p["avg_rating"], reverse=True)
    # sale, discount and rating are only known after the fetch
    return products[:limit] if limit else products


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def get_product(id_or_slug: str) -> dict:
    client = get_client()
    product = first(client.table("products").select("*").eq("slug", id_or_slug))
    if not product and _is_uuid(id_or_slug):
        product = first(client.table("products").select("*").eq("id", id_or_slug))
    if not product:
        raise NotFound("Product not found")
    return attach_ratings([product])[0]


def get_products_by_ids(ids: List[str]) -> dict:
    if not ids:
        return {}
    rows = run(get_client().table("products").select("*").in_("id", list(ids))).data or []
    return {p["id"]: p for p in rows}


def compare_products(ids: List[str]) -> List[dict]:
    ids = list(dict.fromkeys(ids))
    if len(ids) > MAX_COMPARE_ITEMS:
        raise InvalidInput(f"You can compare up to {MAX_COMPARE_ITEMS} products")
    by_id = get_products_by_ids(ids)
    return attach_ratings([by_id[i] for i in ids if i in by_id])


def list_categories() -> List[dict]:
    return run(get_client().table("categories").select("*").order("name")).data or []


def list_reviews(product_id: str) -> List[dict]:
    query = get_client().table("reviews").select("*").eq("product_id", product_id).order("created_at", desc=True)
    return run(query).data or []


def add_review(product_id: str, user_id: str, rating: int, comment: Optional[str]) -> dict:
    get_product(product_id)
    res = run(get_client().table("reviews").insert({
        "product_id": product_id,
        "user_id": user_id,
        "rating": rating,
        "comment": comment,
    }))
    logger.info("Review added for product %s by %s", product_id, user_id)
    return res.data[0]


def remember_viewed(item: dict, items: List[dict]) -> List[dict]:
    """Move ``item`` to the front of a recently-viewed list."""
    item = dict(item, viewed_at=item.get("viewed_at") or datetime.now(timezone.utc).isoformat())
    rest = [i for i in items if i["id"] != item["id"]]
    return [item, *rest][:MAX_RECENTLY_VIEWED]
