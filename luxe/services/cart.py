from typing import List, Optional

from luxe.core.errors import InvalidInput, NotFound
from luxe.db.supabase import first, get_client, run
from luxe.services.pricing import cart_totals

CART_SELECT = "id, product_id, quantity, size, color, products(*)"


def _format(row: dict) -> dict:
    item = {k: v for k, v in row.items() if k != "products"}
    item["product"] = row.get("products")
    return item


def get_items(user_id: str) -> List[dict]:
    res = run(get_client().table("cart").select(CART_SELECT).eq("user_id", user_id).order("created_at"))
    return [_format(r) for r in res.data or []]


def get_cart(user_id: str) -> dict:
    items = get_items(user_id)
    return {"items": items, **cart_totals(items)}


def add_item(user_id: str, product_id: str, quantity: int,
             size: Optional[str] = None, color: Optional[str] = None) -> dict:
    client = get_client()
    product = first(client.table("products").select("id, stock, active").eq("id", product_id))
    if not product or product.get("active") is False:
        raise NotFound("Product not found")

    existing = _find_line(user_id, product_id, size, color)
    if existing:
        return update_quantity(user_id, existing["id"], existing["quantity"] + quantity)

    run(client.table("cart").insert({
        "user_id": user_id,
        "product_id": product_id,
        "quantity": quantity,
        "size": size or None,
        "color": color or None,
    }))
    return get_cart(user_id)


def _find_line(user_id: str, product_id: str, size: Optional[str], color: Optional[str]) -> Optional[dict]:
    # NULL never matches eq(), so lines without a size or color are matched here
    rows = run(
        get_client().table("cart").select("id, quantity, size, color")
        .eq("user_id", user_id).eq("product_id", product_id)
    ).data or []
    for row in rows:
        if row.get("size") == (size or None) and row.get("color") == (color or None):
            return row
    return None


def update_quantity(user_id: str, item_id: str, quantity: int) -> dict:
    if quantity < 1:
        return remove_item(user_id, item_id)
    res = run(get_client().table("cart").update({"quantity": quantity}).eq("id", item_id).eq("user_id", user_id))
    if not res.data:
        raise NotFound("Cart item not found")
    return get_cart(user_id)


def remove_item(user_id: str, item_id: str) -> dict:
    run(get_client().table("cart").delete().eq("id", item_id).eq("user_id", user_id))
    return get_cart(user_id)


def clear_cart(user_id: str) -> None:
    run(get_client().table("cart").delete().eq("user_id", user_id))


def resolve_lines(lines: List[dict]) -> List[dict]:
    """Turn ``{product_id, quantity, size, color}`` lines into cart-shaped items."""
    if not lines:
        raise InvalidInput("No items to checkout")
    ids = [line["product_id"] for line in lines]
    rows = run(get_client().table("products").select("*").in_("id", ids)).data or []
    products = {p["id"]: p for p in rows}
    items = []
    for line in lines:
        product = products.get(line["product_id"])
        if not product or product.get("active") is False:
            raise NotFound("Product not found")
        items.append({
            "product_id": product["id"],
            "quantity": line["quantity"],
            "size": line.get("size"),
            "color": line.get("color"),
            "product": product,
        })
    return items


# --- Wishlist ---

def list_wishlist(user_id: str) -> List[dict]:
    query = get_client().table("wishlist").select("id, product_id, created_at, products(*)").eq("user_id", user_id)
    return [_format(r) for r in run(query.order("created_at", desc=True)).data or []]


def add_to_wishlist(user_id: str, product_id: str) -> dict:
    client = get_client()
    existing = first(client.table("wishlist").select("*").eq("user_id", user_id).eq("product_id", product_id))
    if existing:
        return existing
    return run(client.table("wishlist").insert({"user_id": user_id, "product_id": product_id})).data[0]


def remove_from_wishlist(user_id: str, product_id: str) -> None:
    run(get_client().table("wishlist").delete().eq("user_id", user_id).eq("product_id", product_id))
