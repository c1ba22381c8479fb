from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from luxe.api.deps import get_current_user
from luxe.models.schemas import RecentlyViewedIn, ReviewIn
from luxe.services import catalog

router = APIRouter()


@router.get("/")
def list_products(
    search: Optional[str] = None,
    category: Optional[str] = None,
    featured: bool = False,
    on_sale: bool = False,
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    in_stock: bool = False,
    min_discount: int = Query(0, ge=0, le=100),
    sort: str = "newest",
    limit: Optional[int] = Query(None, ge=1, le=200),
):
    return catalog.list_products(
        search=search, category=category, featured=featured, on_sale=on_sale,
        min_price=min_price, max_price=max_price, in_stock=in_stock,
        min_discount=min_discount, sort=sort, limit=limit,
    )


@router.get("/categories")
def list_categories():
    return catalog.list_categories()


@router.get("/compare")
def compare(ids: List[str] = Query(...)):
    # accept both ?ids=a&ids=b and ?ids=a,b
    flat = [i for chunk in ids for i in chunk.split(",") if i]
    return catalog.compare_products(flat)


@router.post("/recently-viewed")
def recently_viewed(payload: RecentlyViewedIn):
    items = [i.model_dump(mode="json") for i in payload.items]
    return catalog.remember_viewed(payload.item.model_dump(mode="json"), items)


@router.get("/{id_or_slug}")
def get_product(id_or_slug: str):
    return catalog.get_product(id_or_slug)


@router.get("/{product_id}/reviews")
def list_reviews(product_id: str):
    return catalog.list_reviews(product_id)


@router.post("/{product_id}/reviews", status_code=201)
def add_review(product_id: str, payload: ReviewIn, user=Depends(get_current_user)):
    return catalog.add_review(product_id, user["id"], payload.rating, payload.comment)
