"""Cancel orders that never received a payment reference.

Run from cron with ``python -m luxe.services.stale_orders`` or hit
``POST /api/admin/jobs/cancel-stale-orders`` with the ``X-Cron-Secret`` header.
"""
import argparse
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from luxe.core import config
from luxe.core.errors import StoreError
from luxe.db.supabase import first, get_client, run

logger = logging.getLogger(__name__)


def _release_coupon(order: dict) -> None:
    client = get_client()
    coupon = first(client.table("coupons").select("id, used_count").eq("code", order["coupon_code"]))
    if coupon and (coupon.get("used_count") or 0) > 0:
        run(client.table("coupons").update({"used_count": coupon["used_count"] - 1}).eq("id", coupon["id"]))
    run(client.table("coupon_usage").delete().eq("order_id", order["id"]))


def cancel_stale_orders(now: Optional[datetime] = None, minutes: Optional[int] = None) -> dict:
    now = now or datetime.now(timezone.utc)
    minutes = config.STALE_ORDER_MINUTES if minutes is None else minutes
    cutoff = (now - timedelta(minutes=minutes)).isoformat()
    client = get_client()

    stale = run(
        client.table("orders").select("id, created_at, coupon_code")
        .eq("status", "awaiting_payment").lt("created_at", cutoff)
    ).data or []
    if not stale:
        logger.info("No stale orders found")
        return {"success": True, "message": "No stale orders to cancel", "cancelled": 0, "orderIds": []}

    logger.info("Found %d stale orders to cancel", len(stale))
    cancelled = []
    for order in stale:
        try:
            run(client.table("orders").update({"status": "cancelled"}).eq("id", order["id"]))
        except StoreError as e:
            logger.error("Failed to cancel order %s: %s", order["id"], e.detail)
            continue
        cancelled.append(order["id"])
        if order.get("coupon_code"):
            try:
                _release_coupon(order)
            except StoreError as e:
                logger.error("Failed to release coupon for order %s: %s", order["id"], e.detail)
        logger.info("Cancelled stale order %s", order["id"])

    return {
        "success": True,
        "message": f"Cancelled {len(cancelled)} stale order(s)",
        "cancelled": len(cancelled),
        "orderIds": cancelled,
    }


def main(argv=None):
    parser = argparse.ArgumentParser(description="Cancel unpaid orders older than the cutoff")
    parser.add_argument("--minutes", type=int, default=config.STALE_ORDER_MINUTES)
    args = parser.parse_args(argv)
    logging.basicConfig(level=config.LOG_LEVEL)
    print(json.dumps(cancel_stale_orders(minutes=args.minutes)))


if __name__ == "__main__":
    main()
