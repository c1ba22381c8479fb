import logging
import re
from typing import List, Optional

import httpx

from luxe.core import config
from luxe.core.errors import Conflict, InvalidInput, NotFound, UpstreamError
from luxe.db.supabase import first, get_client, run

logger = logging.getLogger(__name__)

PINCODE_RE = re.compile(r"^[0-9]{6}$")


def is_valid_pincode(pincode: Optional[str]) -> bool:
    return bool(pincode) and PINCODE_RE.match(pincode) is not None


def check_serviceability(pincode: str) -> dict:
    if not is_valid_pincode(pincode):
        return {"available": False, "message": "Please enter a valid 6-digit pincode"}

    row = first(
        get_client().table("serviceable_pincodes").select("*")
        .eq("pincode", pincode).eq("is_active", True)
    )
    if not row:
        return {"available": False, "message": "Sorry, delivery is not available to this pincode"}

    info = {k: row.get(k) for k in ("pincode", "city", "state", "delivery_days", "cod_available")}
    return {
        "available": True,
        "info": info,
        "message": f"Delivery available to {row.get('city')}, {row.get('state')}",
    }


async def lookup_postal(pincode: str, http_client: Optional[httpx.AsyncClient] = None) -> Optional[dict]:
    """City/state for a pincode from the India Post API, or None."""
    if not is_valid_pincode(pincode):
        raise InvalidInput("Please enter a valid 6-digit pincode")

    client = http_client or httpx.AsyncClient(timeout=10.0)
    try:
        r = await client.get(f"{config.POSTAL_API_URL}/{pincode}")
        r.raise_for_status()
        data = r.json()
    except httpx.HTTPError as e:
        logger.warning("Postal lookup failed for %s: %s", pincode, e)
        raise UpstreamError("Pincode lookup unavailable") from e
    finally:
        if http_client is None:
            await client.aclose()

    entry = data[0] if isinstance(data, list) and data else {}
    offices = entry.get("PostOffice") or []
    if entry.get("Status") != "Success" or not offices:
        return None
    office = offices[0]
    return {"pincode": pincode, "city": office.get("District"), "state": office.get("State")}


# --- Admin ---

def list_pincodes(search: Optional[str] = None) -> List[dict]:
    rows = run(get_client().table("serviceable_pincodes").select("*").order("pincode")).data or []
    if search:
        q = search.lower()
        rows = [r for r in rows if q in r["pincode"] or q in (r.get("city") or "").lower()
                or q in (r.get("state") or "").lower()]
    return rows


def create_pincode(data: dict) -> dict:
    if not is_valid_pincode(data.get("pincode")):
        raise InvalidInput("Please enter a valid 6-digit pincode")
    try:
        return run(get_client().table("serviceable_pincodes").insert(data)).data[0]
    except Conflict as e:
        raise Conflict("This pincode already exists") from e


def update_pincode(pincode_id: str, data: dict) -> dict:
    if "pincode" in data and not is_valid_pincode(data["pincode"]):
        raise InvalidInput("Please enter a valid 6-digit pincode")
    res = run(get_client().table("serviceable_pincodes").update(data).eq("id", pincode_id))
    if not res.data:
        raise NotFound("Pincode not found")
    return res.data[0]


def toggle_pincode(pincode_id: str) -> dict:
    row = first(get_client().table("serviceable_pincodes").select("*").eq("id", pincode_id))
    if not row:
        raise NotFound("Pincode not found")
    return update_pincode(pincode_id, {"is_active": not row.get("is_active")})


def delete_pincode(pincode_id: str) -> None:
    run(get_client().table("serviceable_pincodes").delete().eq("id", pincode_id))
