import hmac
import logging
from typing import Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from luxe.core import config
from luxe.core.errors import Forbidden, NotAuthenticated
from luxe.core.security import decode_token
from luxe.db.supabase import first, get_client

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


def is_admin(user_id: str) -> bool:
    role = first(get_client().table("user_roles").select("id").eq("user_id", user_id).eq("role", "admin"))
    return role is not None


def user_from_token(token: str) -> dict:
    claims = decode_token(token)
    uid = claims.get("sub")
    if not uid:
        raise NotAuthenticated("Invalid token")
    meta = claims.get("user_metadata") or {}
    return {
        "id": uid,
        "email": claims.get("email"),
        "full_name": meta.get("full_name"),
        "is_admin": is_admin(uid),
    }


def get_optional_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer)) -> Optional[dict]:
    if creds is None:
        return None
    return user_from_token(creds.credentials)


def get_current_user(user: Optional[dict] = Depends(get_optional_user)) -> dict:
    if user is None:
        raise NotAuthenticated("Not authenticated")
    return user


def get_admin_user(user: dict = Depends(get_current_user)) -> dict:
    if not user["is_admin"]:
        raise Forbidden("Admin role required")
    return user


def require_cron_secret(x_cron_secret: Optional[str] = Header(None)) -> None:
    if not config.CRON_SECRET:
        logger.error("CRON_SECRET is not configured; refusing job request")
        raise Forbidden("Jobs are disabled")
    if not x_cron_secret or not hmac.compare_digest(x_cron_secret, config.CRON_SECRET):
        raise Forbidden("Invalid cron secret")
