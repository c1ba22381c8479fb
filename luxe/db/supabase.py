import logging

from postgrest.exceptions import APIError
from supabase import create_client

from luxe.core import config
from luxe.core.errors import Conflict, StoreError

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"

supabase = None


def get_client():
    global supabase
    if supabase is None:
        key = config.SUPABASE_SERVICE_KEY or config.SUPABASE_ANON_KEY
        if not config.SUPABASE_URL or not key:
            raise RuntimeError("Supabase URL/Key not configured. See .env")
        supabase = create_client(config.SUPABASE_URL, key)
    return supabase


def auth_client():
    """A fresh client for sign-up and sign-in.

    Signing in swaps the client's Authorization header for the user's token,
    so it must never happen on the shared service client.
    """
    key = config.SUPABASE_ANON_KEY or config.SUPABASE_SERVICE_KEY
    if not config.SUPABASE_URL or not key:
        raise RuntimeError("Supabase URL/Key not configured. See .env")
    return create_client(config.SUPABASE_URL, key)


def run(query):
    """Execute a PostgREST query, translating database errors."""
    try:
        return query.execute()
    except APIError as e:
        if e.code == UNIQUE_VIOLATION:
            raise Conflict(e.message or "Already exists") from e
        logger.error("Supabase query failed: %s", e.message)
        raise StoreError("DB error") from e


def first(query):
    res = run(query.limit(1))
    return res.data[0] if res.data else None
