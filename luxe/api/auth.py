import logging

from fastapi import APIRouter, Depends
from supabase import AuthError

from luxe.api.deps import get_current_user
from luxe.core.errors import InvalidInput, NotAuthenticated
from luxe.db.supabase import auth_client
from luxe.models.schemas import Token, UserCreate, UserLogin

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/signup")
def signup(payload: UserCreate):
    try:
        res = auth_client().auth.sign_up({
            "email": payload.email,
            "password": payload.password,
            "options": {"data": {"full_name": payload.full_name}},
        })
    except AuthError as e:
        logger.info("Sign-up rejected for %s: %s", payload.email, e)
        raise InvalidInput(str(e)) from e

    if res.session is None:
        # email confirmation pending
        return {"user_id": res.user.id if res.user else None, "confirmation_required": True}
    return Token(access_token=res.session.access_token, user_id=res.user.id)


@router.post("/login", response_model=Token)
def login(payload: UserLogin):
    try:
        res = auth_client().auth.sign_in_with_password({"email": payload.email, "password": payload.password})
    except AuthError as e:
        raise NotAuthenticated("Invalid credentials") from e
    return Token(access_token=res.session.access_token, user_id=res.user.id)


@router.get("/me")
def me(user=Depends(get_current_user)):
    return user
