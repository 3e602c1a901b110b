"""
Identification de l'appelant: jeton Bearer (API) ou cookie httpOnly fl_access (navigateur).
"""
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from freshleap.auth import service as auth_service
from freshleap.config import COOKIE_SECURE
from freshleap.infra.database import get_db

COOKIE_NAME = "fl_access"
SESSION_MAX_AGE = 3600
EXPIRED_DETAIL = "Session expired, please sign in again"


def set_session_cookie(response: Response, access_token: str) -> None:
    response.set_cookie(
        COOKIE_NAME,
        access_token,
        max_age=SESSION_MAX_AGE,
        path="/",
        secure=COOKIE_SECURE,
        httponly=True,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(COOKIE_NAME, path="/")


def bearer_token(request: Request) -> Optional[str]:
    """Le header Authorization l'emporte sur le cookie."""
    scheme, _, value = request.headers.get("Authorization", "").partition(" ")
    if scheme == "Bearer" and value.strip():
        return value.strip()
    return request.cookies.get(COOKIE_NAME) or None


def get_current_user(request: Request, db: Session = Depends(get_db)) -> Dict[str, Any]:
    token = bearer_token(request)
    if token is None:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        user = auth_service.get_user_from_token(db, token)
    except HTTPException:
        raise
    except Exception:
        raise HTTPException(status_code=401, detail=EXPIRED_DETAIL)
    if not user or not user.get("id"):
        raise HTTPException(status_code=401, detail=EXPIRED_DETAIL)
    return user


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> Optional[Dict[str, Any]]:
    """None pour un visiteur ou une session invalide."""
    if bearer_token(request) is None:
        return None
    try:
        return get_current_user(request, db)
    except HTTPException:
        return None


def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user


def require_farmer(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != "farmer" or not user.get("farmer_id"):
        raise HTTPException(status_code=403, detail="Farmer account required")
    return user
