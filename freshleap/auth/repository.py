"""
Accès GoTrue (Supabase Auth). Aucune logique métier ici: le service
traduit les réponses en AuthResponse et synchronise le profil local.
"""
from typing import Any, Dict, Optional

import httpx

from freshleap.config import SUPABASE_ANON, SUPABASE_URL
from freshleap.infra.supabase_client import get_service_supabase, get_supabase

GOTRUE_TIMEOUT = 10


def _with_options(payload: Dict[str, Any], **options: Any) -> Dict[str, Any]:
    opts = {k: v for k, v in options.items() if v}
    if opts:
        payload["options"] = opts
    return payload


def auth_sign_in_password(email: str, password: str):
    return get_supabase().auth.sign_in_with_password({"email": email, "password": password})


def auth_sign_up_account(
    email: str,
    password: str,
    options_data: Optional[Dict[str, Any]] = None,
    email_redirect_to: Optional[str] = None,
):
    """
    Crée le compte GoTrue; `options_data` devient user_metadata (username, role).
    Le template d'email doit contenir {{ .Token }} (code à 6 chiffres).
    """
    payload = _with_options(
        {"email": email, "password": password},
        data=options_data,
        email_redirect_to=email_redirect_to,
    )
    return get_supabase().auth.sign_up(payload)


def auth_verify_otp(email: str, token: str, otp_type: str):
    # otp_type: "signup" (vérification) ou "recovery" (mot de passe oublié)
    return get_supabase().auth.verify_otp({"email": email, "token": token, "type": otp_type})


def auth_resend_signup(email: str, email_redirect_to: Optional[str] = None):
    payload = _with_options({"type": "signup", "email": email}, email_redirect_to=email_redirect_to)
    return get_supabase().auth.resend(payload)


def auth_send_reset_password(email: str, redirect_to: str):
    return get_supabase().auth.reset_password_for_email(email, options={"redirect_to": redirect_to})


def auth_update_user_password(user_token: str, new_password: str) -> httpx.Response:
    """PUT /auth/v1/user au nom de l'utilisateur (jeton issu du code de reset)."""
    return httpx.put(
        f"{SUPABASE_URL.rstrip('/')}/auth/v1/user",
        json={"password": new_password},
        headers={"Authorization": f"Bearer {user_token}", "apikey": SUPABASE_ANON},
        timeout=GOTRUE_TIMEOUT,
    )


def auth_delete_user(user_id: str):
    return get_service_supabase().auth.admin.delete_user(user_id)


def get_user_from_access_token(access_token: str) -> Dict[str, Any]:
    """Utilisateur GoTrue du jeton, sous forme de dict (vide si inconnu)."""
    user = getattr(get_supabase().auth.get_user(access_token), "user", None)
    if not user:
        return {}
    if isinstance(user, dict):
        return user
    return {key: getattr(user, key, None) for key in ("id", "email", "user_metadata")}
