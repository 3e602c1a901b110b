import logging
import secrets
from typing import Optional, Dict, Any

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from freshleap.auth.models import AuthResponse, make_auth_response, handle_exception, determine_role
from freshleap.config import SIGNUP_REDIRECT_URL
from freshleap.models import Role, User
from freshleap.users import repository as users_repo
from .repository import (
    auth_sign_in_password as sign_in_password,
    auth_sign_up_account as sign_up_account,
    auth_verify_otp as verify_otp,
    auth_resend_signup as resend_signup,
    auth_send_reset_password as send_reset_password,
    auth_update_user_password as _update_user_password,
    auth_delete_user as _delete_auth_user,
    get_user_from_access_token as _repo_get_user_from_token,
)

logger = logging.getLogger(__name__)

ALREADY_EXISTS_MARKERS = ("already", "registered", "exists", "23505")

# --- Inscription / vérification email ---

def signup(
    db: Session,
    *,
    username: str,
    email: str,
    password: str,
    role: str,
    farm_name: Optional[str] = None,
    farm_location: Optional[str] = None,
    contact_number: Optional[str] = None,
) -> Dict[str, Any]:
    """Inscription:
    - Un producteur doit fournir nom, lieu et téléphone de l'exploitation (400)
    - Email déjà vérifié ou username pris => 409
    - Email connu mais non vérifié => profil mis à jour et nouveau code envoyé
    - Sinon compte GoTrue (email de confirmation avec code) + profil local (+ farmer)
    Retour: {"status_code", "message", "user", "session"}
    """
    email = (email or "").strip().lower()
    username = (username or "").strip()
    role_enum = Role(role)
    farm = None
    if role_enum == Role.farmer:
        if not (farm_name and farm_location and contact_number):
            raise HTTPException(status_code=400, detail="Farm details are required for farmer registration")
        farm = {"farm_name": farm_name.strip(), "farm_location": farm_location.strip(), "contact_number": contact_number.strip()}

    by_username = users_repo.get_user_by_username(db, username)
    if by_username and by_username.email != email:
        raise HTTPException(status_code=409, detail="Username is already taken")

    existing = users_repo.get_user_by_email(db, email)
    if existing and existing.is_verified:
        raise HTTPException(status_code=409, detail="Email already in use")

    if existing:
        return _refresh_unverified_signup(db, existing, username, role_enum, farm)

    try:
        res = sign_up_account(
            email=email,
            password=password,
            options_data={"username": username, "role": role_enum.value},
            email_redirect_to=SIGNUP_REDIRECT_URL,
        )
    except Exception as e:
        msg = str(e).lower()
        if any(k in msg for k in ALREADY_EXISTS_MARKERS):
            raise HTTPException(status_code=409, detail="Email already in use")
        logger.exception("Erreur sign_up")
        raise HTTPException(status_code=400, detail="Sign-up failed")

    auth_user = getattr(res, "user", None)
    uid = getattr(auth_user, "id", None)
    if not uid:
        raise HTTPException(status_code=400, detail="Sign-up failed")

    sess = getattr(res, "session", None)
    # Confirmation email désactivée côté projet Supabase: session immédiate
    verified = bool(sess and getattr(sess, "access_token", None))
    try:
        users_repo.create_user(db, user_id=str(uid), username=username, email=email, role=role_enum, is_verified=verified)
        if farm:
            users_repo.upsert_farmer(db, str(uid), **farm)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("auth.signup profile insert failed email=%s", email)
        _rollback_auth_account(str(uid))
        raise HTTPException(status_code=500, detail="Error registering user")

    logger.info("auth.signup created user_id=%s role=%s verified=%s", uid, role_enum.value, verified)
    result = make_auth_response(res) if verified else None
    return {
        "status_code": 201,
        "message": "User registered successfully" if verified else "User registered successfully. Please verify your account.",
        "user": {"id": str(uid), "email": email, "username": username, "role": role_enum.value},
        "session": result.session if result and result.success else None,
    }

def _refresh_unverified_signup(db: Session, user: User, username: str, role: Role, farm: Optional[Dict[str, str]]) -> Dict[str, Any]:
    user.username = username
    user.role = role
    try:
        if farm:
            users_repo.upsert_farmer(db, user.user_id, **farm)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Username is already taken")
    try:
        resend_signup(user.email, SIGNUP_REDIRECT_URL)
    except Exception:
        logger.exception("Erreur resend (signup existant) email=%s", user.email)
        raise HTTPException(status_code=400, detail="Could not send verification email")
    logger.info("auth.signup refreshed unverified user_id=%s", user.user_id)
    return {
        "status_code": 200,
        "message": "Account exists but is not verified. A new verification code has been sent.",
        "user": {"id": user.user_id, "email": user.email, "username": user.username, "role": role.value},
        "session": None,
    }

def _rollback_auth_account(uid: str) -> None:
    try:
        _delete_auth_user(uid)
    except Exception:
        # Compte GoTrue orphelin: à purger depuis le dashboard Supabase
        logger.exception("auth.signup could not delete auth user uid=%s", uid)

def _find_account(db: Session, email: Optional[str], username: Optional[str]) -> Optional[User]:
    if email:
        return users_repo.get_user_by_email(db, email)
    if username:
        return users_repo.get_user_by_username(db, username)
    return None

def verify_email(db: Session, code: str, email: Optional[str] = None, username: Optional[str] = None) -> AuthResponse:
    """Vérification du code reçu par email (OTP GoTrue type 'signup')."""
    user = _find_account(db, email, username)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.is_verified:
        return AuthResponse(True, message="Email is already verified")

    try:
        res = verify_otp(user.email, code, "signup")
    except Exception:
        logger.warning("auth.verify_email invalid code user_id=%s", user.user_id)
        raise HTTPException(status_code=400, detail="Invalid or expired verification code")

    user.is_verified = True
    db.commit()
    logger.info("auth.verify_email verified user_id=%s", user.user_id)
    result = make_auth_response(res)
    result.success = True
    result.message = "Account verified successfully"
    return result

def resend_verification(db: Session, email: str) -> None:
    user = users_repo.get_user_by_email(db, email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.is_verified:
        raise HTTPException(status_code=400, detail="Email is already verified")
    try:
        resend_signup(user.email, SIGNUP_REDIRECT_URL)
    except Exception:
        logger.exception("Erreur resend email=%s", user.email)
        raise HTTPException(status_code=400, detail="Could not send verification email")

# --- Connexion / mot de passe ---

def login(db: Session, identifier: str, password: str) -> AuthResponse:
    """Connexion par email ou username:
    - username => email via la table users
    - Délègue à supabase.auth.sign_in_with_password
    - Synchronise le profil local (is_verified)
    """
    identifier = (identifier or "").strip()
    email = identifier
    if "@" not in identifier:
        user = users_repo.get_user_by_username(db, identifier)
        if not user:
            return AuthResponse(False, error="Invalid credentials")
        email = user.email
    try:
        res = sign_in_password(email, password)
    except Exception as e:
        return handle_exception("sign_in", e, "Invalid credentials or email not verified")
    result = make_auth_response(res, fallback_error="Invalid credentials or email not verified")
    if result.success:
        profile = sync_user_profile(db, result.user)
        result.user.update({"username": profile.username, "role": profile.role.value})
    return result

def request_password_reset(email: str, redirect_to: str) -> AuthResponse:
    try:
        send_reset_password((email or "").strip(), redirect_to)
        return AuthResponse(True)
    except Exception as e:
        return handle_exception("send_reset_email", e, "Could not send reset email")

def verify_reset_token(email: str, token: str) -> AuthResponse:
    """Échange le code de récupération contre un access token court (OTP 'recovery')."""
    try:
        res = verify_otp((email or "").strip(), (token or "").strip(), "recovery")
    except Exception as e:
        return handle_exception("verify_reset_token", e, "Invalid or expired reset token")
    return make_auth_response(res, fallback_error="Invalid or expired reset token")

def update_password(user_token: str, new_password: str) -> AuthResponse:
    """Mise à jour du mot de passe:
    - Appelle directement GoTrue (httpx PUT sur /auth/v1/user) avec token utilisateur (Bearer)
    - Succès si status HTTP 2xx, sinon extrait un message d'erreur utile
    """
    try:
        resp = _update_user_password(user_token, new_password)

        if 200 <= resp.status_code < 300:
            return AuthResponse(True)

        msg = None
        try:
            body = resp.json()
            msg = body.get("msg") or body.get("message") or body.get("error_description") or body.get("error")
        except ValueError:
            msg = resp.text

        return AuthResponse(False, error=f"Password update failed: {msg or f'status {resp.status_code}'}")
    except Exception as e:
        return handle_exception("update_password", e, "Password update failed")

# --- Intégration sécurité / profil ---

def _available_username(db: Session, base: str) -> str:
    base = (base or "user").strip() or "user"
    candidate = base
    while users_repo.get_user_by_username(db, candidate):
        candidate = f"{base}-{secrets.token_hex(2)}"
    return candidate

def sync_user_profile(db: Session, auth_user: Dict[str, Any]) -> User:
    """Garantit un profil local (table users) pour un compte GoTrue authentifié.
    - Création depuis user_metadata si absent (username dédoublonné)
    - Un compte capable de se connecter a forcément confirmé son email
    """
    uid = auth_user.get("id")
    metadata = auth_user.get("metadata") or auth_user.get("user_metadata") or {}
    profile = users_repo.get_user_by_id(db, uid)
    if profile is None:
        email = auth_user.get("email") or ""
        username = _available_username(db, metadata.get("username") or email.split("@")[0])
        profile = users_repo.create_user(
            db,
            user_id=uid,
            username=username,
            email=email,
            role=Role(determine_role(metadata)),
            is_verified=True,
        )
        db.commit()
        logger.info("auth.sync_profile created user_id=%s", uid)
    elif not profile.is_verified:
        profile.is_verified = True
        db.commit()
    return profile

def get_user_from_token(db: Session, access_token: str) -> Dict[str, Any]:
    """Normalise l'utilisateur issu de supabase.auth.get_user(access_token):
    - Retourne {id, email, username, role, farmer_id, metadata, token}
    - Le rôle vient du profil local (fait foi), créé si besoin
    """
    raw = _repo_get_user_from_token(access_token)
    uid = raw.get("id")
    if not uid:
        return {}
    profile = sync_user_profile(db, raw)
    farmer = users_repo.get_farmer_by_user(db, uid) if profile.role == Role.farmer else None
    return {
        "id": uid,
        "email": profile.email,
        "username": profile.username,
        "role": profile.role.value,
        "farmer_id": farmer.farmer_id if farmer else None,
        "metadata": raw.get("user_metadata") or {},
        "token": access_token,
    }
