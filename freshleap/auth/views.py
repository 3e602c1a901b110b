from fastapi import APIRouter, HTTPException, Depends, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from sqlalchemy.orm import Session
from typing import Optional, Dict, Any

from freshleap.config import RESET_REDIRECT_URL
from freshleap.infra.database import get_db
from freshleap.models import Role
from freshleap.utils.rate_limit import optional_rate_limit
from freshleap.utils.security import require_user, set_session_cookie, clear_session_cookie
from freshleap.utils.validators import (
    validate_contact_number,
    validate_password_strength,
    validate_username,
    validate_verification_code,
)
from . import service as auth_service

# --- API Router (/api/v1/auth) ---

api_router = APIRouter(prefix="/api/v1/auth", tags=["Auth API"])

class LoginRequest(BaseModel):
    # email ou username
    identifier: str = Field(min_length=1)
    password: str

class SignupRequest(BaseModel):
    username: str
    email: EmailStr
    password: str = Field(min_length=8)
    role: Role = Role.customer
    farmName: Optional[str] = None
    farmLocation: Optional[str] = None
    contactNumber: Optional[str] = None

    @field_validator("username")
    def username_ok(cls, v: str) -> str:
        return validate_username(v)

    @field_validator("password")
    def password_strength(cls, v: str) -> str:
        return validate_password_strength(v)

    @field_validator("contactNumber")
    def contact_ok(cls, v: Optional[str]) -> Optional[str]:
        return validate_contact_number(v) if v else v

class VerifyEmailRequest(BaseModel):
    email: Optional[EmailStr] = None
    username: Optional[str] = None
    code: str

    @field_validator("code")
    def code_ok(cls, v: str) -> str:
        return validate_verification_code(v)

    @model_validator(mode="after")
    def needs_identity(self):
        if not self.email and not self.username:
            raise ValueError("email or username is required")
        return self

class EmailRequest(BaseModel):
    email: EmailStr

class VerifyResetTokenRequest(BaseModel):
    email: EmailStr
    token: str = Field(min_length=1)

class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(min_length=8)

    @field_validator("new_password")
    def password_strength(cls, v: str) -> str:
        return validate_password_strength(v)

@api_router.post("/signup", dependencies=[Depends(optional_rate_limit(times=3, seconds=60))])
def api_signup(req: SignupRequest, db: Session = Depends(get_db)):
    """Inscription (API JSON).
    - 201: compte créé, code de vérification envoyé par email
    - 200: compte non vérifié existant, nouveau code envoyé
    - 400: détails d'exploitation manquants pour un producteur
    - 409: email déjà vérifié ou username pris
    """
    result = auth_service.signup(
        db,
        username=req.username,
        email=req.email,
        password=req.password,
        role=req.role.value,
        farm_name=req.farmName,
        farm_location=req.farmLocation,
        contact_number=req.contactNumber,
    )
    body = {"success": True, "message": result["message"], "user": result["user"]}
    response = JSONResponse(status_code=result["status_code"], content=body)
    session = result.get("session") or {}
    if session.get("access_token"):
        set_session_cookie(response, session["access_token"])
    return response

@api_router.post("/verify-email", dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
def api_verify_email(req: VerifyEmailRequest, response: Response, db: Session = Depends(get_db)):
    result = auth_service.verify_email(db, req.code, email=req.email, username=req.username)
    if result.access_token:
        set_session_cookie(response, result.access_token)
    return {"success": True, "message": result.message}

@api_router.post("/resend-verification", dependencies=[Depends(optional_rate_limit(times=3, seconds=60))])
def api_resend_verification(req: EmailRequest, db: Session = Depends(get_db)):
    auth_service.resend_verification(db, req.email)
    return {"success": True, "message": "Verification code sent"}

@api_router.post("/login", dependencies=[Depends(optional_rate_limit(times=3, seconds=60))])
def api_login(req: LoginRequest, response: Response, db: Session = Depends(get_db)):
    """Connexion (API JSON).
    - Rate limit: 3 requêtes par 60 secondes.
    - Pose le cookie de session HttpOnly et renvoie {access_token, token_type, user}.
    """
    result = auth_service.login(db, req.identifier, req.password)
    if not result.success:
        raise HTTPException(status_code=401, detail=result.error or "Invalid credentials")
    if result.access_token:
        set_session_cookie(response, result.access_token)
    return {"access_token": result.access_token, "token_type": "bearer", "user": result.user}

@api_router.get("/me")
def api_me(user: Dict[str, Any] = Depends(require_user)):
    """Utilisateur courant (id, email, username, rôle, farmer_id) après contrôle de session."""
    return {k: user.get(k) for k in ("id", "email", "username", "role", "farmer_id")}

@api_router.post("/logout")
def api_logout(response: Response):
    """Supprime le cookie de session et renvoie un message JSON."""
    clear_session_cookie(response)
    return {"message": "Signed out successfully"}

@api_router.post("/forgot-password", dependencies=[Depends(optional_rate_limit(times=3, seconds=60))])
def api_forgot_password(req: EmailRequest):
    result = auth_service.request_password_reset(req.email, RESET_REDIRECT_URL)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error or "Could not send reset email")
    return {"message": "If an account exists for this email, a reset code has been sent"}

@api_router.post("/verify-reset-token", dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
def api_verify_reset_token(req: VerifyResetTokenRequest):
    result = auth_service.verify_reset_token(req.email, req.token)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error or "Invalid or expired reset token")
    return {"token": result.access_token}

@api_router.post("/reset-password", dependencies=[Depends(optional_rate_limit(times=3, seconds=60))])
def api_reset_password(body: ResetPasswordRequest):
    """Met à jour le mot de passe via GoTrue (httpx PUT sur /auth/v1/user) avec le token de reset."""
    token = (body.token or "").strip()
    if not token:
        raise HTTPException(status_code=400, detail="Missing token")
    result = auth_service.update_password(token, body.new_password)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error or "Password update failed")
    return {"message": "Password updated successfully"}
