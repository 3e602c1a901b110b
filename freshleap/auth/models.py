"""
Résultats d'authentification normalisés (indépendants du SDK GoTrue).
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class AuthResponse:
    success: bool
    user: Optional[Dict[str, Any]] = None
    session: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    message: Optional[str] = None

    @property
    def access_token(self) -> Optional[str]:
        return (self.session or {}).get("access_token")

    @property
    def refresh_token(self) -> Optional[str]:
        return (self.session or {}).get("refresh_token")


def _field(obj: Any, name: str) -> Any:
    # Objets pydantic du SDK ou dicts (webhooks, tests)
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def determine_role(metadata: Optional[Dict[str, Any]]) -> str:
    """Rôle déclaré à l'inscription: "farmer" ou, par défaut, "customer"."""
    declared = str((metadata or {}).get("role") or "").strip().lower()
    return "farmer" if declared == "farmer" else "customer"


def build_user_dict(user: Any) -> Dict[str, Any]:
    metadata = _field(user, "user_metadata") or {}
    return {
        "id": _field(user, "id"),
        "email": _field(user, "email"),
        "metadata": metadata,
        "role": determine_role(metadata),
    }


def build_session_dict(session: Any) -> Dict[str, Any]:
    return {key: _field(session, key) for key in ("access_token", "refresh_token")}


def make_auth_response(res: Any, fallback_error: str = "Invalid credentials") -> AuthResponse:
    session = _field(res, "session")
    if not session or not _field(session, "access_token"):
        return AuthResponse(False, error=fallback_error)
    return AuthResponse(True, user=build_user_dict(_field(res, "user")), session=build_session_dict(session))


def handle_exception(action: str, e: Exception, public_error: str) -> AuthResponse:
    # Détail GoTrue journalisé, message stable côté client
    logger.warning("auth.%s failed error=%s", action, type(e).__name__, exc_info=True)
    return AuthResponse(False, error=public_error)
