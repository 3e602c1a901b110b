# freshleap.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
# override=False: les variables déjà positionnées (CI, tests) gardent la priorité
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

"""
Configuration centrale de FreshLeap.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Expose l'URL de la base relationnelle (SQLAlchemy)
- Normalise et expose les secrets/URLs (Supabase Auth, Stripe), sécurité cookies, CORS/hosts
- Fournit les URLs de redirection pour les flux (reset/signup, checkout)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _flag(name: str, default: str = "false") -> bool:
    return _clean_env(os.getenv(name, default)).lower() in ("1", "true", "yes")

# Base de données (SQLAlchemy)
DATABASE_URL = _clean_env(os.getenv("DATABASE_URL") or "sqlite:///./freshleap.db")
DB_ECHO = _flag("DB_ECHO")
DB_AUTO_CREATE = _flag("DB_AUTO_CREATE", "true")

# Supabase Auth: URL et clés (anon/service)
# - SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Cookies / sécurité
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")
SESSION_SECRET_KEY = _clean_env(os.getenv("SESSION_SECRET_KEY") or "replace_me_with_a_long_random_secret")

# CORS (dev)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

# URL publique du front (redirections Stripe et emails)
APP_URL = _clean_env(os.getenv("APP_URL") or os.getenv("NEXT_PUBLIC_APP_URL") or "http://localhost:3000").rstrip("/")

# URLs de redirection post-actions auth
RESET_REDIRECT_URL = os.getenv("RESET_REDIRECT_URL", f"{APP_URL}/reset-password")
SIGNUP_REDIRECT_URL = os.getenv("SIGNUP_REDIRECT_URL", f"{APP_URL}/verify")

# Stripe: clés publiques/privées et secret webhook
STRIPE_PUBLIC_KEY = _clean_env(os.getenv("STRIPE_PUBLIC_KEY") or os.getenv("NEXT_PUBLIC_STRIPE_PUBLISHABLE_KEY") or "")
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")

# Devise et pays de livraison acceptés par le checkout
CURRENCY = _clean_env(os.getenv("CURRENCY") or "usd").lower()
SHIPPING_COUNTRIES = [c.strip().upper() for c in os.getenv("SHIPPING_COUNTRIES", "US,CA,GB,FR").split(",") if c.strip()]

# Pages de succès/annulation du checkout (côté front)
CHECKOUT_SUCCESS_PATH = os.getenv("CHECKOUT_SUCCESS_PATH", "/checkout/success")
CHECKOUT_CANCEL_PATH = os.getenv("CHECKOUT_CANCEL_PATH", "/checkout/cancel")
