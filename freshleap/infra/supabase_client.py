"""
Clients Supabase paresseux. Supabase ne sert qu'à l'identité (GoTrue):
catalogue, paniers et commandes vivent dans la base SQLAlchemy.
"""
from functools import lru_cache

from supabase import Client, create_client

from freshleap.config import SUPABASE_ANON, SUPABASE_SERVICE_KEY, SUPABASE_URL


def _build(key: str, key_name: str) -> Client:
    if not SUPABASE_URL or not key:
        raise RuntimeError(f"Configuration Supabase incomplète: SUPABASE_URL et {key_name} requis")
    return create_client(SUPABASE_URL, key)


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """Client anonyme: inscription, connexion, OTP."""
    return _build(SUPABASE_ANON, "SUPABASE_ANON_KEY")


@lru_cache(maxsize=1)
def get_service_supabase() -> Client:
    """Client service role: administration des comptes (suppression d'un compte orphelin)."""
    return _build(SUPABASE_SERVICE_KEY, "SUPABASE_SERVICE_KEY")
