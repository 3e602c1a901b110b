"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
Toutes les fonctions retournent des dict Python (récursifs) pour découpler le reste du code du SDK.
"""
import stripe
from typing import Any, Dict, List, Optional
from fastapi import Request
from freshleap.config import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET

# module freshleap.checkout.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY.
    - Sans clé, les appels Stripe échouent côté SDK (AuthenticationError).
    """
    if STRIPE_SECRET_KEY:
        stripe.api_key = STRIPE_SECRET_KEY
    return stripe

def _to_dict(obj: Any) -> Dict[str, Any]:
    if obj is None:
        return {}
    if hasattr(obj, "to_dict_recursive"):
        return obj.to_dict_recursive()
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)

def create_session(
    *,
    line_items: List[Dict[str, Any]],
    success_url: str,
    cancel_url: str,
    metadata: Dict[str, Any],
    client_reference_id: Optional[str] = None,
    shipping_countries: Optional[List[str]] = None,
    mode: str = "payment",
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout (paiement unique, carte).
    - Adresse de livraison collectée (pays autorisés) et adresse de facturation requise.
    - client_reference_id: id de l'utilisateur connecté (absent pour un invité).
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    params: Dict[str, Any] = {
        "line_items": line_items,
        "mode": mode,
        "payment_method_types": ["card"],
        "success_url": success_url,
        "cancel_url": cancel_url,
        "metadata": metadata,
        "billing_address_collection": "required",
    }
    if shipping_countries:
        params["shipping_address_collection"] = {"allowed_countries": shipping_countries}
    if client_reference_id:
        params["client_reference_id"] = client_reference_id
    session = stripe.checkout.Session.create(**params)
    return _to_dict(session)

def get_session(session_id: str) -> Dict[str, Any]:
    """
    Récupère une session Checkout avec son payment_intent développé.
    Retour: dict incluant "id", "payment_status", "amount_total", "payment_intent", etc.
    """
    require_stripe()
    session = stripe.checkout.Session.retrieve(session_id, expand=["payment_intent"])
    return _to_dict(session)

def list_line_items(session_id: str) -> List[Dict[str, Any]]:
    """
    Liste les lignes d'une session avec le produit Stripe développé
    (price.product.metadata.product_id).
    """
    require_stripe()
    res = stripe.checkout.Session.list_line_items(
        session_id,
        limit=100,
        expand=["data.price.product"],
    )
    return list(_to_dict(res).get("data") or [])

async def parse_event(request: Request) -> Dict[str, Any]:
    """
    Parse et valide un événement Stripe signé (webhook).
    - Lit le body brut + en-tête Stripe-Signature
    - Valide la signature via Webhook.construct_event (STRIPE_WEBHOOK_SECRET)
    """
    require_stripe()
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature") or ""
    event = stripe.Webhook.construct_event(payload, sig_header, STRIPE_WEBHOOK_SECRET or "")
    return _to_dict(event)
