import logging
from typing import Any, Dict, List, Optional

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from freshleap.cart.service import get_cart_store
from freshleap.cart.store import CartStore
from freshleap.infra.database import get_db
from freshleap.utils.rate_limit import optional_rate_limit
from freshleap.utils.security import get_optional_user
from . import service as checkout_service
from . import stripe_client

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/checkout", tags=["Checkout API"])

RECONCILE_EVENTS = {"checkout.session.completed", "checkout.session.async_payment_succeeded"}


class CheckoutLine(BaseModel):
    # Lignes sans produit ou de quantité <= 0 ignorées par aggregate_quantities
    product_id: Optional[str] = None
    quantity: Optional[int] = None
    # Informatifs: le catalogue fait foi pour le nom et le prix
    name: Optional[str] = None
    description: Optional[str] = None
    unit_price: Optional[int] = None


class CheckoutRequest(BaseModel):
    lineItems: List[CheckoutLine] = Field(default_factory=list)
    # Accepté pour compatibilité, jamais lu: l'utilisateur vient de la session
    metadata: Dict[str, Any] = Field(default_factory=dict)


# module freshleap.checkout.views
@router.post("", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_checkout_session(
    body: Optional[CheckoutRequest] = None,
    store: CartStore = Depends(get_cart_store),
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """
    Crée une session Checkout Stripe.
    - Entrée JSON: {"lineItems": [{"product_id", "quantity"}, ...], "metadata": {...}}
    - metadata est ignoré: client_reference_id ne vient que de l'utilisateur authentifié.
    - Lignes invalides ignorées; 400 si aucune ligne valide.
    - Sans lineItems: le panier de la requête (CartStore) est utilisé.
    - Visiteurs acceptés (commande invitée), rate limit 10 req / 60s.
    - Sortie: {"sessionId", "url"}
    """
    try:
        if body and body.metadata:
            logger.info("checkout.create client metadata ignored keys=%s", sorted(body.metadata))
        items = [line.model_dump() for line in (body.lineItems if body else [])]
        if not items:
            items = store.checkout_lines()
        return checkout_service.create_checkout_session(db, items=items, user=user)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Erreur create_checkout_session")
        raise HTTPException(status_code=500, detail="Failed to create checkout session")


@router.get("")
def verify_checkout_session(
    session_id: Optional[str] = None,
    store: CartStore = Depends(get_cart_store),
    db: Session = Depends(get_db),
):
    """
    Réconcilie la session au retour de Stripe (?session_id=...).
    - 400: session_id absent ou paiement non finalisé
    - 404: session inconnue chez Stripe
    - 422: ligne payée non rattachable à un produit (rien n'est écrit)
    - Rejouable: un second appel renvoie la même commande.
    """
    try:
        order, created = checkout_service.reconcile_session(db, session_id)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Erreur verify_checkout_session session_id=%s", session_id)
        raise HTTPException(status_code=500, detail="Failed to verify and create order")
    if created:
        store.clear()
    return checkout_service.serialize_result(order, created)


@router.post("/webhook", include_in_schema=False)
async def checkout_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Webhook Stripe: checkout.session.completed => même réconciliation que le retour navigateur.
    - Signature vérifiée (Stripe-Signature + STRIPE_WEBHOOK_SECRET)
    - Réponses: {"status": "ok", "created": bool, "order_id"} ou {"status": "ignored"}
    """
    try:
        event = await stripe_client.parse_event(request)
    except (ValueError, stripe.SignatureVerificationError):
        logger.warning("checkout.webhook invalid signature or payload")
        raise HTTPException(status_code=400, detail="Invalid Stripe webhook payload")

    event_type = (event or {}).get("type")
    if event_type not in RECONCILE_EVENTS:
        return JSONResponse({"status": "ignored"})

    session = ((event.get("data") or {}).get("object")) or {}
    if session.get("payment_status") != "paid":
        # Paiement différé: on attend async_payment_succeeded
        return JSONResponse({"status": "ignored"})

    try:
        order, created = await run_in_threadpool(checkout_service.reconcile_session, db, session.get("id"))
    except HTTPException:
        raise
    except Exception:
        logger.exception("Erreur checkout_webhook event=%s", event.get("id"))
        raise HTTPException(status_code=500, detail="Failed to verify and create order")
    logger.info("checkout.webhook created=%s order_id=%s session_id=%s", created, order.order_id, session.get("id"))
    return JSONResponse({"status": "ok", "created": created, "order_id": order.order_id})
