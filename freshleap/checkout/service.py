"""
Cas d'usage 'checkout': création de session Stripe et réconciliation en commande.

Réconciliation (retour Stripe ou webhook):
  1) session déjà réconciliée => commande existante renvoyée (idempotent)
  2) session Stripe relue, payment_status doit valoir "paid"
  3) chaque ligne Stripe est rattachée à un produit via price.product.metadata.product_id
  4) Order + OrderItems + décréments de stock dans UNE transaction
  5) la contrainte unique orders.stripe_session_id arbitre les réconciliations concurrentes
"""
import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

import stripe
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from freshleap.config import APP_URL, CHECKOUT_CANCEL_PATH, CHECKOUT_SUCCESS_PATH, SHIPPING_COUNTRIES
from freshleap.models import Order, is_uuid
from freshleap.orders import repository as orders_repo
from freshleap.products import repository as products_repo
from . import line_items as checkout_lines
from . import stripe_client

logger = logging.getLogger(__name__)

ADDRESS_PLACEHOLDER = "Address not provided"


def _success_url() -> str:
    sep = "&" if "?" in CHECKOUT_SUCCESS_PATH else "?"
    return f"{APP_URL}{CHECKOUT_SUCCESS_PATH}{sep}session_id={{CHECKOUT_SESSION_ID}}"


def _cancel_url() -> str:
    return f"{APP_URL}{CHECKOUT_CANCEL_PATH}"


# --- Initiateur de session ---

def create_checkout_session(
    db: Session,
    *,
    items: List[Dict[str, Any]],
    user: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Crée la session Stripe hébergée pour des lignes {product_id, quantity}.
    - Le catalogue fait foi pour le nom et le prix.
    - client_reference_id = id de l'utilisateur authentifié uniquement.
    Retour: {"sessionId", "url"}
    """
    quantities = checkout_lines.aggregate_quantities(items)
    products = products_repo.get_products_map(db, quantities.keys())
    checkout_lines.check_availability(products, quantities)
    line_items = checkout_lines.to_line_items(products, quantities)

    user_id = (user or {}).get("id")
    metadata = checkout_lines.make_metadata(user_id, quantities)

    try:
        session = stripe_client.create_session(
            line_items=line_items,
            success_url=_success_url(),
            cancel_url=_cancel_url(),
            metadata=metadata,
            client_reference_id=user_id,
            shipping_countries=SHIPPING_COUNTRIES,
        )
    except stripe.StripeError:
        logger.exception("checkout.create_session stripe error user_id=%s", user_id)
        raise HTTPException(status_code=500, detail="Failed to create checkout session")

    session_id = session.get("id")
    if not session_id:
        logger.error("checkout.create_session no id returned user_id=%s", user_id)
        raise HTTPException(status_code=500, detail="Failed to create checkout session")

    logger.info(
        "checkout.create_session session_id=%s items=%s user_id=%s",
        session_id, len(line_items), user_id or "guest",
    )
    return {"sessionId": session_id, "url": session.get("url")}


# --- Réconciliation: helpers purs ---

def resolve_user_id(client_reference_id: Optional[str]) -> str:
    """client_reference_id si c'est un UUID, sinon identifiant invité frais."""
    if is_uuid(client_reference_id):
        return client_reference_id
    return str(uuid4())


def format_address(address: Optional[Dict[str, Any]]) -> str:
    """'line1, line2, city, state postal_code, country' (parties vides ignorées)."""
    if not address:
        return ""
    region = " ".join(p for p in (address.get("state"), address.get("postal_code")) if p)
    parts = [
        address.get("line1"),
        address.get("line2"),
        address.get("city"),
        region,
        address.get("country"),
    ]
    return ", ".join(str(p).strip() for p in parts if p and str(p).strip())


def extract_shipping_address(session: Dict[str, Any]) -> str:
    """
    Ordre de priorité: livraison du payment_intent, livraison de la session,
    adresse du client (customer_details), puis libellé par défaut.
    """
    candidates = []
    payment_intent = session.get("payment_intent")
    if isinstance(payment_intent, dict):
        candidates.append((payment_intent.get("shipping") or {}).get("address"))
    candidates.append((session.get("shipping_details") or {}).get("address"))
    collected = session.get("collected_information") or {}
    candidates.append((collected.get("shipping_details") or {}).get("address"))
    candidates.append((session.get("customer_details") or {}).get("address"))

    for address in candidates:
        formatted = format_address(address)
        if formatted:
            return formatted
    return ADDRESS_PLACEHOLDER


def line_item_product_id(item: Dict[str, Any]) -> Optional[str]:
    price = item.get("price") or {}
    product = price.get("product")
    if not isinstance(product, dict):
        return None
    return (product.get("metadata") or {}).get("product_id") or None


def line_item_unit_price(item: Dict[str, Any]) -> int:
    qty = int(item.get("quantity") or 0)
    unit_amount = (item.get("price") or {}).get("unit_amount")
    if unit_amount is not None:
        return int(unit_amount) // 100
    if qty <= 0:
        return 0
    return int(item.get("amount_total") or 0) // qty // 100


def map_line_items(db: Session, session_id: str, raw_items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Convertit les lignes Stripe en lignes de commande.
    Toute ligne non rattachable (pas de product_id, produit supprimé, quantité nulle)
    annule la réconciliation (422), rien n'est écrit.
    """
    if not raw_items:
        logger.error("checkout.reconcile no line items session_id=%s", session_id)
        raise HTTPException(status_code=422, detail="Checkout session has no line items")

    ids = [line_item_product_id(it) for it in raw_items]
    products = products_repo.get_products_map(db, [i for i in ids if i])

    mapped: List[Dict[str, Any]] = []
    for item, product_id in zip(raw_items, ids):
        qty = int(item.get("quantity") or 0)
        if not product_id or product_id not in products or qty <= 0:
            # Paiement encaissé mais ligne inconnue: remboursement manuel à prévoir
            logger.error(
                "checkout.reconcile unresolved line item session_id=%s product_id=%s description=%s",
                session_id, product_id, item.get("description"),
            )
            raise HTTPException(status_code=422, detail="A purchased item could not be matched to a product")
        mapped.append({
            "product_id": product_id,
            "quantity": qty,
            "price": line_item_unit_price(item),
        })
    return mapped


# --- Réconciliation ---

def _retrieve_session(session_id: str) -> Dict[str, Any]:
    try:
        return stripe_client.get_session(session_id)
    except stripe.InvalidRequestError:
        logger.warning("checkout.reconcile unknown session session_id=%s", session_id)
        raise HTTPException(status_code=404, detail="Checkout session not found")
    except stripe.StripeError:
        logger.exception("checkout.reconcile stripe error session_id=%s", session_id)
        raise HTTPException(status_code=500, detail="Failed to verify and create order")


def _retrieve_line_items(session_id: str) -> List[Dict[str, Any]]:
    try:
        return stripe_client.list_line_items(session_id)
    except stripe.StripeError:
        logger.exception("checkout.reconcile line items error session_id=%s", session_id)
        raise HTTPException(status_code=500, detail="Failed to verify and create order")


def reconcile_session(db: Session, session_id: Optional[str]) -> Tuple[Order, bool]:
    """
    Matérialise la commande d'une session Stripe payée.
    Retour: (order, created). created=False si la session était déjà réconciliée.
    """
    session_id = (session_id or "").strip()
    if not session_id:
        raise HTTPException(status_code=400, detail="No session ID provided")

    existing = orders_repo.get_order_by_session(db, session_id)
    if existing:
        logger.info("checkout.reconcile replay session_id=%s order_id=%s", session_id, existing.order_id)
        return existing, False

    session = _retrieve_session(session_id)
    if session.get("payment_status") != "paid":
        logger.info(
            "checkout.reconcile unpaid session_id=%s payment_status=%s",
            session_id, session.get("payment_status"),
        )
        raise HTTPException(status_code=400, detail="Payment not completed")

    items = map_line_items(db, session_id, _retrieve_line_items(session_id))
    user_id = resolve_user_id(session.get("client_reference_id"))
    shipping_address = extract_shipping_address(session)
    total_price = int(session.get("amount_total") or 0) // 100

    try:
        order = orders_repo.insert_order(
            db,
            user_id=user_id,
            stripe_session_id=session_id,
            total_price=total_price,
            shipping_address=shipping_address,
            items=items,
        )
        for it in items:
            if orders_repo.decrement_stock(db, it["product_id"], it["quantity"]) != 1:
                db.rollback()
                logger.error(
                    "checkout.reconcile product vanished session_id=%s product_id=%s",
                    session_id, it["product_id"],
                )
                raise HTTPException(status_code=422, detail="A purchased item could not be matched to a product")
        orders_repo.clear_user_cart(db, user_id)
        db.commit()
    except IntegrityError:
        db.rollback()
        # Réconciliation concurrente de la même session: l'autre transaction a gagné
        existing = orders_repo.get_order_by_session(db, session_id)
        if existing:
            logger.info("checkout.reconcile concurrent replay session_id=%s order_id=%s", session_id, existing.order_id)
            return existing, False
        logger.exception("checkout.reconcile integrity error session_id=%s", session_id)
        raise HTTPException(status_code=500, detail="Failed to verify and create order")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("checkout.reconcile database error session_id=%s", session_id)
        raise HTTPException(status_code=500, detail="Failed to verify and create order")

    logger.info(
        "checkout.reconcile created session_id=%s order_id=%s items=%s total=%s user_id=%s",
        session_id, order.order_id, len(items), total_price, user_id,
    )
    return orders_repo.load_order(db, order), True


def serialize_result(order: Order, created: bool) -> Dict[str, Any]:
    return {
        "success": True,
        "order": order.to_dict(),
        "orderNumber": order.order_id,
        "message": "Order created successfully" if created else "Order already processed",
    }
