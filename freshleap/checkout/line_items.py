"""
Logique panier -> Stripe pure (pas d'appel Stripe, pas de commit DB).
"""
import json
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from freshleap.config import CURRENCY
from freshleap.models import Product

# Limite Stripe: 500 caractères par valeur de metadata
METADATA_VALUE_MAX = 500


# module freshleap.checkout.line_items
def aggregate_quantities(items: List[Dict[str, Any]]) -> Dict[str, int]:
    """
    Agrège des lignes brutes [{product_id, quantity}, ...] en {product_id: total_quantity}.
    - Accepte "id" comme alias de "product_id".
    - Ignore les lignes invalides (id vide, quantity <= 0 ou non entière).
    - Soulève HTTPException(400) si aucune ligne valide n'est présente.
    """
    quantities: Dict[str, int] = {}
    for it in items or []:
        product_id = str(it.get("product_id") or it.get("id") or "").strip()
        try:
            qty = int(it.get("quantity") or 0)
        except (TypeError, ValueError):
            continue
        if not product_id or qty <= 0:
            continue
        quantities[product_id] = quantities.get(product_id, 0) + qty
    if not quantities:
        raise HTTPException(status_code=400, detail="Cart is empty or invalid")
    return quantities


def check_availability(products_by_id: Dict[str, Product], quantities: Dict[str, int]) -> None:
    """
    Seule vérification de stock avant le paiement.
    - 404 si un produit demandé n'existe pas
    - 400 si la quantité demandée dépasse quantity_available
    """
    for product_id, qty in quantities.items():
        product = products_by_id.get(product_id)
        if product is None:
            raise HTTPException(status_code=404, detail=f"Product not found: {product_id}")
        if qty > product.quantity_available:
            raise HTTPException(
                status_code=400,
                detail=f"Insufficient stock for {product.name}: {product.quantity_available} available",
            )


def to_line_items(products_by_id: Dict[str, Product], quantities: Dict[str, int], currency: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Construit les line_items Stripe (price_data) depuis le catalogue.
    - Nom et prix viennent du produit en base, jamais du client.
    - unit_amount en unités mineures: price * 100.
    - product_data.metadata.product_id: identifiant relu à la réconciliation.
    """
    line_items: List[Dict[str, Any]] = []
    for product_id, qty in quantities.items():
        product = products_by_id.get(product_id)
        if not product or qty <= 0:
            continue
        product_data: Dict[str, Any] = {
            "name": product.name,
            "metadata": {"product_id": product.product_id},
        }
        if product.description:
            product_data["description"] = product.description
        if product.image_url:
            product_data["images"] = [product.image_url]
        line_items.append({
            "quantity": qty,
            "price_data": {
                "currency": currency or CURRENCY,
                "unit_amount": int(product.price) * 100,
                "product_data": product_data,
            },
        })
    if not line_items:
        raise HTTPException(status_code=400, detail="No valid items")
    return line_items


def make_metadata(user_id: Optional[str], quantities: Dict[str, int]) -> Dict[str, str]:
    """
    Métadonnées de session: user_id (vide pour un invité) et panier compact tronqué.
    """
    cart_meta = [{"id": pid, "quantity": qty} for pid, qty in quantities.items()]
    return {
        "user_id": user_id or "",
        "cart": json.dumps(cart_meta, separators=(",", ":"))[:METADATA_VALUE_MAX],
    }
