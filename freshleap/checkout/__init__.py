"""
Module 'checkout' (feature-first): point d'entrée public.
Réunit lignes Stripe, client Stripe et réconciliation session -> commande.
"""

from .line_items import aggregate_quantities, check_availability, make_metadata, to_line_items
from .stripe_client import require_stripe, create_session, get_session, list_line_items, parse_event
from .service import (
    create_checkout_session,
    reconcile_session,
    resolve_user_id,
    extract_shipping_address,
    format_address,
    map_line_items,
    serialize_result,
)

__all__ = [
    # line items
    "aggregate_quantities",
    "check_availability",
    "make_metadata",
    "to_line_items",
    # stripe
    "require_stripe",
    "create_session",
    "get_session",
    "list_line_items",
    "parse_event",
    # services
    "create_checkout_session",
    "reconcile_session",
    "resolve_user_id",
    "extract_shipping_address",
    "format_address",
    "map_line_items",
    "serialize_result",
]
