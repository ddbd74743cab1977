"""
Module 'payments' (feature-first): point d'entrée public.
Réunit calcul du montant, metadata Stripe, client Stripe, ouverture de paiement
et réconciliation des webhooks.
"""

from .pricing import compute_amount, to_cents, from_cents
from .metadata import TransactionMetadata, make_metadata, parse_metadata
from .stripe_client import require_stripe, create_payment_intent, parse_event
from .service import open_transaction
from .reconciler import reconcile, handle_payment_succeeded, build_registration, payment_status_for
from .exceptions import (
    InvalidWebhookSignature,
    InvalidWebhookPayload,
    WebhookNotConfigured,
    InvalidTransactionMetadata,
    PaymentProviderUnavailable,
    PaymentProviderError,
)

__all__ = [
    # pricing
    "compute_amount",
    "to_cents",
    "from_cents",
    # metadata
    "TransactionMetadata",
    "make_metadata",
    "parse_metadata",
    # stripe
    "require_stripe",
    "create_payment_intent",
    "parse_event",
    # services
    "open_transaction",
    "reconcile",
    "handle_payment_succeeded",
    "build_registration",
    "payment_status_for",
    # exceptions
    "InvalidWebhookSignature",
    "InvalidWebhookPayload",
    "WebhookNotConfigured",
    "InvalidTransactionMetadata",
    "PaymentProviderUnavailable",
    "PaymentProviderError",
]
