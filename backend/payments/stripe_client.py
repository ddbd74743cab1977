"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
Les clés ne sont pas lues ici: elles arrivent via PaymentSettings.
"""
import logging
import threading
from typing import Any, Dict, Optional, Tuple

import stripe

from backend.config import PaymentSettings
from .exceptions import (
    InvalidWebhookPayload,
    InvalidWebhookSignature,
    PaymentProviderError,
    PaymentProviderUnavailable,
    WebhookNotConfigured,
)

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "stripe-signature"

# (timeout, retries) appliqués aux globals du SDK; modifiés sous verrou uniquement
_configured: Optional[Tuple[int, int]] = None
_configure_lock = threading.Lock()

# module backend.payments.stripe_client
def require_stripe(settings: PaymentSettings):
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Client HTTP avec timeout borné (un appel bloqué ne doit pas retenir la requête indéfiniment).
    - Retries réseau gérés par le SDK (clé d'idempotence automatique sur les retries).
    - Configuré une seule fois (au démarrage via le lifespan), puis seulement si les réglages changent.
    """
    global _configured
    wanted = (settings.timeout_seconds, settings.max_network_retries)
    if _configured == wanted:
        return stripe
    with _configure_lock:
        if _configured != wanted:
            stripe.default_http_client = stripe.RequestsClient(timeout=settings.timeout_seconds)
            stripe.max_network_retries = settings.max_network_retries
            _configured = wanted
    return stripe

def create_payment_intent(
    *,
    amount_cents: int,
    metadata: Dict[str, str],
    settings: PaymentSettings,
) -> Dict[str, Any]:
    """
    Crée un PaymentIntent Stripe.
    - amount_cents: montant en unité mineure (int)
    - metadata: sac complet permettant au webhook de reconstruire l'inscription
    Retour: {"id": "pi_...", "client_secret": "pi_..._secret_..."}
    Erreurs: PaymentProviderUnavailable (timeout/réseau/rate limit), PaymentProviderError (refus Stripe).
    """
    require_stripe(settings)
    try:
        intent = stripe.PaymentIntent.create(
            api_key=settings.secret_key or None,
            amount=amount_cents,
            currency=settings.currency,
            payment_method_types=list(settings.payment_method_types),
            metadata=metadata,
        )
    except (stripe.APIConnectionError, stripe.RateLimitError) as e:
        logger.exception("payments.stripe_client.create_payment_intent unavailable")
        raise PaymentProviderUnavailable() from e
    except stripe.StripeError as e:
        logger.exception("payments.stripe_client.create_payment_intent failed")
        raise PaymentProviderError() from e
    return {"id": intent.id, "client_secret": intent.client_secret}

def parse_event(payload: bytes, sig_header: Optional[str], settings: PaymentSettings):
    """
    Parse et valide un événement Stripe signé (webhook).
    - Valide la signature via Webhook.construct_event (secret injecté, tolérance d'horodatage)
    - Échec fermé: en-tête absent ou signature invalide -> InvalidWebhookSignature
    - Corps non JSON -> InvalidWebhookPayload
    Retour: l'objet event si la signature est valide.
    """
    if not settings.webhook_secret:
        logger.error("payments.webhook STRIPE_WEBHOOK_SECRET absent: événement refusé")
        raise WebhookNotConfigured()
    if not sig_header:
        logger.warning("payments.webhook signature manquante")
        raise InvalidWebhookSignature("En-tête Stripe-Signature manquant.")
    try:
        return stripe.Webhook.construct_event(
            payload, sig_header, settings.webhook_secret, tolerance=settings.webhook_tolerance
        )
    except stripe.SignatureVerificationError as e:
        logger.warning("payments.webhook signature invalide: %s", e)
        raise InvalidWebhookSignature() from e
    except ValueError as e:
        logger.warning("payments.webhook payload illisible: %s", e)
        raise InvalidWebhookPayload() from e
