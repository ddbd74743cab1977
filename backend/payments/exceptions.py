"""
Exceptions de l'intégration Stripe.
- Authenticité (signature, enveloppe): 400, Stripe ne doit pas relivrer.
- Fournisseur indisponible: 503, l'appelant peut réessayer sans risque (rien n'a été écrit).
"""
from backend.academy.exceptions import AcademyError


class InvalidWebhookSignature(AcademyError):
    status_code = 400
    code = "invalid_signature"
    default_detail = "Signature Stripe invalide."


class InvalidWebhookPayload(AcademyError):
    status_code = 400
    code = "invalid_payload"
    default_detail = "Invalid Stripe webhook payload"


class WebhookNotConfigured(AcademyError):
    # 5xx: une erreur de configuration ne doit pas faire abandonner l'événement par Stripe
    status_code = 500
    code = "webhook_not_configured"
    default_detail = "Secret webhook Stripe non configuré."


class InvalidTransactionMetadata(AcademyError):
    status_code = 400
    code = "invalid_metadata"
    default_detail = "Metadata de paiement invalide."


class PaymentProviderUnavailable(AcademyError):
    status_code = 503
    code = "payment_provider_unavailable"
    default_detail = "Service de paiement indisponible, réessayez."


class PaymentProviderError(AcademyError):
    status_code = 502
    code = "payment_provider_error"
    default_detail = "Le service de paiement a refusé la demande."
