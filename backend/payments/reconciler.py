"""
Réconciliation des webhooks Stripe: payment_intent.succeeded -> inscription.

Livraison Stripe: au moins une fois, sans ordre garanti, parfois en double simultanément.
Chaque livraison suit la même machine à états:
  vérifier -> parser -> filtrer -> extraire la metadata -> déjà traité ? -> matérialiser
La clé d'idempotence est l'id du PaymentIntent, protégée par l'index unique
idx_academy_registrations_stripe_pi: la lecture préalable n'est qu'un raccourci, c'est
la contrainte qui tranche entre deux livraisons concurrentes.

Réponses:
  - 200 {"status": "created" | "duplicate" | "ignored"} après écriture durable ou no-op décidé
  - 400 signature/enveloppe invalide (ne pas relivrer)
  - 5xx panne transitoire (Stripe relivrera, ce qui est sûr grâce à l'idempotence)
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from backend.academy import capacity
from backend.academy import repository as academy_repo
from backend.academy.models import PaymentStatus, PaymentType, Registration, Training
from backend.config import PaymentSettings
from . import metadata as meta
from . import pricing
from . import stripe_client
from .exceptions import InvalidTransactionMetadata, InvalidWebhookPayload

logger = logging.getLogger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"

CREATED = "created"
DUPLICATE = "duplicate"
IGNORED = "ignored"


class EventData(BaseModel):
    object: Dict[str, Any]


class WebhookEvent(BaseModel):
    """Enveloppe d'un événement Stripe (champs utilisés uniquement)."""
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    type: str
    data: EventData


class PaymentIntentPayload(BaseModel):
    """data.object d'un payment_intent.succeeded."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    amount: int = Field(ge=0)
    amount_received: Optional[int] = Field(default=None, ge=0)
    currency: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def captured_cents(self) -> int:
        return self.amount_received if self.amount_received else self.amount


def _validate(model, data: Any):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning("payments.webhook enveloppe invalide: %s", e.errors(include_url=False))
        raise InvalidWebhookPayload() from e

def _training_id(raw_metadata: Dict[str, Any]) -> Optional[int]:
    value = raw_metadata.get("training_id")
    try:
        return int(str(value).strip()) if value not in (None, "") else None
    except ValueError:
        return None

def payment_status_for(training: Training, payment_type: PaymentType) -> PaymentStatus:
    """partial si acompte demandé et formation avec acompte > 0, sinon paid."""
    if PaymentType(payment_type) is PaymentType.DEPOSIT and training.deposit_amount > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PAID

def build_registration(
    training: Training,
    intent: PaymentIntentPayload,
    metadata: meta.TransactionMetadata,
    *,
    confirmed_count: int,
    now: Optional[datetime] = None,
) -> Registration:
    """
    Construit l'inscription complète avant tout insert (tout ou rien).
    - Coordonnées recopiées depuis la metadata, montant depuis le montant capturé.
    - Surréservation: l'inscription payée est conservée mais marquée needs_review.
    """
    amount_paid = pricing.from_cents(intent.captured_cents)
    needs_review = capacity.is_overbooked(training, confirmed_count)
    note = ""
    if needs_review:
        note = (
            f"Surréservation: {confirmed_count} inscrit(s) pour {training.max_participants} place(s) "
            f"au moment du paiement {intent.id}."
        )
    return Registration(
        training_id=training.id,
        **metadata.contact_fields(),
        amount_paid=amount_paid,
        payment_amount=amount_paid,
        payment_status=payment_status_for(training, metadata.payment_type),
        stripe_payment_intent_id=intent.id,
        registered_at=now or datetime.now(timezone.utc),
        needs_review=needs_review,
        internal_note=note,
    )

def handle_payment_succeeded(intent: PaymentIntentPayload) -> Dict[str, Any]:
    """
    Matérialise l'inscription d'un PaymentIntent réussi, au plus une fois.
    Les paiements étrangers à l'académie (pas de training_id, formation inconnue,
    metadata invalide) sont acquittés sans action.
    """
    training_id = _training_id(intent.metadata)
    if training_id is None:
        logger.info("payments.webhook pi=%s ignoré: pas de training_id", intent.id)
        return {"status": IGNORED}

    training = academy_repo.fetch_training(training_id)
    if training is None:
        logger.warning("payments.webhook pi=%s ignoré: formation %s inconnue", intent.id, training_id)
        return {"status": IGNORED}

    try:
        metadata = meta.parse_metadata(intent.metadata)
    except InvalidTransactionMetadata:
        logger.error("payments.webhook pi=%s ignoré: metadata invalide pour la formation %s", intent.id, training_id)
        return {"status": IGNORED}

    if academy_repo.find_registration_by_intent(intent.id):
        logger.info("payments.webhook pi=%s déjà traité", intent.id)
        return {"status": DUPLICATE}

    confirmed = academy_repo.count_registrations(training.id)
    registration = build_registration(training, intent, metadata, confirmed_count=confirmed)
    if registration.needs_review:
        logger.warning(
            "payments.webhook surréservation training_id=%s inscrits=%s max=%s pi=%s",
            training.id, confirmed, training.max_participants, intent.id,
        )

    row = academy_repo.insert_registration(registration.to_row())
    if row is None:
        # Livraison concurrente gagnante: la contrainte unique a tranché
        return {"status": DUPLICATE}

    logger.info(
        "payments.webhook inscription créée pi=%s training_id=%s status=%s amount=%s",
        intent.id, training.id, registration.payment_status.value, registration.amount_paid,
    )
    return {"status": CREATED, "registrationId": row.get("id")}

def reconcile(payload: bytes, sig_header: Optional[str], settings: PaymentSettings) -> Dict[str, Any]:
    """
    Point d'entrée du webhook: vérifie, parse, filtre puis matérialise.
    Lève InvalidWebhookSignature / InvalidWebhookPayload (400), WebhookNotConfigured (500)
    ou StorageUnavailable (503).
    """
    stripe_client.parse_event(payload, sig_header, settings)
    # Signature valide: on revalide le corps brut dans des modèles typés
    try:
        body = json.loads(payload)
    except ValueError as e:
        raise InvalidWebhookPayload() from e
    event = _validate(WebhookEvent, body)

    if event.type != PAYMENT_SUCCEEDED:
        logger.info("payments.webhook événement %s (%s) ignoré", event.id, event.type)
        return {"status": IGNORED}

    intent = _validate(PaymentIntentPayload, event.data.object)
    return handle_payment_succeeded(intent)
