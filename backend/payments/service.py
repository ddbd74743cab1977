"""
Cas d'usage 'payments': ouverture d'un paiement Stripe pour une inscription.
Orchestre catalogue, capacité, calcul du montant, metadata et Stripe.

Aucune écriture locale: l'inscription n'existe qu'après confirmation par le webhook.
Deux appels pour la même personne ouvrent deux PaymentIntent distincts.
"""
import logging
from typing import Any, Dict

from backend.academy import capacity
from backend.academy import repository as academy_repo
from backend.academy.models import PaymentType, TraineeInfo
from backend.academy.service import load_training
from backend.config import PaymentSettings
from . import metadata as meta
from . import pricing
from . import stripe_client

logger = logging.getLogger(__name__)

def open_transaction(
    *,
    training_id: int,
    payment_type: PaymentType,
    trainee: TraineeInfo,
    settings: PaymentSettings,
) -> Dict[str, Any]:
    """
    Prépare le PaymentIntent d'un futur participant.
    Étapes:
      1) Charger la formation (TrainingNotFound)
      2) Contrôle de capacité (RegistrationsClosed / TrainingFull), comptage non verrouillé
      3) Calcul du montant (InvalidAmount), converti en centimes
      4) Création du PaymentIntent avec la metadata complète
    Retour: {"clientSecret", "transactionId", "amount"}
    """
    training = load_training(training_id)
    confirmed = academy_repo.count_registrations(training.id)
    capacity.check_capacity(training, confirmed)
    amount = pricing.compute_amount(training, payment_type)

    intent = stripe_client.create_payment_intent(
        amount_cents=pricing.to_cents(amount),
        metadata=meta.make_metadata(training.id, payment_type, trainee),
        settings=settings,
    )
    logger.info(
        "payments.intent opened pi=%s training_id=%s payment_type=%s amount=%s",
        intent["id"], training.id, PaymentType(payment_type).value, amount,
    )
    return {
        "clientSecret": intent["client_secret"],
        "transactionId": intent["id"],
        "amount": float(amount),
    }
