import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from backend.academy.models import PaymentType, TraineeInfo
from backend.config import (
    INTENT_RATE_LIMIT_SECONDS,
    INTENT_RATE_LIMIT_TIMES,
    PaymentSettings,
    get_payment_settings,
)
from backend.utils.rate_limit import optional_rate_limit
from backend.payments import service as payments_service
from backend.payments import reconciler
from backend.payments.stripe_client import SIGNATURE_HEADER

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/public", tags=["Payments API"])


class PaymentIntentRequest(TraineeInfo):
    """Corps JSON du formulaire d'inscription: mode de paiement + coordonnées."""
    payment_type: PaymentType = PaymentType.FULL


# module backend.payments.views
@router.post(
    "/academy/trainings/{training_id}/payment-intent",
    dependencies=[Depends(optional_rate_limit(times=INTENT_RATE_LIMIT_TIMES, seconds=INTENT_RATE_LIMIT_SECONDS))],
)
def create_payment_intent(
    training_id: int,
    body: PaymentIntentRequest,
    settings: PaymentSettings = Depends(get_payment_settings),
) -> Dict[str, Any]:
    """
    Ouvre un PaymentIntent Stripe pour s'inscrire à une formation.
    - Entrée JSON: {payment_type: "full"|"deposit", contact_name, contact_email, phone,
      departure_city, departure_postal_code, departure_country, carpooling}
    - Sécurité: endpoint public, rate limit par IP
    - Réponse: {clientSecret, transactionId, amount}
    - Erreurs: 404 formation inconnue, 410 inscriptions fermées, 422 complète/montant invalide,
      502/503 Stripe (réessayable, aucune écriture locale)
    """
    trainee = TraineeInfo(**body.model_dump(exclude={"payment_type"}))
    return payments_service.open_transaction(
        training_id=training_id,
        payment_type=body.payment_type,
        trainee=trainee,
        settings=settings,
    )

@router.post("/stripe-webhooks", include_in_schema=False)
async def stripe_webhook(request: Request, settings: PaymentSettings = Depends(get_payment_settings)):
    """
    Webhook Stripe: consomme payment_intent.succeeded pour créer l'inscription.
    - Signature: Stripe-Signature + secret injecté (échec fermé -> 400)
    - Réponse 200 uniquement après écriture durable ou no-op décidé:
      {"status": "created" | "duplicate" | "ignored"}
    - 5xx si la base est indisponible: Stripe relivrera l'événement
    """
    payload = await request.body()
    sig_header = request.headers.get(SIGNATURE_HEADER)
    # Supabase et Stripe sont synchrones: hors de la boucle événementielle
    result = await run_in_threadpool(reconciler.reconcile, payload, sig_header, settings)
    return JSONResponse(result)
