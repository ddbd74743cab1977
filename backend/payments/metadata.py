"""
Sérialisation/désérialisation des métadonnées Stripe d'un PaymentIntent.

La metadata est le seul état dont dispose le webhook pour reconstruire une inscription:
elle est convertie dès la frontière en TransactionMetadata (typée, validée), jamais
manipulée comme dict brut plus loin.
"""
from typing import Any, Dict, Mapping

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from backend.academy.models import Carpooling, PaymentType, TraineeInfo
from .exceptions import InvalidTransactionMetadata

CONTACT_FIELDS = (
    "contact_name",
    "contact_email",
    "phone",
    "departure_city",
    "departure_postal_code",
    "departure_country",
)


class TransactionMetadata(BaseModel):
    """
    Contenu de PaymentIntent.metadata.
    Stripe ignore les valeurs "" à la création: une clé absente équivaut donc à la saisie vide.
    """
    model_config = ConfigDict(extra="ignore", frozen=True)

    training_id: int
    payment_type: PaymentType
    contact_name: str = ""
    contact_email: str = ""
    phone: str = ""
    departure_city: str = ""
    departure_postal_code: str = ""
    departure_country: str = ""
    carpooling: Carpooling = Carpooling.NONE

    @field_validator("carpooling", mode="before")
    @classmethod
    def _carpooling(cls, v):
        return v or Carpooling.NONE

    def contact_fields(self) -> Dict[str, str]:
        fields = {name: getattr(self, name) for name in CONTACT_FIELDS}
        fields["carpooling"] = self.carpooling.value
        return fields

# module backend.payments.metadata
def make_metadata(training_id: int, payment_type: PaymentType, trainee: TraineeInfo) -> Dict[str, str]:
    """
    Construit la metadata Stripe (toutes les valeurs en str, limite 500 caractères
    garantie par TraineeInfo).
    """
    meta = {
        "training_id": str(training_id),
        "payment_type": PaymentType(payment_type).value,
    }
    for name in CONTACT_FIELDS:
        meta[name] = str(getattr(trainee, name) or "")
    meta["carpooling"] = Carpooling(trainee.carpooling).value
    return meta

def parse_metadata(raw: Mapping[str, Any] | None) -> TransactionMetadata:
    """
    Valide la metadata reçue dans un événement Stripe.
    - Soulève InvalidTransactionMetadata si training_id/payment_type manquent ou sont invalides.
    """
    try:
        return TransactionMetadata.model_validate(dict(raw or {}))
    except ValidationError as e:
        raise InvalidTransactionMetadata(f"Metadata de paiement invalide: {e.error_count()} erreur(s)") from e
