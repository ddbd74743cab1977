"""
Modèles typés de l'académie.
- Training: ligne academy_trainings (lecture seule ici), normalisée depuis Supabase.
- TraineeInfo: coordonnées saisies sur le formulaire public.
- PaymentType / PaymentStatus / Carpooling: valeurs fermées partagées avec la base.
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator

REGISTRATIONS_OPEN = "registrations_open"
TRAINING_STATUSES = ("draft", "planned", REGISTRATIONS_OPEN, "in_progress", "completed", "cancelled")

# Limite Stripe pour une valeur de metadata
METADATA_VALUE_MAX = 500


class PaymentType(str, Enum):
    FULL = "full"
    DEPOSIT = "deposit"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"


class Carpooling(str, Enum):
    NONE = "none"
    SEEKING = "seeking"
    OFFERING = "offering"


def _to_decimal(value: Any) -> Decimal:
    # PostgREST renvoie les numeric en nombre JSON: passer par str évite les artefacts float
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class TrainingType(BaseModel):
    name: str = ""
    description: str = ""


class Training(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    title: str = ""
    description: str = ""
    status: str
    price: Decimal = Field(default=Decimal("0"), ge=0)
    deposit_amount: Decimal = Field(default=Decimal("0"), ge=0)
    max_participants: int = Field(default=0, ge=0)
    vat_rate: Decimal = Decimal("0")
    requires_accommodation: bool = False
    training_type: Optional[TrainingType] = None

    @field_validator("price", "deposit_amount", "vat_rate", mode="before")
    @classmethod
    def _decimal(cls, v):
        return _to_decimal(v)

    @field_validator("max_participants", mode="before")
    @classmethod
    def _participants(cls, v):
        return v or 0

    @property
    def registrations_open(self) -> bool:
        return self.status == REGISTRATIONS_OPEN

    @classmethod
    def from_row(cls, row: dict) -> "Training":
        """Construit une Training depuis une ligne Supabase (type embarqué sous 'training_type')."""
        data = dict(row)
        if not isinstance(data.get("training_type"), dict):
            data["training_type"] = None
        return cls.model_validate(data)


class TraineeInfo(BaseModel):
    """
    Coordonnées du participant, recopiées telles quelles dans la metadata Stripe
    puis dans l'inscription. Les champs facultatifs valent "" lorsqu'ils ne sont pas saisis.
    """
    contact_name: str = Field(min_length=1, max_length=METADATA_VALUE_MAX)
    contact_email: str = Field(max_length=METADATA_VALUE_MAX)
    phone: str = Field(default="", max_length=METADATA_VALUE_MAX)
    departure_city: str = Field(default="", max_length=METADATA_VALUE_MAX)
    departure_postal_code: str = Field(default="", max_length=METADATA_VALUE_MAX)
    departure_country: str = Field(default="", max_length=METADATA_VALUE_MAX)
    carpooling: Carpooling = Carpooling.NONE

    @field_validator("contact_email")
    @classmethod
    def _email(cls, v: str) -> str:
        # Validation seule: l'adresse saisie est conservée telle quelle (pas de normalisation)
        try:
            validate_email(v, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValueError(str(e)) from e
        return v


class Registration(BaseModel):
    """
    Inscription confirmée (ligne academy_training_registrations).
    Créée une seule fois par le webhook; payment_amount duplique amount_paid (compatibilité).
    """
    training_id: int
    contact_name: str
    contact_email: str = ""
    phone: str = ""
    departure_city: str = ""
    departure_postal_code: str = ""
    departure_country: str = ""
    carpooling: Carpooling = Carpooling.NONE
    amount_paid: Decimal
    payment_amount: Decimal
    payment_status: PaymentStatus
    stripe_payment_intent_id: str
    registered_at: datetime
    needs_review: bool = False
    internal_note: str = ""

    def to_row(self) -> dict:
        """Dict sérialisable JSON pour l'insert Supabase (Decimal -> str, datetime -> ISO 8601)."""
        return self.model_dump(mode="json")
