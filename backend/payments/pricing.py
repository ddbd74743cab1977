"""
Calcul du montant à payer (pas de Stripe, pas de DB).
"""
from decimal import Decimal, ROUND_HALF_UP

from backend.academy.exceptions import InvalidAmount
from backend.academy.models import PaymentType, Training

CENT = Decimal("0.01")

# module backend.payments.pricing
def compute_amount(training: Training, payment_type: PaymentType | str) -> Decimal:
    """
    Montant dû pour une formation selon le mode de paiement.
    - 'deposit' avec un acompte > 0: montant de l'acompte.
    - Sinon (y compris 'deposit' sans acompte configuré): prix complet.
    - Soulève InvalidAmount si le montant obtenu est <= 0 (formation mal configurée).
    - Soulève InvalidAmount si l'acompte demandé n'est pas inférieur au prix.
    """
    if PaymentType(payment_type) is PaymentType.DEPOSIT and training.deposit_amount > 0:
        if training.deposit_amount >= training.price:
            raise InvalidAmount("L'acompte doit être inférieur au prix de la formation.")
        amount = training.deposit_amount
    else:
        amount = training.price
    if to_cents(amount) <= 0:
        raise InvalidAmount()
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)

def to_cents(amount: Decimal) -> int:
    """Montant décimal -> centimes (unité mineure), arrondi au centime supérieur à partir de 0.5."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def from_cents(cents: int) -> Decimal:
    """Centimes -> montant décimal à deux décimales."""
    return (Decimal(int(cents)) / 100).quantize(CENT)
