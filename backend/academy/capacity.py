"""
Contrôle de capacité des formations (pas de DB, pas de Stripe).

Le contrôle à l'ouverture d'un paiement est indicatif: le comptage n'est pas fait
dans la même transaction que l'écriture finale. Plusieurs paiements ouverts en même
temps près de la limite peuvent donc dépasser la capacité; le webhook crée malgré tout
l'inscription payée et la marque à revoir (voir is_overbooked).
"""
from typing import Optional

from .exceptions import RegistrationsClosed, TrainingFull
from .models import Training

# module backend.academy.capacity
def check_capacity(training: Training, confirmed_count: int) -> None:
    """
    Autorise ou non l'ouverture d'un nouveau paiement.
    - RegistrationsClosed si le statut n'est pas 'registrations_open'.
    - TrainingFull si max_participants > 0 et confirmed_count >= max_participants.
    """
    if not training.registrations_open:
        raise RegistrationsClosed()
    if training.max_participants > 0 and confirmed_count >= training.max_participants:
        raise TrainingFull()

def spots_remaining(training: Training, taken: int) -> Optional[int]:
    """Places restantes (jamais négatif), None si la formation est illimitée."""
    if training.max_participants <= 0:
        return None
    return max(training.max_participants - taken, 0)

def is_overbooked(training: Training, confirmed_count: int) -> bool:
    """Vrai si une nouvelle inscription dépasserait la capacité (comptage au moment de l'écriture)."""
    return training.max_participants > 0 and confirmed_count >= training.max_participants
