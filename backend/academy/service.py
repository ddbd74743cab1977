"""
Cas d'usage 'academy': fiche publique d'une formation ouverte aux inscriptions.
"""
from typing import Any, Dict, List

from . import capacity
from . import repository
from .exceptions import RegistrationsClosed, TrainingNotFound
from .models import Training

def load_training(training_id: int) -> Training:
    """Charge la formation ou lève TrainingNotFound."""
    training = repository.fetch_training(training_id)
    if training is None:
        raise TrainingNotFound()
    return training

def _session_payload(s: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "startDate": s.get("start_date"),
        "endDate": s.get("end_date"),
        "topic": s.get("topic"),
        "locationIds": [str(i) for i in (s.get("location_ids") or [])],
    }

def get_training_info(training_id: int) -> Dict[str, Any]:
    """
    Données affichées sur la page d'inscription publique.
    - 404 si la formation n'existe pas, 410 si les inscriptions ne sont pas ouvertes.
    - spotsRemaining vaut None pour une formation sans limite de places.
    """
    training = load_training(training_id)
    if not training.registrations_open:
        raise RegistrationsClosed("Les inscriptions ne sont pas ouvertes pour cette formation.")

    taken = repository.count_registrations(training.id)
    sessions = repository.fetch_sessions(training.id)
    location_ids: List[str] = []
    for s in sessions:
        for loc_id in s.get("location_ids") or []:
            if str(loc_id) not in location_ids:
                location_ids.append(str(loc_id))
    locations = repository.fetch_locations(location_ids)

    training_type = training.training_type
    return {
        "id": str(training.id),
        "title": training.title,
        "description": training.description,
        "price": float(training.price),
        "depositAmount": float(training.deposit_amount),
        "vatRate": float(training.vat_rate),
        "maxParticipants": training.max_participants,
        "spotsRemaining": capacity.spots_remaining(training, taken),
        "requiresAccommodation": training.requires_accommodation,
        "trainingType": {
            "name": training_type.name if training_type else "",
            "description": training_type.description if training_type else "",
        },
        "sessions": [_session_payload(s) for s in sessions],
        "locations": [
            {"id": str(loc.get("id")), "name": loc.get("name") or "", "address": loc.get("address") or ""}
            for loc in locations
        ],
    }
