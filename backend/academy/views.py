# module backend.academy.views
"""Endpoints publics de l'académie (sans authentification).
- GET /api/v1/public/academy/trainings/{training_id}: fiche de la formation pour le formulaire d'inscription.
"""
from typing import Any, Dict

from fastapi import APIRouter

from backend.academy import service as academy_service

router = APIRouter(prefix="/api/v1/public/academy", tags=["Academy Public API"])


@router.get("/trainings/{training_id}")
def training_info(training_id: int) -> Dict[str, Any]:
    """
    Fiche publique d'une formation.
    - 404 si inconnue, 410 si les inscriptions ne sont pas ouvertes.
    - Les erreurs métier sont converties par le handler AcademyError.
    """
    return academy_service.get_training_info(training_id)
