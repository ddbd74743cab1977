"""
Module 'academy' (feature-first): catalogue des formations vu par les inscriptions.
Réunit modèles, contrôle de capacité, repository Supabase et fiche publique.
"""

from .models import Training, TraineeInfo, PaymentType, PaymentStatus, Carpooling, REGISTRATIONS_OPEN
from .capacity import check_capacity, spots_remaining, is_overbooked
from .exceptions import (
    AcademyError,
    TrainingNotFound,
    RegistrationsClosed,
    TrainingFull,
    InvalidAmount,
    StorageUnavailable,
)
from .service import load_training, get_training_info

__all__ = [
    # models
    "Training",
    "TraineeInfo",
    "PaymentType",
    "PaymentStatus",
    "Carpooling",
    "REGISTRATIONS_OPEN",
    # capacity
    "check_capacity",
    "spots_remaining",
    "is_overbooked",
    # exceptions
    "AcademyError",
    "TrainingNotFound",
    "RegistrationsClosed",
    "TrainingFull",
    "InvalidAmount",
    "StorageUnavailable",
    # services
    "load_training",
    "get_training_info",
]
