"""
Exceptions métier de l'académie (inscriptions et paiements).

Chaque exception porte son code HTTP et un code stable; le handler enregistré par
backend.app_setup.exceptions les convertit en JSONResponse. Les services ne lèvent
jamais HTTPException directement.
"""


class AcademyError(Exception):
    """Base des erreurs métier exposées par l'API."""
    status_code = 400
    code = "academy_error"
    default_detail = "Erreur inscription"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


# Erreurs de l'appelant (aucun effet de bord)
class TrainingNotFound(AcademyError):
    status_code = 404
    code = "training_not_found"
    default_detail = "Formation introuvable."


class RegistrationsClosed(AcademyError):
    status_code = 410
    code = "registrations_closed"
    default_detail = "Les inscriptions ne sont pas ouvertes."


class TrainingFull(AcademyError):
    status_code = 422
    code = "training_full"
    default_detail = "Cette formation est complète."


class InvalidAmount(AcademyError):
    status_code = 422
    code = "invalid_amount"
    default_detail = "Montant de paiement invalide."


# Infrastructure: toujours réessayable
class StorageUnavailable(AcademyError):
    status_code = 503
    code = "storage_unavailable"
    default_detail = "Base de données indisponible, réessayez plus tard."
