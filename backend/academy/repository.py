"""
Accès aux données pour la feature 'academy'.
- Catalogue (lecture seule): formations, sessions, lieux.
- Inscriptions: comptage, recherche par PaymentIntent, insertion idempotente.

Contrairement aux lectures "best effort", une panne Supabase est remontée en
StorageUnavailable: le webhook doit répondre 5xx pour que Stripe relivre l'événement.
"""
from typing import Any, Dict, Iterable, List, Optional
import logging

from postgrest.exceptions import APIError

import backend.infra.supabase_client as supabase_client
from .exceptions import StorageUnavailable
from .models import Training

logger = logging.getLogger(__name__)

TRAININGS_TABLE = "academy_trainings"
REGISTRATIONS_TABLE = "academy_training_registrations"
SESSIONS_TABLE = "academy_training_sessions"
LOCATIONS_TABLE = "academy_training_locations"

# Violation de contrainte d'unicité Postgres
UNIQUE_VIOLATION = "23505"

# module backend.academy.repository
def _error_code(e: APIError) -> Optional[str]:
    code = getattr(e, "code", None)
    if not code and e.args and isinstance(e.args[0], dict):
        code = e.args[0].get("code")
    return code

def fetch_training(training_id: int) -> Optional[Training]:
    """
    Récupère une formation non supprimée avec son type embarqué.
    - Retourne None si introuvable.
    - Soulève StorageUnavailable en cas d'erreur Supabase.
    """
    try:
        res = (
            supabase_client.get_supabase()
            .table(TRAININGS_TABLE)
            .select("*, training_type:academy_training_types(name, description)")
            .eq("id", training_id)
            .is_("deleted_at", "null")
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.exception("academy.repository.fetch_training failed training_id=%s", training_id)
        raise StorageUnavailable() from e
    rows = res.data or []
    return Training.from_row(rows[0]) if rows else None

def count_registrations(training_id: int) -> int:
    """Nombre d'inscriptions confirmées (non supprimées) d'une formation."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(REGISTRATIONS_TABLE)
            .select("id", count="exact")
            .eq("training_id", training_id)
            .is_("deleted_at", "null")
            .execute()
        )
    except Exception as e:
        logger.exception("academy.repository.count_registrations failed training_id=%s", training_id)
        raise StorageUnavailable() from e
    if res.count is not None:
        return int(res.count)
    return len(res.data or [])

def fetch_sessions(training_id: int) -> List[Dict[str, Any]]:
    """Sessions d'une formation, triées par date de début."""
    try:
        res = (
            supabase_client.get_supabase()
            .table(SESSIONS_TABLE)
            .select("start_date, end_date, topic, location_ids")
            .eq("training_id", training_id)
            .is_("deleted_at", "null")
            .order("start_date")
            .execute()
        )
    except Exception as e:
        logger.exception("academy.repository.fetch_sessions failed training_id=%s", training_id)
        raise StorageUnavailable() from e
    return res.data or []

def fetch_locations(ids: Iterable[Any]) -> List[Dict[str, Any]]:
    """Lieux de formation par IDs; [] si aucun ID."""
    id_list = [str(i) for i in ids]
    if not id_list:
        return []
    try:
        res = (
            supabase_client.get_supabase()
            .table(LOCATIONS_TABLE)
            .select("id, name, address")
            .in_("id", id_list)
            .execute()
        )
    except Exception as e:
        logger.exception("academy.repository.fetch_locations failed ids=%s", id_list)
        raise StorageUnavailable() from e
    return res.data or []

def find_registration_by_intent(payment_intent_id: str) -> Optional[Dict[str, Any]]:
    """Inscription déjà matérialisée pour ce PaymentIntent, ou None."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(REGISTRATIONS_TABLE)
            .select("id, training_id, stripe_payment_intent_id")
            .eq("stripe_payment_intent_id", payment_intent_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.exception("academy.repository.find_registration_by_intent failed pi=%s", payment_intent_id)
        raise StorageUnavailable() from e
    rows = res.data or []
    return rows[0] if rows else None

def insert_registration(row: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Insert via service-role (bypass RLS) — réservé au webhook Stripe.
    - Retourne la ligne créée.
    - Retourne None en cas de doublon (23505 sur stripe_payment_intent_id): déjà traité.
    - Soulève StorageUnavailable pour toute autre erreur.
    """
    try:
        res = supabase_client.get_service_supabase().table(REGISTRATIONS_TABLE).insert(row).execute()
    except APIError as e:
        if _error_code(e) == UNIQUE_VIOLATION:
            logger.info("academy.repository.insert_registration duplicate pi=%s", row.get("stripe_payment_intent_id"))
            return None
        logger.exception("academy.repository.insert_registration failed pi=%s", row.get("stripe_payment_intent_id"))
        raise StorageUnavailable() from e
    except Exception as e:
        logger.exception("academy.repository.insert_registration failed pi=%s", row.get("stripe_payment_intent_id"))
        raise StorageUnavailable() from e
    data = res.data or []
    if isinstance(data, list):
        return data[0] if data else row
    return data or row
