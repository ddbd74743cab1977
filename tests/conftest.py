import hashlib
import hmac
import json
import os
import threading
import time
from typing import Any, Dict, Generator, List, Optional
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

# Pas de Redis pendant les tests: le lifespan désactive le rate limiter
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

from backend.app import app as fastapi_app
from backend.academy.models import Training
from backend.config import PaymentSettings, get_payment_settings

WEBHOOK_SECRET = "whsec_test_secret"

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/tests/unit/" in nodeid or nodeid.startswith("tests/unit/") or nodeid.startswith("unit/"):
            item.add_marker(pytest.mark.unit)
        elif "/tests/integration/" in nodeid or nodeid.startswith("tests/integration/") or nodeid.startswith("integration/"):
            item.add_marker(pytest.mark.integration)


def make_training(**overrides) -> Training:
    """Formation ouverte: 450 €, acompte 150 €, 10 places."""
    row: Dict[str, Any] = {
        "id": 1,
        "title": "Introduction à la permaculture",
        "description": "Une formation de 3 jours sur la permaculture.",
        "status": "registrations_open",
        "price": 450.00,
        "deposit_amount": 150.00,
        "max_participants": 10,
        "vat_rate": 21,
        "requires_accommodation": False,
        "training_type": {"name": "Permaculture", "description": "Formation permaculture"},
    }
    row.update(overrides)
    return Training.from_row(row)


def trainee_payload(**overrides) -> Dict[str, Any]:
    data = {
        "contact_name": "Marie Martin",
        "contact_email": "marie@test.be",
        "phone": "+32 470 00 00 00",
        "departure_city": "Namur",
        "departure_postal_code": "5000",
        "departure_country": "BE",
        "carpooling": "seeking",
    }
    data.update(overrides)
    return data


def make_event(
    pi_id: str = "pi_test_123",
    amount: int = 45000,
    metadata: Optional[Dict[str, Any]] = None,
    event_type: str = "payment_intent.succeeded",
    amount_received: Optional[int] = None,
) -> Dict[str, Any]:
    if metadata is None:
        metadata = {"training_id": "1", "payment_type": "full", **trainee_payload()}
    obj: Dict[str, Any] = {
        "id": pi_id,
        "object": "payment_intent",
        "amount": amount,
        "amount_received": amount if amount_received is None else amount_received,
        "currency": "eur",
        "metadata": metadata,
    }
    return {"id": f"evt_{pi_id}", "object": "event", "type": event_type, "data": {"object": obj}}


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """En-tête Stripe-Signature calculé comme Stripe (HMAC-SHA256 de 't.payload')."""
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.{payload.decode('utf-8')}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={signature}"


def encode_event(event: Dict[str, Any]) -> bytes:
    return json.dumps(event).encode("utf-8")


class FakeAcademyStore:
    """
    Substitut en mémoire du repository academy.
    insert_registration applique l'unicité de stripe_payment_intent_id sous verrou,
    comme l'index unique Postgres (retourne None sur doublon).
    """

    def __init__(self):
        self.trainings: Dict[int, Training] = {}
        self.registrations: List[Dict[str, Any]] = []
        self.sessions: Dict[int, List[Dict[str, Any]]] = {}
        self.locations: Dict[str, Dict[str, Any]] = {}
        self.find_barrier: Optional[threading.Barrier] = None
        self._lock = threading.Lock()

    def add_training(self, **overrides) -> Training:
        training = make_training(**overrides)
        self.trainings[training.id] = training
        return training

    def add_registrations(self, training_id: int, count: int) -> None:
        for i in range(count):
            self.registrations.append({
                "id": len(self.registrations) + 1,
                "training_id": training_id,
                "contact_name": f"Participant {i}",
                "stripe_payment_intent_id": f"pi_existing_{training_id}_{i}",
            })

    def fetch_training(self, training_id):
        return self.trainings.get(int(training_id))

    def count_registrations(self, training_id):
        return sum(1 for r in self.registrations if r["training_id"] == training_id)

    def fetch_sessions(self, training_id):
        return self.sessions.get(training_id, [])

    def fetch_locations(self, ids):
        return [self.locations[str(i)] for i in ids if str(i) in self.locations]

    def find_registration_by_intent(self, payment_intent_id):
        if self.find_barrier is not None:
            self.find_barrier.wait(timeout=5)
        for r in self.registrations:
            if r["stripe_payment_intent_id"] == payment_intent_id:
                return r
        return None

    def insert_registration(self, row):
        with self._lock:
            if any(r["stripe_payment_intent_id"] == row["stripe_payment_intent_id"] for r in self.registrations):
                return None
            stored = dict(row, id=len(self.registrations) + 1)
            self.registrations.append(stored)
            return stored

    def rows_for(self, payment_intent_id: str) -> List[Dict[str, Any]]:
        return [r for r in self.registrations if r["stripe_payment_intent_id"] == payment_intent_id]


@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

@pytest.fixture()
def payment_settings() -> PaymentSettings:
    return PaymentSettings(secret_key="sk_test_dummy", webhook_secret=WEBHOOK_SECRET)

# Secret webhook fixe pour toutes les requêtes HTTP des tests
@pytest.fixture(autouse=True)
def _override_payment_settings(app, payment_settings):
    app.dependency_overrides[get_payment_settings] = lambda: payment_settings
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_payment_settings, None)

# Aucun accès Supabase réel
@pytest.fixture(autouse=True)
def mock_db_dependency(monkeypatch):
    monkeypatch.setattr("backend.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("backend.infra.supabase_client.get_service_supabase", lambda: MagicMock())

@pytest.fixture()
def store(monkeypatch) -> FakeAcademyStore:
    """Remplace les fonctions du repository academy par le store en mémoire."""
    fake = FakeAcademyStore()
    for name in (
        "fetch_training",
        "count_registrations",
        "fetch_sessions",
        "fetch_locations",
        "find_registration_by_intent",
        "insert_registration",
    ):
        monkeypatch.setattr(f"backend.academy.repository.{name}", getattr(fake, name))
    return fake

@pytest.fixture()
def stripe_intents(monkeypatch):
    """Enregistre les appels create_payment_intent au lieu d'appeler Stripe."""
    calls: List[Dict[str, Any]] = []

    def _fake_create_payment_intent(*, amount_cents, metadata, settings):
        calls.append({"amount_cents": amount_cents, "metadata": dict(metadata), "settings": settings})
        n = len(calls)
        return {"id": f"pi_test_{n}", "client_secret": f"pi_test_{n}_secret_abc"}

    monkeypatch.setattr("backend.payments.stripe_client.create_payment_intent", _fake_create_payment_intent)
    return calls
