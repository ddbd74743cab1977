import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from backend.academy.exceptions import StorageUnavailable
from backend.payments import reconciler
from conftest import encode_event, make_event, sign_payload, trainee_payload

URL = "/api/v1/public/stripe-webhooks"
INTENT_URL = "/api/v1/public/academy/trainings/{}/payment-intent"


def _post_event(client, event, header=None):
    payload = encode_event(event)
    sig = sign_payload(payload) if header is None else header
    return client.post(URL, content=payload, headers={"Stripe-Signature": sig, "Content-Type": "application/json"})


def test_invalid_signature_returns_400(client, store):
    store.add_training()
    res = _post_event(client, make_event(), header="t=1,v1=deadbeef")
    assert res.status_code == 400
    assert res.json()["code"] == "invalid_signature"
    assert store.registrations == []


def test_missing_signature_returns_400(client, store):
    store.add_training()
    res = client.post(URL, content=encode_event(make_event()))
    assert res.status_code == 400
    assert store.registrations == []


def test_other_event_types_are_ignored(client, store):
    store.add_training()
    for event_type in ("payment_intent.payment_failed", "charge.refunded", "checkout.session.completed"):
        res = _post_event(client, make_event(event_type=event_type))
        assert res.status_code == 200
        assert res.json() == {"status": "ignored"}
    assert store.registrations == []


def test_signed_event_with_bad_envelope_returns_400(client, store):
    store.add_training()
    res = _post_event(client, {"id": "evt_1", "type": "payment_intent.succeeded", "data": {"object": {"amount": 100}}})
    assert res.status_code == 400
    assert res.json()["code"] == "invalid_payload"


def test_payment_without_academy_metadata_is_ignored(client, store):
    store.add_training()
    res = _post_event(client, make_event(metadata={"order_id": "shop-42"}))
    assert res.status_code == 200
    assert res.json() == {"status": "ignored"}
    assert store.registrations == []


def test_repeated_delivery_creates_one_registration(client, store):
    store.add_training()
    event = make_event(pi_id="pi_repeat")

    statuses = [_post_event(client, event).json()["status"] for _ in range(4)]

    assert statuses == ["created", "duplicate", "duplicate", "duplicate"]
    assert len(store.rows_for("pi_repeat")) == 1


def test_concurrent_deliveries_create_one_registration(store, payment_settings):
    store.add_training()
    # Les deux livraisons passent la lecture avant toute écriture
    store.find_barrier = threading.Barrier(2)
    payload = encode_event(make_event(pi_id="pi_race"))
    header = sign_payload(payload)

    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [pool.submit(reconciler.reconcile, payload, header, payment_settings) for _ in range(2)]
        statuses = sorted(f.result()["status"] for f in futures)

    assert statuses == ["created", "duplicate"]
    assert len(store.rows_for("pi_race")) == 1


def test_storage_failure_returns_503_and_redelivery_succeeds(client, store, monkeypatch):
    store.add_training()
    event = make_event(pi_id="pi_retry")
    real_insert = store.insert_registration

    def down(row):
        raise StorageUnavailable()

    monkeypatch.setattr("backend.academy.repository.insert_registration", down)
    res = _post_event(client, event)
    assert res.status_code == 503
    assert store.registrations == []

    monkeypatch.setattr("backend.academy.repository.insert_registration", real_insert)
    res = _post_event(client, event)
    assert res.status_code == 200
    assert res.json()["status"] == "created"


def test_missing_webhook_secret_returns_500(client, store, app):
    from backend.config import PaymentSettings, get_payment_settings

    store.add_training()
    app.dependency_overrides[get_payment_settings] = lambda: PaymentSettings(secret_key="sk_test", webhook_secret="")
    res = _post_event(client, make_event())
    assert res.status_code == 500
    assert res.json()["code"] == "webhook_not_configured"
    assert store.registrations == []


def test_deposit_for_last_seat_end_to_end(client, store, stripe_intents):
    store.add_training(price=450, deposit_amount=150, max_participants=10)
    store.add_registrations(1, 9)
    submitted = trainee_payload(phone="", departure_country="")

    opened = client.post(INTENT_URL.format(1), json={"payment_type": "deposit", **submitted})
    assert opened.status_code == 200
    intent_id = opened.json()["transactionId"]

    # Stripe ne conserve pas les valeurs vides de la metadata
    metadata = {k: v for k, v in stripe_intents[0]["metadata"].items() if v != ""}
    event = make_event(pi_id=intent_id, amount=stripe_intents[0]["amount_cents"], metadata=metadata)

    res = _post_event(client, event)
    assert res.status_code == 200
    assert res.json()["status"] == "created"

    rows = store.rows_for(intent_id)
    assert len(rows) == 1
    row = rows[0]
    for key, value in submitted.items():
        assert row[key] == value
    assert row["training_id"] == 1
    assert row["payment_status"] == "partial"
    assert Decimal(row["amount_paid"]) == Decimal("150.00")
    assert row["needs_review"] is False
    assert store.count_registrations(1) == 10


def test_mixed_case_email_is_stored_as_submitted(client, store, stripe_intents):
    store.add_training()
    submitted = trainee_payload(contact_email="Marie.Martin@Test.BE")

    opened = client.post(INTENT_URL.format(1), json=submitted)
    assert opened.status_code == 200
    intent_id = opened.json()["transactionId"]
    assert stripe_intents[0]["metadata"]["contact_email"] == "Marie.Martin@Test.BE"

    event = make_event(pi_id=intent_id, amount=stripe_intents[0]["amount_cents"], metadata=stripe_intents[0]["metadata"])
    assert _post_event(client, event).json()["status"] == "created"
    assert store.rows_for(intent_id)[0]["contact_email"] == "Marie.Martin@Test.BE"


def test_full_payment_is_paid(client, store):
    store.add_training()
    res = _post_event(client, make_event(pi_id="pi_full", amount=45000))
    assert res.json()["status"] == "created"
    assert store.rows_for("pi_full")[0]["payment_status"] == "paid"
