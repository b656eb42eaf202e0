import pytest
from fastapi.testclient import TestClient
import os

# Configuration avant import de l'app
os.environ["CLIENTS"] = '{"test": "test-key-123"}'

from jobcard.main import app

client = TestClient(app)
HEADERS = {"X-API-Key": "test-key-123"}

LEDGER_JSON = {
    "gross_amount": 1000,
    "vat_percentage": 5,
    "currency_code": "AED",
}


@pytest.fixture
def ledger_id():
    res = client.post("/v1/ledgers", json=LEDGER_JSON, headers=HEADERS)
    assert res.status_code == 201
    return res.json()["id"]


def test_health():
    """Health check doit retourner 200."""
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_no_key():
    """Sans clé API doit retourner 403."""
    res = client.post("/v1/ledgers", json=LEDGER_JSON)
    assert res.status_code == 403


def test_wrong_key():
    """Mauvaise clé API doit retourner 403."""
    res = client.get("/v1/payment-types", headers={"X-API-Key": "fausse-cle"})
    assert res.status_code == 403


def test_list_payment_types():
    """Le catalogue ne contient que les moyens de paiement JO."""
    res = client.get("/v1/payment-types", headers=HEADERS)
    assert res.status_code == 200
    data = res.json()
    assert data["count"] == 9
    fce = next(p for p in data["payment_types"] if p["code"] == "FCE")
    assert fce["currency"] == "EUR"
    assert fce["account_code"] == "EU149"


def test_payment_type_currency():
    res = client.get("/v1/payment-types/FCU/currency", headers=HEADERS)
    assert res.status_code == 200
    assert res.json() == {"payment_type": "FCU", "currency": "USD", "exchange_rate": "3.6600"}


def test_payment_type_currency_not_found():
    res = client.get("/v1/payment-types/MV/currency", headers=HEADERS)
    assert res.status_code == 404


def test_create_ledger_summary():
    """Création : 1000 + TVA 5% -> 1050 restant dû."""
    res = client.post("/v1/ledgers", json=LEDGER_JSON, headers=HEADERS)
    assert res.status_code == 201
    data = res.json()
    assert data["net_amount"] == "1000.00"
    assert data["vat_amount"] == "50.00"
    assert data["net_amount_including_vat"] == "1050.00"
    assert data["remaining_amount"] == "1050.00"
    assert data["settled"] is False
    assert data["payments"] == []


def test_create_ledger_invalid_json():
    """Montant brut négatif doit retourner 422."""
    res = client.post("/v1/ledgers", json={"gross_amount": -5}, headers=HEADERS)
    assert res.status_code == 422
    assert res.json()["error"] == "Données invalides"


def test_list_and_delete_ledger(ledger_id):
    res = client.get("/v1/ledgers", headers=HEADERS)
    assert ledger_id in res.json()["ledgers"]

    res = client.delete(f"/v1/ledgers/{ledger_id}", headers=HEADERS)
    assert res.status_code == 200
    res = client.get(f"/v1/ledgers/{ledger_id}", headers=HEADERS)
    assert res.status_code == 404


def test_ledger_not_found():
    res = client.get("/v1/ledgers/inexistante", headers=HEADERS)
    assert res.status_code == 404


def test_add_foreign_payment(ledger_id):
    """50 EUR au taux 4.0 -> 200 AED réglés."""
    res = client.post(
        f"/v1/ledgers/{ledger_id}/payments",
        json={"payment_type": "FCE", "foreign_amount": 50},
        headers=HEADERS,
    )
    assert res.status_code == 200
    data = res.json()
    assert data["added"] is True
    assert data["errors"] == []
    assert data["payment"]["amount"] == "200.00"
    assert data["payment"]["currency"] == "EUR"
    assert data["summary"]["total_paid"] == "200.00"
    assert data["summary"]["remaining_amount"] == "850.00"


def test_add_rejected_payment(ledger_id):
    """Montant nul : added=False, rien n'est enregistré."""
    res = client.post(
        f"/v1/ledgers/{ledger_id}/payments",
        json={"payment_type": "CASH", "amount": 0},
        headers=HEADERS,
    )
    assert res.status_code == 200
    data = res.json()
    assert data["added"] is False
    assert len(data["errors"]) == 1
    assert data["summary"]["payments"] == []


def test_add_unknown_payment_type(ledger_id):
    res = client.post(
        f"/v1/ledgers/{ledger_id}/payments",
        json={"payment_type": "MV", "amount": 10},
        headers=HEADERS,
    )
    data = res.json()
    assert data["added"] is False
    assert data["summary"]["total_paid"] == "0.00"


def test_remove_payment(ledger_id):
    res = client.post(
        f"/v1/ledgers/{ledger_id}/payments",
        json={"payment_type": "CASH", "amount": 1100},
        headers=HEADERS,
    )
    payment_id = res.json()["payment"]["id"]
    assert res.json()["summary"]["remaining_amount"] == "-50.00"
    assert res.json()["summary"]["settled"] is True

    res = client.delete(f"/v1/ledgers/{ledger_id}/payments/{payment_id}", headers=HEADERS)
    assert res.json()["removed"] is True
    assert res.json()["summary"]["remaining_amount"] == "1050.00"

    res = client.delete(f"/v1/ledgers/{ledger_id}/payments/{payment_id}", headers=HEADERS)
    assert res.status_code == 200
    assert res.json()["removed"] is False


def test_remove_malformed_payment_id(ledger_id):
    """Identifiant de paiement mal formé : removed=False, pas d'erreur."""
    res = client.delete(f"/v1/ledgers/{ledger_id}/payments/pas-un-uuid", headers=HEADERS)
    assert res.status_code == 200
    assert res.json()["removed"] is False


def test_delete_unknown_ledger():
    """Suppression d'une facture inexistante doit retourner 404."""
    res = client.delete("/v1/ledgers/inexistante", headers=HEADERS)
    assert res.status_code == 404


def test_add_payment_with_rate_override(ledger_id):
    """Devise et taux fournis par l'appelant : 100 USD x 3.7 = 370 AED."""
    res = client.post(
        f"/v1/ledgers/{ledger_id}/payments",
        json={"payment_type": "CASH", "foreign_amount": "100", "currency": "USD", "exchange_rate": "3.7"},
        headers=HEADERS,
    )
    data = res.json()
    assert data["added"] is True
    assert data["payment"]["amount"] == "370.00"
    assert data["payment"]["currency"] == "USD"
    assert data["payment"]["exchange_rate"] == "3.7000"


def test_add_payment_with_currency_override(ledger_id):
    """Devise seule : le taux de référence GBP (4.5) s'applique."""
    res = client.post(
        f"/v1/ledgers/{ledger_id}/payments",
        json={"payment_type": "CASH", "foreign_amount": "10", "currency": "GBP"},
        headers=HEADERS,
    )
    data = res.json()
    assert data["added"] is True
    assert data["payment"]["amount"] == "45.00"
    assert data["payment"]["exchange_rate"] == "4.5000"
