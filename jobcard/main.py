from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Security
from fastapi.security import APIKeyHeader
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging
import os

from jobcard.models.ledger import InvoiceLedger
from jobcard.models.requests import LedgerCreate, PaymentCreate
from jobcard.services.catalog import default_catalog, find_payment_type
from jobcard.services.currency import currency_for_payment_type, exchange_rate_for
from jobcard.services.store import LedgerStore
from jobcard.services.summary import ledger_summary, payment_summary, format_amount

import json
import time

class JSONFormatter(logging.Formatter):
    def format(self, record):
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "extra") and isinstance(record.extra, dict):
            log_data.update(record.extra)
        return json.dumps(log_data, ensure_ascii=False)

# Supprime les handlers existants et applique le notre
root_logger = logging.getLogger()
root_logger.setLevel(logging.INFO)
for h in root_logger.handlers[:]:
    root_logger.removeHandler(h)
handler = logging.StreamHandler()
handler.setFormatter(JSONFormatter())
root_logger.addHandler(handler)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"

app = FastAPI(
    title="Job Card Ledger",
    description="Règlements multi-devises des factures d'ordres de travail",
    version=VERSION
)

# Factures ouvertes, propres à cette instance d'application
app.state.ledgers = LedgerStore()

# Clé API
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


# Gestionnaire erreurs de validation JSON (422)
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc):
    return JSONResponse(
        status_code=422,
        content={
            "error": "Données invalides",
            "detail": str(exc.errors())
        }
    )


def _load_api_keys() -> dict:
    clients_json = os.getenv("CLIENTS", "{}")
    try:
        return json.loads(clients_json)
    except json.JSONDecodeError:
        api_key = os.getenv("API_KEY", "dev-secret-key")
        return {"default": api_key}


def verify_api_key(api_key: str = Security(api_key_header)) -> str:
    clients = _load_api_keys()
    for client_name, client_key in clients.items():
        if api_key == client_key:
            return client_name
    raise HTTPException(
        status_code=403,
        detail={"error": "Clé API invalide ou manquante"}
    )


def get_store(request: Request) -> LedgerStore:
    return request.app.state.ledgers


def get_ledger(ledger_id: str, store: LedgerStore = Depends(get_store)) -> InvoiceLedger:
    ledger = store.get(ledger_id)
    if ledger is None:
        raise HTTPException(status_code=404, detail={"error": f"Facture {ledger_id} non trouvée"})
    return ledger


# Préfixe v1 pour tous les endpoints
v1 = APIRouter(prefix="/v1")


@app.get("/health")
def health_check():
    return {"status": "ok", "version": VERSION}


@v1.get("/payment-types")
async def list_payment_types(api_key: str = Security(verify_api_key)):
    catalog = default_catalog()
    return {
        "count": len(catalog),
        "payment_types": [
            {
                "code": p.identifier,
                "name": p.name,
                "location_code": p.location_code,
                "account_code": p.account_code,
                "gl_code": p.gl_code,
                "txn_code": p.txn_code,
                "currency": currency_for_payment_type(p),
            }
            for p in catalog
        ],
    }


@v1.get("/payment-types/{code}/currency")
async def payment_type_currency(code: str, api_key: str = Security(verify_api_key)):
    payment_type = find_payment_type(default_catalog(), code)
    if payment_type is None:
        raise HTTPException(status_code=404, detail={"error": f"Moyen de paiement {code} non trouvé"})
    currency = currency_for_payment_type(payment_type)
    return {
        "payment_type": payment_type.identifier,
        "currency": currency,
        "exchange_rate": format_amount(exchange_rate_for(currency), decimals=4),
    }


@v1.post("/ledgers", status_code=201)
async def create_ledger(
    body: LedgerCreate,
    api_key: str = Security(verify_api_key),
    store: LedgerStore = Depends(get_store),
):
    try:
        ledger = store.add(InvoiceLedger(**body.model_dump()))
        logger.info("Facture créée", extra={"extra": {"client": api_key, "ledger_id": ledger.id, "total_ttc": str(ledger.net_amount_including_vat)}})
        return ledger_summary(ledger)
    except Exception as e:
        logger.error(f"Erreur interne : {e}")
        raise HTTPException(status_code=500, detail={"error": "Erreur interne", "message": str(e)})


@v1.get("/ledgers")
async def list_ledgers(api_key: str = Security(verify_api_key), store: LedgerStore = Depends(get_store)):
    ids = store.ids()
    return {"count": len(ids), "ledgers": ids}


@v1.get("/ledgers/{ledger_id}")
async def get_ledger_summary(api_key: str = Security(verify_api_key), ledger: InvoiceLedger = Depends(get_ledger)):
    return ledger_summary(ledger)


@v1.delete("/ledgers/{ledger_id}")
async def delete_ledger(
    ledger_id: str,
    api_key: str = Security(verify_api_key),
    store: LedgerStore = Depends(get_store),
):
    if not store.remove(ledger_id):
        raise HTTPException(status_code=404, detail={"error": f"Facture {ledger_id} non trouvée"})
    logger.info("Facture supprimée", extra={"extra": {"client": api_key, "ledger_id": ledger_id}})
    return {"deleted": ledger_id}


@v1.post("/ledgers/{ledger_id}/payments")
async def add_payment(
    body: PaymentCreate,
    api_key: str = Security(verify_api_key),
    ledger: InvoiceLedger = Depends(get_ledger),
):
    """Ajoute un règlement. Une saisie refusée renvoie added=False et la liste des erreurs."""
    try:
        start = time.time()
        errors = []

        payment_type = find_payment_type(ledger.catalog, body.payment_type)
        if payment_type is None:
            errors.append(f"Moyen de paiement inconnu : {body.payment_type}")

        amount = body.amount
        currency = body.currency
        exchange_rate = None
        if body.foreign_amount is not None:
            amount = None
            currency = currency or ledger.currency_for_payment_type(payment_type)
            exchange_rate = body.exchange_rate if body.exchange_rate is not None else exchange_rate_for(currency)
            if body.foreign_amount <= 0:
                errors.append("Montant devise invalide : doit être > 0")
            if exchange_rate <= 0:
                errors.append("Taux de change invalide : doit être > 0")
        elif amount is None or amount <= 0:
            errors.append("Montant invalide : doit être > 0")

        payment = None
        if not errors:
            payment = ledger.add_payment(
                payment_type,
                amount=amount,
                foreign_amount=body.foreign_amount,
                exchange_rate=exchange_rate,
                currency=currency,
            )

        duration = round((time.time() - start) * 1000)
        logger.info("Saisie paiement traitée", extra={"extra": {
            "client": api_key,
            "ledger_id": ledger.id,
            "added": payment is not None,
            "errors": len(errors),
            "duration_ms": duration
        }})

        return {
            "added": payment is not None,
            "payment": payment_summary(payment) if payment is not None else None,
            "errors": errors,
            "summary": ledger_summary(ledger),
        }
    except Exception as e:
        logger.error(f"Erreur interne : {e}")
        raise HTTPException(status_code=500, detail={"error": "Erreur interne", "message": str(e)})


@v1.delete("/ledgers/{ledger_id}/payments/{payment_id}")
async def remove_payment(
    payment_id: str,
    api_key: str = Security(verify_api_key),
    ledger: InvoiceLedger = Depends(get_ledger),
):
    removed = ledger.remove_payment(payment_id)
    return {"removed": removed, "summary": ledger_summary(ledger)}


# Enregistrement du router v1
app.include_router(v1)
