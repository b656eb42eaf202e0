from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Tuple
from pydantic import TypeAdapter, ValidationError
from jobcard.models.payment import PaymentType
import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).parent.parent / "data" / "payment_types.json"
DEFAULT_TXN_CODE = "JO"

_catalog_adapter = TypeAdapter(List[PaymentType])


def load_payment_types(path: Optional[Path] = None, txn_code: Optional[str] = None) -> List[PaymentType]:
    """
    Charge le catalogue des moyens de paiement et ne garde que ceux du code transaction demandé.
    Retourne une liste vide si le fichier est illisible ou malformé.
    """
    if path is None:
        path = Path(os.getenv("PAYMENT_TYPES_PATH", DEFAULT_CATALOG_PATH))
    if txn_code is None:
        txn_code = os.getenv("PAYMENT_TXN_CODE", DEFAULT_TXN_CODE)

    try:
        payment_types = _catalog_adapter.validate_json(Path(path).read_bytes())
    except (OSError, ValidationError) as e:
        logger.error(f"Catalogue moyens de paiement illisible ({path}) : {e}")
        return []

    selected = [p for p in payment_types if p.txn_code == txn_code]
    logger.info("Catalogue chargé", extra={"extra": {"path": str(path), "txn_code": txn_code, "count": len(selected)}})
    return selected


@lru_cache(maxsize=1)
def default_catalog() -> Tuple[PaymentType, ...]:
    return tuple(load_payment_types())


def find_payment_type(catalog, identifier: Optional[str]) -> Optional[PaymentType]:
    if not identifier:
        return None
    for payment_type in catalog:
        if payment_type.identifier == identifier:
            return payment_type
    return None
