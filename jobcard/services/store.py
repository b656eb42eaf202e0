from typing import Dict, List, Optional
from jobcard.models.ledger import InvoiceLedger
import logging

logger = logging.getLogger(__name__)


class LedgerStore:
    """Factures ouvertes, en mémoire. Une instance par application, passée aux handlers."""

    def __init__(self):
        self._ledgers: Dict[str, InvoiceLedger] = {}

    def __len__(self) -> int:
        return len(self._ledgers)

    def add(self, ledger: InvoiceLedger) -> InvoiceLedger:
        self._ledgers[ledger.id] = ledger
        logger.info("Facture ouverte", extra={"extra": {"ledger_id": ledger.id, "gross_amount": str(ledger.gross_amount)}})
        return ledger

    def get(self, ledger_id: str) -> Optional[InvoiceLedger]:
        return self._ledgers.get(ledger_id)

    def remove(self, ledger_id: str) -> bool:
        ledger = self._ledgers.pop(ledger_id, None)
        if ledger is None:
            return False
        logger.info("Facture fermée", extra={"extra": {"ledger_id": ledger_id, "remaining_amount": str(ledger.remaining_amount)}})
        return True

    def ids(self) -> List[str]:
        return list(self._ledgers)
