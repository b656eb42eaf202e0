from decimal import Decimal, InvalidOperation
from typing import Optional
from pydantic import BaseModel
from jobcard.models.ledger import InvoiceLedger
from jobcard.models.payment import Payment, PaymentType
from jobcard.services.currency import SETTLEMENT_CURRENCY, currency_for_payment_type, exchange_rate_for, to_settlement

ZERO = Decimal("0")


def parse_amount(text: Optional[str]) -> Decimal:
    """Montant saisi -> Decimal. Texte vide, illisible, infini ou négatif -> 0."""
    if not text:
        return ZERO
    try:
        value = Decimal(text.strip().replace(",", "."))
    except InvalidOperation:
        return ZERO
    if not value.is_finite() or value < 0:
        return ZERO
    return value


class PaymentEntry(BaseModel):
    """État du formulaire « Ajouter un paiement »."""
    payment_type: Optional[PaymentType] = None
    amount_text: str = ""
    currency: str = SETTLEMENT_CURRENCY

    def select_payment_type(self, payment_type: Optional[PaymentType]) -> None:
        self.payment_type = payment_type
        self.currency = currency_for_payment_type(payment_type)

    @property
    def amount(self) -> Decimal:
        return parse_amount(self.amount_text)

    @property
    def exchange_rate(self) -> Decimal:
        return exchange_rate_for(self.currency)

    @property
    def equivalent_amount(self) -> Decimal:
        # Aperçu « Equivalent in AED »
        if self.amount <= 0:
            return ZERO
        return to_settlement(self.amount, self.currency)

    def submit(self, ledger: InvoiceLedger) -> Optional[Payment]:
        if self.amount <= 0 or self.payment_type is None:
            return None
        payment = ledger.add_payment(
            self.payment_type,
            foreign_amount=self.amount,
            exchange_rate=self.exchange_rate,
            currency=self.currency,
        )
        if payment is not None:
            self.amount_text = ""
        return payment
