from decimal import Decimal
from typing import Optional
from jobcard.models.payment import PaymentType

SETTLEMENT_CURRENCY = "AED"

# Taux de référence vers la devise de règlement
EXCHANGE_RATES = {
    "USD": Decimal("3.66"),
    "EUR": Decimal("4.0"),
    "GBP": Decimal("4.5"),
    "AED": Decimal("1.0"),
}

# Moyens de paiement en devises étrangères, par libellé catalogue
FOREIGN_CURRENCY_TYPES = {
    "FC (Euro)": "EUR",
    "FC (GB Pound)": "GBP",
    "FC (US$)": "USD",
}


def currency_for_payment_type(payment_type: Optional[PaymentType]) -> str:
    """Devise associée à un moyen de paiement ; AED pour tout le reste (Cash, carte, remboursement...)."""
    if payment_type is None:
        return SETTLEMENT_CURRENCY
    return FOREIGN_CURRENCY_TYPES.get(payment_type.name, SETTLEMENT_CURRENCY)


def exchange_rate_for(currency: str) -> Decimal:
    return EXCHANGE_RATES.get(currency, Decimal("1"))


def to_settlement(amount: Decimal, currency: str) -> Decimal:
    return amount * exchange_rate_for(currency)
