from pydantic import BaseModel, Field
from typing import Optional
from decimal import Decimal

from jobcard.models.ledger import VatPolicy
from jobcard.services.currency import SETTLEMENT_CURRENCY


class LedgerCreate(BaseModel):
    gross_amount: Decimal = Field(ge=0)
    discount: Optional[Decimal] = Field(default=None, ge=0)
    additional_discount: Decimal = Field(default=Decimal("0"), ge=0)
    vat_policy: VatPolicy = VatPolicy.PERCENTAGE
    vat_percentage: Decimal = Field(default=Decimal("0"), ge=0)
    fixed_vat_amount: Decimal = Field(default=Decimal("0"), ge=0)
    currency_code: str = SETTLEMENT_CURRENCY
    exchange_rate: Decimal = Field(default=Decimal("1"), gt=0)


class PaymentCreate(BaseModel):
    """Saisie d'un règlement : soit `amount` en devise de règlement, soit `foreign_amount` (+ devise / taux)."""
    payment_type: str  # code catalogue, ex. "CASH", "FCE"
    amount: Optional[Decimal] = None
    foreign_amount: Optional[Decimal] = None
    currency: Optional[str] = None
    exchange_rate: Optional[Decimal] = None
