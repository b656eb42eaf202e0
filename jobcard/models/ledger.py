from pydantic import BaseModel, Field
from typing import List, Optional, Tuple, Union
from decimal import Decimal, InvalidOperation
from enum import Enum
from uuid import UUID, uuid4
import logging

from jobcard.models.payment import Payment, PaymentType
from jobcard.services.catalog import default_catalog, find_payment_type
from jobcard.services.currency import SETTLEMENT_CURRENCY, currency_for_payment_type

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def _is_finite(value) -> bool:
    try:
        return Decimal(value).is_finite()
    except (InvalidOperation, TypeError, ValueError):
        return False


class VatPolicy(str, Enum):
    PERCENTAGE = "percentage"  # TVA = montant net x taux
    FIXED = "fixed"            # TVA fournie telle quelle


class InvoiceLedger(BaseModel):
    """
    Facture d'un ordre de travail et règlements associés.
    La TVA s'ajoute toujours au montant net ; seul son mode de calcul varie (VatPolicy).
    Les totaux sont recalculés à chaque lecture.
    """
    id: str = Field(default_factory=lambda: uuid4().hex)
    gross_amount: Decimal
    discount: Optional[Decimal] = None
    additional_discount: Decimal = ZERO
    vat_policy: VatPolicy = VatPolicy.PERCENTAGE
    vat_percentage: Decimal = ZERO
    fixed_vat_amount: Decimal = ZERO
    currency_code: str = SETTLEMENT_CURRENCY
    exchange_rate: Decimal = Decimal("1")
    payments: List[Payment] = Field(default_factory=list)
    catalog: Tuple[PaymentType, ...] = Field(default_factory=default_catalog, exclude=True, repr=False)

    @property
    def total_discount(self) -> Decimal:
        return (self.discount or ZERO) + self.additional_discount

    @property
    def net_amount(self) -> Decimal:
        return max(self.gross_amount - self.total_discount, ZERO)

    @property
    def vat_amount(self) -> Decimal:
        if self.vat_policy == VatPolicy.FIXED:
            return self.fixed_vat_amount
        return self.net_amount * self.vat_percentage / 100

    @property
    def net_amount_including_vat(self) -> Decimal:
        return self.net_amount + self.vat_amount

    @property
    def total_paid(self) -> Decimal:
        return sum((p.amount for p in self.payments), ZERO)

    @property
    def remaining_amount(self) -> Decimal:
        # Négatif en cas de trop-perçu
        return self.net_amount_including_vat - self.total_paid

    @property
    def is_settled(self) -> bool:
        return self.remaining_amount <= 0

    def currency_for_payment_type(self, payment_type: Optional[PaymentType]) -> str:
        return currency_for_payment_type(payment_type)

    def add_payment(
        self,
        payment_type: Optional[PaymentType],
        amount: Optional[Decimal] = None,
        foreign_amount: Optional[Decimal] = None,
        exchange_rate: Optional[Decimal] = None,
        currency: Optional[str] = None,
    ) -> Optional[Payment]:
        """
        Enregistre un règlement. Une saisie invalide est ignorée sans exception :
        retourne le paiement créé, ou None s'il a été refusé.
        """
        known = find_payment_type(self.catalog, payment_type.identifier) if payment_type is not None else None
        if known is None:
            return self._reject("moyen de paiement absent du catalogue", payment_type=payment_type)

        if amount is not None and not _is_finite(amount):
            return self._reject("montant non fini", payment_type=known)
        for label, value in (("montant devise", foreign_amount), ("taux de change", exchange_rate)):
            if value is not None and not (_is_finite(value) and value > 0):
                return self._reject(f"{label} doit être un nombre fini > 0", payment_type=known)

        payment = Payment(
            payment_type=known,
            amount=amount if amount is not None else ZERO,
            foreign_amount=foreign_amount,
            exchange_rate=exchange_rate,
            currency=currency,
        )
        if payment.amount <= 0:
            return self._reject("montant doit être > 0", payment_type=known)

        self.payments.append(payment)
        logger.info("Paiement ajouté", extra={"extra": {
            "ledger_id": self.id,
            "payment_id": str(payment.id),
            "payment_type": known.identifier,
            "amount": str(payment.amount),
            "remaining_amount": str(self.remaining_amount),
        }})
        return payment

    def remove_payment(self, payment_id: Union[UUID, str]) -> bool:
        for index, payment in enumerate(self.payments):
            if str(payment.id) == str(payment_id):
                del self.payments[index]
                logger.info("Paiement supprimé", extra={"extra": {"ledger_id": self.id, "payment_id": str(payment_id)}})
                return True
        return False

    def _reject(self, reason: str, payment_type: Optional[PaymentType] = None) -> None:
        logger.info(f"Paiement ignoré : {reason}", extra={"extra": {
            "ledger_id": self.id,
            "payment_type": payment_type.identifier if payment_type is not None else None,
        }})
        return None
